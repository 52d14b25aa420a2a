# smart_collections/services/store_service.py
"""
Provides the gallery collection store: galleries, assets, collections and an
activity log, kept in a local SQLite database.

The engine only depends on the narrow CollectionStore protocol below, so the
host product can hand in its own persistence layer. GalleryStore is the default
implementation, used by the command line and the tests. All tenant scoping
(gallery ownership by organization) is enforced here.
"""
import sqlite3
import uuid
import logging
from datetime import datetime
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Sequence, Union
from .config_service import config
from ..exceptions import StoreError, GalleryNotFoundError, CollectionCreateError, AssetAssignError
from ..models import (
    Asset, AssetId, Collection, CollectionId, Gallery, GalleryId,
    asset_from_db_row, collection_from_db_row, gallery_from_db_row,
)

logger = logging.getLogger(__name__)

# SQLite's default limit on bound parameters is 999 on older builds.
_ID_CHUNK_SIZE = 500


class CollectionStore(Protocol):
    """The collaborator interface the engine consumes."""

    def get_gallery(self, gallery_id: GalleryId, organization_id: str) -> Optional[Gallery]:
        ...

    def find_uncategorized_assets(self, gallery_id: GalleryId, organization_id: str) -> List[Asset]:
        ...

    def create_collection(self, gallery_id: GalleryId, organization_id: str, name: str,
                          description: Optional[str] = None,
                          cover_asset_id: Optional[AssetId] = None) -> Collection:
        ...

    def reassign_assets(self, collection_id: CollectionId, asset_ids: Sequence[AssetId]) -> int:
        ...

    def log_event(self, level: str, message: str) -> None:
        """Appends to the activity log. Callers go through record_event, which tolerates failures."""
        ...


def record_event(store: CollectionStore, level: str, message: str) -> None:
    """Writes to the store's activity log; a failed write is logged and never reaches the caller."""
    try:
        store.log_event(level, message)
    except Exception:
        logger.warning(f"Activity log write failed: {message}", exc_info=True)


def _timestamp(value: Optional[datetime] = None) -> str:
    return (value or datetime.now()).isoformat(sep=" ")


def _chunks(ids: Sequence[str], size: int = _ID_CHUNK_SIZE) -> Iterator[Sequence[str]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


class GalleryStore:
    def __init__(self, db_path: Union[str, Path, None] = None, timeout: Optional[float] = None) -> None:
        db_path = Path(db_path) if db_path else config.store_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.timeout = timeout if timeout is not None else float(config.get('store.timeout_seconds', 10))
        self._init_db()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        """Provides a managed database connection."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=self.timeout)
            conn.row_factory = sqlite3.Row  # Allows accessing columns by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            logger.error(f"SQLite operation on the gallery store failed: {e}", exc_info=True)
            raise StoreError("The gallery store could not complete the operation.") from e
        finally:
            if conn is not None:
                conn.close()

    def _init_db(self) -> None:
        """Initializes the database schema."""
        logger.info(f"Initializing gallery store at {self.db_path}")
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                CREATE TABLE IF NOT EXISTS galleries (
                    id TEXT PRIMARY KEY,
                    organization_id TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    created_at TIMESTAMP NOT NULL
                )""")
                cursor.execute("""
                CREATE TABLE IF NOT EXISTS collections (
                    id TEXT PRIMARY KEY,
                    gallery_id TEXT NOT NULL REFERENCES galleries(id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    description TEXT,
                    cover_asset_id TEXT,
                    sort_order INTEGER NOT NULL DEFAULT 0,
                    created_at TIMESTAMP NOT NULL
                )""")
                cursor.execute("""
                CREATE TABLE IF NOT EXISTS assets (
                    id TEXT PRIMARY KEY,
                    gallery_id TEXT NOT NULL REFERENCES galleries(id) ON DELETE CASCADE,
                    filename TEXT NOT NULL DEFAULT '',
                    thumbnail_url TEXT,
                    exif_data_json TEXT,
                    created_at TIMESTAMP,
                    collection_id TEXT REFERENCES collections(id) ON DELETE SET NULL,
                    sort_order INTEGER NOT NULL DEFAULT 0
                )""")
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_assets_gallery_collection ON assets (gallery_id, collection_id)")
                cursor.execute("""
                CREATE TABLE IF NOT EXISTS activity_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TIMESTAMP NOT NULL,
                    level TEXT NOT NULL,
                    message TEXT NOT NULL
                )""")
                conn.commit()
                logger.debug("Gallery store schema initialized/verified.")
        except Exception as e:
            logger.critical("Failed to initialize gallery store schema.", exc_info=True)
            raise StoreError("Failed to initialize gallery store schema.") from e

    @staticmethod
    def _owned_gallery(conn: sqlite3.Connection, gallery_id: GalleryId, organization_id: str) -> Optional[Gallery]:
        row = conn.execute(
            "SELECT * FROM galleries WHERE id = ? AND organization_id = ?",
            (gallery_id, organization_id)
        ).fetchone()
        return gallery_from_db_row(row) if row else None

    # --- Galleries ---

    def create_gallery(self, organization_id: str, name: str = '', gallery_id: Optional[GalleryId] = None) -> Gallery:
        """Creates a gallery owned by `organization_id`. Reuses the row if the id already exists for that owner."""
        gallery_id = gallery_id or str(uuid.uuid4())
        with self.get_connection() as conn:
            existing = conn.execute("SELECT * FROM galleries WHERE id = ?", (gallery_id,)).fetchone()
            if existing:
                if existing['organization_id'] != organization_id:
                    raise GalleryNotFoundError(f"Gallery {gallery_id} belongs to another organization.")
                return gallery_from_db_row(existing)
            created_at = datetime.now()
            conn.execute(
                "INSERT INTO galleries (id, organization_id, name, created_at) VALUES (?, ?, ?, ?)",
                (gallery_id, organization_id, name, _timestamp(created_at))
            )
            conn.commit()
        logger.info(f"Created gallery {gallery_id} for organization {organization_id}")
        return Gallery(id=gallery_id, organization_id=organization_id, name=name, created_at=created_at)

    def get_gallery(self, gallery_id: GalleryId, organization_id: str) -> Optional[Gallery]:
        """Returns the gallery if it exists and belongs to the organization."""
        with self.get_connection() as conn:
            return self._owned_gallery(conn, gallery_id, organization_id)

    # --- Assets ---

    def add_assets(self, gallery_id: GalleryId, organization_id: str, assets: Sequence[Asset]) -> int:
        """
        Inserts or replaces assets in a gallery, appending them to its sort order.

        Returns:
            The number of assets written.

        Raises:
            GalleryNotFoundError: If the gallery is missing or not owned by the organization.
        """
        with self.get_connection() as conn:
            if not self._owned_gallery(conn, gallery_id, organization_id):
                raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")
            next_order = conn.execute(
                "SELECT COALESCE(MAX(sort_order), -1) + 1 FROM assets WHERE gallery_id = ?", (gallery_id,)
            ).fetchone()[0]
            for offset, asset in enumerate(assets):
                data = asset.to_dict()
                conn.execute("""
                INSERT OR REPLACE INTO assets (id, gallery_id, filename, thumbnail_url, exif_data_json, created_at, collection_id, sort_order)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    data['id'], gallery_id, data['filename'], data['thumbnail_url'], data['exif_data_json'],
                    _timestamp(asset.created_at), data['collection_id'], next_order + offset
                ))
            conn.commit()
        logger.info(f"Stored {len(assets)} asset(s) in gallery {gallery_id}")
        return len(assets)

    def find_uncategorized_assets(self, gallery_id: GalleryId, organization_id: str) -> List[Asset]:
        """
        Fetches every asset in the gallery that is not linked to a collection.

        Raises:
            GalleryNotFoundError: If the gallery is missing or not owned by the organization.
        """
        with self.get_connection() as conn:
            if not self._owned_gallery(conn, gallery_id, organization_id):
                raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")
            rows = conn.execute("""
                SELECT id, filename, thumbnail_url, exif_data_json, created_at, collection_id
                FROM assets
                WHERE gallery_id = ? AND collection_id IS NULL
                ORDER BY sort_order ASC, created_at ASC
            """, (gallery_id,)).fetchall()
        return [asset_from_db_row(row) for row in rows]

    # --- Collections ---

    def create_collection(self, gallery_id: GalleryId, organization_id: str, name: str,
                          description: Optional[str] = None,
                          cover_asset_id: Optional[AssetId] = None) -> Collection:
        """
        Creates a collection at the end of the gallery's collection order.

        Raises:
            GalleryNotFoundError: If the gallery is missing or not owned by the organization.
            CollectionCreateError: If the row could not be written.
        """
        try:
            with self.get_connection() as conn:
                if not self._owned_gallery(conn, gallery_id, organization_id):
                    raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")
                sort_order = conn.execute(
                    "SELECT COALESCE(MAX(sort_order), -1) + 1 FROM collections WHERE gallery_id = ?", (gallery_id,)
                ).fetchone()[0]
                collection = Collection(
                    id=str(uuid.uuid4()),
                    gallery_id=gallery_id,
                    name=name,
                    description=description,
                    cover_asset_id=cover_asset_id,
                    sort_order=sort_order,
                    created_at=datetime.now(),
                )
                conn.execute("""
                INSERT INTO collections (id, gallery_id, name, description, cover_asset_id, sort_order, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (collection.id, gallery_id, name, description, cover_asset_id, sort_order, _timestamp(collection.created_at)))
                conn.commit()
        except StoreError as e:
            if isinstance(e, GalleryNotFoundError):
                raise
            raise CollectionCreateError(f"Could not create collection '{name}'.") from e
        logger.info(f"Created collection '{name}' ({collection.id}) in gallery {gallery_id} at position {sort_order}")
        return collection

    def reassign_assets(self, collection_id: CollectionId, asset_ids: Sequence[AssetId]) -> int:
        """
        Links the given assets to a collection in one transaction. Only assets of
        the collection's own gallery are touched, so ids from other galleries are
        silently ignored. Re-running with the same ids yields the same state.

        Returns:
            The number of requested assets now linked to the collection.

        Raises:
            AssetAssignError: If the collection is unknown or the update fails.
        """
        asset_ids = list(dict.fromkeys(asset_ids))
        try:
            with self.get_connection() as conn:
                row = conn.execute("SELECT gallery_id FROM collections WHERE id = ?", (collection_id,)).fetchone()
                if not row:
                    raise AssetAssignError(f"Collection {collection_id} does not exist.")
                gallery_id = row['gallery_id']
                linked = 0
                for chunk in _chunks(asset_ids):
                    placeholders = ','.join(['?'] * len(chunk))
                    cursor = conn.execute(
                        f"UPDATE assets SET collection_id = ? WHERE gallery_id = ? AND id IN ({placeholders})",
                        (collection_id, gallery_id, *chunk)
                    )
                    linked += cursor.rowcount
                conn.commit()
        except AssetAssignError:
            raise
        except StoreError as e:
            raise AssetAssignError(f"Could not assign assets to collection {collection_id}.") from e
        logger.info(f"Linked {linked} of {len(asset_ids)} requested asset(s) to collection {collection_id}")
        return linked

    def list_collections(self, gallery_id: GalleryId, organization_id: str) -> List[Collection]:
        """Returns the gallery's collections in sort order, with their photo counts."""
        with self.get_connection() as conn:
            if not self._owned_gallery(conn, gallery_id, organization_id):
                raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")
            rows = conn.execute("""
                SELECT c.*, COUNT(a.id) AS photo_count
                FROM collections c
                LEFT JOIN assets a ON a.collection_id = c.id
                WHERE c.gallery_id = ?
                GROUP BY c.id
                ORDER BY c.sort_order ASC
            """, (gallery_id,)).fetchall()
        return [collection_from_db_row(row) for row in rows]

    def get_collection_asset_ids(self, collection_id: CollectionId) -> List[AssetId]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT id FROM assets WHERE collection_id = ? ORDER BY sort_order ASC", (collection_id,)
            ).fetchall()
        return [row['id'] for row in rows]

    # --- Activity log ---

    def log_event(self, level: str, message: str) -> None:
        """Writes a log message to the activity log. Never raises."""
        try:
            with self.get_connection() as conn:
                conn.execute(
                    "INSERT INTO activity_logs (timestamp, level, message) VALUES (?, ?, ?)",
                    (_timestamp(), level.upper(), message)
                )
                conn.commit()
        except Exception:
            logger.warning(f"Could not write activity log entry: {message}", exc_info=True)

    def get_recent_logs(self, limit: int = 50) -> List[sqlite3.Row]:
        with self.get_connection() as conn:
            return conn.execute(
                "SELECT timestamp, level, message FROM activity_logs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
