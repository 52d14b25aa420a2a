"""Shared builders and an in-memory collection store for the tests."""

import uuid
from typing import Dict, List, Optional, Sequence

from smart_collections.exceptions import AssetAssignError, CollectionCreateError
from smart_collections.models import Asset, Collection, Gallery

ORG_ID = "org-1"
GALLERY_ID = "gal-1"


def make_asset(asset_id: str, filename: str = "photo.jpg", date: Optional[str] = None,
               make: Optional[str] = None, model: Optional[str] = None,
               thumbnail_url: Optional[str] = None, exif_data: Optional[dict] = None,
               collection_id: Optional[str] = None) -> Asset:
    """Builds an asset; `date` is an EXIF DateTimeOriginal string such as '2024:01:15 10:00:00'."""
    if exif_data is None:
        exif_data = {}
        if date is not None:
            exif_data['DateTimeOriginal'] = date
        if make is not None:
            exif_data['Make'] = make
        if model is not None:
            exif_data['Model'] = model
    return Asset(
        id=asset_id,
        filename=filename,
        thumbnail_url=thumbnail_url if thumbnail_url is not None else f"https://cdn.example.com/{asset_id}_thumb.jpg",
        exif_data=exif_data,
        collection_id=collection_id,
    )


class FakeStore:
    """
    In-memory CollectionStore. Failure switches let tests drive the commit-phase
    error paths without a database.
    """

    def __init__(self, organization_id: str = ORG_ID, gallery_id: str = GALLERY_ID,
                 assets: Sequence[Asset] = ()) -> None:
        self.galleries: Dict[str, Gallery] = {gallery_id: Gallery(id=gallery_id, organization_id=organization_id)}
        self.assets: Dict[str, Asset] = {}
        self.asset_gallery: Dict[str, str] = {}
        self.collections: Dict[str, Collection] = {}
        self.events: List[str] = []
        self.create_calls: List[str] = []
        self.reassign_calls: List[List[str]] = []
        self.fail_create_for: set = set()
        self.fail_reassign_for: set = set()
        self.raise_on_find: Optional[Exception] = None
        self.fail_log_events = False
        for asset in assets:
            self.add_asset(gallery_id, asset)

    def add_asset(self, gallery_id: str, asset: Asset) -> None:
        self.assets[asset.id] = asset
        self.asset_gallery[asset.id] = gallery_id

    def get_gallery(self, gallery_id, organization_id):
        gallery = self.galleries.get(gallery_id)
        return gallery if gallery and gallery.organization_id == organization_id else None

    def find_uncategorized_assets(self, gallery_id, organization_id):
        if self.raise_on_find:
            raise self.raise_on_find
        return [a for a in self.assets.values()
                if self.asset_gallery[a.id] == gallery_id and a.collection_id is None]

    def create_collection(self, gallery_id, organization_id, name, description=None, cover_asset_id=None):
        self.create_calls.append(name)
        if name in self.fail_create_for:
            raise CollectionCreateError(f"create failed for {name}")
        collection = Collection(id=str(uuid.uuid4()), gallery_id=gallery_id, name=name,
                                description=description, cover_asset_id=cover_asset_id,
                                sort_order=len(self.collections))
        self.collections[collection.id] = collection
        return collection

    def reassign_assets(self, collection_id, asset_ids):
        self.reassign_calls.append(list(asset_ids))
        collection = self.collections[collection_id]
        if collection.name in self.fail_reassign_for:
            raise AssetAssignError(f"reassign failed for {collection.name}")
        linked = 0
        for asset_id in asset_ids:
            if self.asset_gallery.get(asset_id) == collection.gallery_id:
                self.assets[asset_id].collection_id = collection_id
                linked += 1
        return linked

    def log_event(self, level, message):
        if self.fail_log_events:
            raise RuntimeError("activity log unavailable")
        self.events.append(f"{level}: {message}")

    def members_of(self, collection_id: str) -> List[str]:
        return [a.id for a in self.assets.values() if a.collection_id == collection_id]
