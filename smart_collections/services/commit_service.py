# smart_collections/services/commit_service.py
"""
Materializes accepted suggestions: one collection per suggestion, with the
suggestion's assets reassigned to it through the collection store.
"""
import logging
from .store_service import CollectionStore, record_event
from ..exceptions import (
    AssetAssignError, CollectionCreateError, GalleryNotFoundError, InvalidRequestError, StoreError,
)
from ..models import ApplyRequest, ApplyResult, GalleryId

logger = logging.getLogger(__name__)


class CommitService:
    def __init__(self, store: CollectionStore) -> None:
        self.store = store

    def apply(self, gallery_id: GalleryId, organization_id: str, request: ApplyRequest) -> ApplyResult:
        """
        Creates a collection for the request and moves exactly its assets into it.
        Gallery membership of each asset is re-verified by the store.

        Returns:
            The new collection's id, name and the number of photos linked.

        Raises:
            InvalidRequestError: If the name or the asset list is empty.
            GalleryNotFoundError: If the gallery is missing or owned by another organization.
            CollectionCreateError: If the collection could not be created.
            AssetAssignError: If no asset could be linked; carries the created collection's id.
        """
        name = (request.name or '').strip()
        asset_ids = list(dict.fromkeys(request.asset_ids))
        if not name:
            raise InvalidRequestError("Collection name is required.")
        if not asset_ids:
            raise InvalidRequestError("No photos selected for the collection.")

        try:
            collection = self.store.create_collection(
                gallery_id, organization_id, name,
                description=request.description,
                cover_asset_id=asset_ids[0],
            )
        except (GalleryNotFoundError, CollectionCreateError):
            raise
        except StoreError as e:
            raise CollectionCreateError(f"Could not create collection '{name}'.") from e

        try:
            linked = self.store.reassign_assets(collection.id, asset_ids)
        except StoreError as e:
            raise AssetAssignError(f"Could not assign photos to collection '{name}'.",
                                   collection_id=collection.id) from e

        if linked == 0:
            # The collection exists but holds nothing the caller asked for.
            raise AssetAssignError(f"None of the selected photos could be assigned to '{name}'.",
                                   collection_id=collection.id)

        record_event(self.store, "INFO", f"Created collection '{name}' with {linked} photo(s) in gallery {gallery_id}")
        return ApplyResult(collection_id=collection.id, name=name, photo_count=linked)
