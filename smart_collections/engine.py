# smart_collections/engine.py
"""
The public face of the smart collection engine.

SmartCollectionEngine is request scoped: it is built for one caller identity
(organization) and a collection store, and keeps no state between calls. Each
operation returns an ActionResult; every store or engine fault is caught here,
logged, and converted into an ErrorKind so nothing escapes to the caller.
"""
import logging
import threading
from typing import Iterable, List, Mapping, Optional, Sequence

from .commit import RequestLike, apply_in_order, as_request
from .exceptions import (
    AnalysisError, AssetAssignError, CollectionCreateError, GalleryNotFoundError,
    InvalidRequestError, UnauthenticatedError,
)
from .models import ActionResult, ApplyResult, ErrorKind, GalleryId
from .ranking import DedupPolicy, RankerConfig
from .services.commit_service import CommitService
from .services.store_service import CollectionStore, record_event
from .services.suggestion_service import SuggestionService

logger = logging.getLogger(__name__)

GALLERY_NOT_FOUND = "Gallery not found"
NOT_AUTHENTICATED = "Not authenticated"
ANALYSIS_FAILED = "Failed to analyze photos"
CREATE_FAILED = "Failed to create collection"
ASSIGN_FAILED = "Failed to assign photos to collection"


class SmartCollectionEngine:
    def __init__(self, organization_id: Optional[str], store: CollectionStore,
                 ranker_config: Optional[RankerConfig] = None,
                 dedup_policy: Optional[DedupPolicy] = None) -> None:
        self.organization_id = organization_id
        self.store = store
        self.suggestions = SuggestionService(store, ranker_config, dedup_policy)
        self.commits = CommitService(store)

    def _require_identity(self) -> str:
        if not self.organization_id:
            raise UnauthenticatedError(NOT_AUTHENTICATED)
        return self.organization_id

    def analyze_photos_for_smart_collections(self, gallery_id: GalleryId) -> ActionResult:
        """Proposes collections for the gallery's uncategorized photos."""
        try:
            organization_id = self._require_identity()
            return ActionResult.ok(self.suggestions.analyze(gallery_id, organization_id))
        except UnauthenticatedError:
            return ActionResult.fail(ErrorKind.UNAUTHENTICATED, NOT_AUTHENTICATED)
        except GalleryNotFoundError:
            logger.warning(f"Analysis requested for unknown gallery {gallery_id}")
            return ActionResult.fail(ErrorKind.NOT_FOUND, GALLERY_NOT_FOUND)
        except AnalysisError:
            return ActionResult.fail(ErrorKind.ANALYSIS_FAILED, ANALYSIS_FAILED)
        except Exception as e:
            logger.error(f"Unexpected failure analyzing gallery {gallery_id}: {e}", exc_info=True)
            return ActionResult.fail(ErrorKind.ANALYSIS_FAILED, ANALYSIS_FAILED)

    def apply_smart_collection(self, gallery_id: GalleryId, request: RequestLike) -> ActionResult:
        """
        Creates one collection from an accepted suggestion.

        On AssignFailed the result still carries an ApplyResult with the id of the
        collection that was created, so the caller can inspect or remove it.
        """
        try:
            organization_id = self._require_identity()
            request = as_request(request)
            return ActionResult.ok(self.commits.apply(gallery_id, organization_id, request))
        except UnauthenticatedError:
            return ActionResult.fail(ErrorKind.UNAUTHENTICATED, NOT_AUTHENTICATED)
        except InvalidRequestError as e:
            return ActionResult.fail(ErrorKind.INVALID_REQUEST, str(e))
        except GalleryNotFoundError:
            return ActionResult.fail(ErrorKind.NOT_FOUND, GALLERY_NOT_FOUND)
        except CollectionCreateError:
            logger.error(f"Collection creation failed in gallery {gallery_id}", exc_info=True)
            return ActionResult.fail(ErrorKind.CREATE_FAILED, CREATE_FAILED)
        except AssetAssignError as e:
            logger.error(f"Photo assignment failed in gallery {gallery_id}: {e}", exc_info=True)
            partial = None
            if e.collection_id:
                partial = ApplyResult(collection_id=e.collection_id, name=request.name, photo_count=0)
            return ActionResult.fail(ErrorKind.ASSIGN_FAILED, ASSIGN_FAILED, data=partial)
        except Exception as e:
            logger.error(f"Unexpected failure applying a suggestion in gallery {gallery_id}: {e}", exc_info=True)
            return ActionResult.fail(ErrorKind.CREATE_FAILED, CREATE_FAILED)

    def apply_all_smart_collections(self, gallery_id: GalleryId, requests: Sequence[RequestLike],
                                    cancel_event: Optional[threading.Event] = None) -> ActionResult:
        """
        Applies the suggestions one after another in the order given. Assets claimed
        by an earlier suggestion are dropped from later ones; a failed or unusable
        entry is recorded and the batch continues. Earlier collections are never
        rolled back. Entries may be the Suggestions returned by an analysis.
        """
        try:
            organization_id = self._require_identity()
            if isinstance(requests, (str, bytes, Mapping)) or not isinstance(requests, Iterable):
                raise InvalidRequestError("Suggestions must be a list.")
            batch: List[RequestLike] = list(requests)
            if self.store.get_gallery(gallery_id, organization_id) is None:
                raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")
        except UnauthenticatedError:
            return ActionResult.fail(ErrorKind.UNAUTHENTICATED, NOT_AUTHENTICATED)
        except GalleryNotFoundError:
            return ActionResult.fail(ErrorKind.NOT_FOUND, GALLERY_NOT_FOUND)
        except InvalidRequestError as e:
            return ActionResult.fail(ErrorKind.INVALID_REQUEST, str(e))
        except Exception as e:
            logger.error(f"Could not start batch apply for gallery {gallery_id}: {e}", exc_info=True)
            return ActionResult.fail(ErrorKind.CREATE_FAILED, CREATE_FAILED)

        logger.info(f"Applying {len(batch)} suggestion(s) to gallery {gallery_id}")
        result = apply_in_order(batch, lambda r: self.apply_smart_collection(gallery_id, r), cancel_event)
        logger.info(f"Batch apply for gallery {gallery_id}: {result.success_count}/{result.total_count} succeeded")
        record_event(
            self.store, "INFO", f"Applied {result.success_count} of {result.total_count} smart collection(s) in gallery {gallery_id}"
        )
        return ActionResult.ok(result)
