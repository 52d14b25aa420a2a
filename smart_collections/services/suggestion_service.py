# smart_collections/services/suggestion_service.py
"""
Runs the analysis pass for one gallery: fetch the uncategorized assets, run the
grouping strategies and rank the resulting suggestions.

This service raises the application's exceptions; converting them into
caller-facing results is the engine's job.
"""
import logging
from typing import Optional
from .store_service import CollectionStore
from ..exceptions import AnalysisError, GalleryNotFoundError
from ..grouping import build_asset_frame
from ..models import AnalysisResult, GalleryId
from ..ranking import DedupPolicy, RankerConfig, rank_suggestions

logger = logging.getLogger(__name__)

NOTHING_TO_ORGANIZE = "No uncategorized photos to organize"


def found_message(count: int) -> str:
    return f"Found {count} smart collection suggestion{'s' if count != 1 else ''}"


def no_groupings_message(total: int) -> str:
    return f"No clear groupings found among {total} uncategorized photo{'s' if total != 1 else ''}"


class SuggestionService:
    def __init__(self, store: CollectionStore, ranker_config: Optional[RankerConfig] = None,
                 dedup_policy: Optional[DedupPolicy] = None) -> None:
        self.store = store
        self.ranker_config = ranker_config or RankerConfig()
        self.dedup_policy = dedup_policy

    def analyze(self, gallery_id: GalleryId, organization_id: str) -> AnalysisResult:
        """
        Proposes collections for the gallery's uncategorized photos.

        Returns:
            An AnalysisResult. An empty suggestion list is a normal outcome.

        Raises:
            GalleryNotFoundError: If the gallery is missing or owned by another organization.
            AnalysisError: If extraction, grouping or ranking fails unexpectedly.
        """
        if self.store.get_gallery(gallery_id, organization_id) is None:
            raise GalleryNotFoundError(f"Gallery {gallery_id} not found.")

        assets = self.store.find_uncategorized_assets(gallery_id, organization_id)
        logger.info(f"Analyzing {len(assets)} uncategorized asset(s) in gallery {gallery_id}")
        if not assets:
            return AnalysisResult(suggestions=[], total_uncategorized=0, message=NOTHING_TO_ORGANIZE)

        try:
            df = build_asset_frame(assets)
            suggestions = rank_suggestions(df, self.ranker_config, self.dedup_policy)
        except Exception as e:
            logger.error(f"Grouping failed for gallery {gallery_id}.", exc_info=True)
            raise AnalysisError(f"Could not analyze photos in gallery {gallery_id}.") from e

        message = found_message(len(suggestions)) if suggestions else no_groupings_message(len(assets))
        logger.info(f"Gallery {gallery_id}: {message}")
        return AnalysisResult(suggestions=suggestions, total_uncategorized=len(assets), message=message)
