# smart_collections/ranking.py
"""
Turns strategy buckets into ranked Suggestion values.

Per-strategy minimum sizes, the result cap and the deduplication policy are all
carried by RankerConfig so they can be tuned without touching the strategies.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
import re
import logging

import pandas as pd

from .extraction import UNKNOWN_CAMERA, UNKNOWN_DATE
from .grouping import Buckets, build_asset_frame, group_by_camera, group_by_date, group_by_filename
from .models import Asset, AssetId, PreviewPhoto, Suggestion, SuggestionType

logger = logging.getLogger(__name__)

DEDUP_POLICY_OVERLAP = 'overlap'
DEDUP_POLICY_NONE = 'none'


@dataclass(frozen=True)
class RankerConfig:
    min_date_group_size: int = 2
    min_filename_group_size: int = 3
    min_camera_group_size: int = 5
    max_suggestions: int = 10
    preview_count: int = 4
    dedup_policy: str = DEDUP_POLICY_OVERLAP
    overlap_threshold: float = 0.5

    @classmethod
    def from_config(cls, app_config: Any) -> RankerConfig:
        """Builds a RankerConfig from the `suggestions` section of the app config."""
        defaults = cls()
        return cls(
            min_date_group_size=int(app_config.get('suggestions.min_date_group_size', defaults.min_date_group_size)),
            min_filename_group_size=int(app_config.get('suggestions.min_filename_group_size', defaults.min_filename_group_size)),
            min_camera_group_size=int(app_config.get('suggestions.min_camera_group_size', defaults.min_camera_group_size)),
            max_suggestions=int(app_config.get('suggestions.max_suggestions', defaults.max_suggestions)),
            preview_count=int(app_config.get('suggestions.preview_count', defaults.preview_count)),
            dedup_policy=str(app_config.get('suggestions.dedup_policy', defaults.dedup_policy)),
            overlap_threshold=float(app_config.get('suggestions.overlap_threshold', defaults.overlap_threshold)),
        )


# --- Naming ---

def format_date_name(date_key: str) -> str:
    """'2024-01-15' -> 'January 15, 2024'. Keys that are not real dates are returned as is."""
    if date_key == UNKNOWN_DATE:
        return UNKNOWN_DATE
    try:
        date = datetime.strptime(date_key, '%Y-%m-%d')
    except ValueError:
        return date_key
    return f"{date.strftime('%B')} {date.day}, {date.year}"


def format_series_name(prefix: str) -> str:
    """'wedding_ceremony-' -> 'Wedding Ceremony Series'."""
    words = [word for word in re.split(r'[-_]+', prefix) if word]
    title = ' '.join(word.capitalize() for word in words) if words else prefix
    return f"{title} Series"


def _describe(suggestion_type: SuggestionType, key: str, name: str) -> str:
    if suggestion_type == 'date':
        return "Photos without a capture date" if key == UNKNOWN_DATE else f"Photos taken on {name}"
    if suggestion_type == 'filename':
        return f"Photos with filename starting with '{key}'"
    return f"Photos taken with {name}"


# --- Strategy table ---

@dataclass(frozen=True)
class StrategySpec:
    type: SuggestionType
    group: Callable[[pd.DataFrame], Buckets]
    min_size_field: str
    name_for: Callable[[str], str]
    never_suggest: Tuple[str, ...] = ()


STRATEGIES: Tuple[StrategySpec, ...] = (
    StrategySpec('date', group_by_date, 'min_date_group_size', format_date_name),
    StrategySpec('filename', group_by_filename, 'min_filename_group_size', format_series_name),
    StrategySpec('camera', group_by_camera, 'min_camera_group_size', lambda key: key, (UNKNOWN_CAMERA,)),
)


def _thumbnail_lookup(df: pd.DataFrame) -> Dict[AssetId, Optional[str]]:
    return {
        asset_id: (None if pd.isna(url) else url)
        for asset_id, url in zip(df['asset_id'], df['thumbnail_url'])
    }


def build_suggestions(df: pd.DataFrame, config: RankerConfig) -> List[Suggestion]:
    """
    Runs every strategy and builds a Suggestion for each bucket that meets its
    strategy's minimum size. Output order is strategy order, then bucket
    discovery order.
    """
    thumbnails = _thumbnail_lookup(df)
    suggestions: List[Suggestion] = []
    for spec in STRATEGIES:
        min_size = getattr(config, spec.min_size_field)
        kept = 0
        for key, asset_ids in spec.group(df).items():
            if key in spec.never_suggest or len(asset_ids) < min_size:
                continue
            name = spec.name_for(key)
            suggestions.append(Suggestion(
                type=spec.type,
                name=name,
                description=_describe(spec.type, key, name),
                asset_ids=list(asset_ids),
                photo_count=len(asset_ids),
                preview_photos=[
                    PreviewPhoto(id=asset_id, thumbnail_url=thumbnails.get(asset_id))
                    for asset_id in asset_ids[:config.preview_count]
                ],
            ))
            kept += 1
        logger.debug(f"Strategy '{spec.type}' kept {kept} bucket(s) at minimum size {min_size}")
    return suggestions


# --- Deduplication policies ---

DedupPolicy = Callable[[List[Suggestion], RankerConfig], List[Suggestion]]


def keep_all_suggestions(suggestions: List[Suggestion], config: RankerConfig) -> List[Suggestion]:
    """Never suppresses anything."""
    return list(suggestions)


def suppress_overlapping_series(suggestions: List[Suggestion], config: RankerConfig) -> List[Suggestion]:
    """
    Drops a filename suggestion when at least `overlap_threshold` of its members
    are already covered by a single dated suggestion. The Unknown Date bucket
    never counts as coverage.
    """
    date_sets = [set(s.asset_ids) for s in suggestions if s.type == 'date' and s.name != UNKNOWN_DATE]
    if not date_sets:
        return list(suggestions)

    kept: List[Suggestion] = []
    for suggestion in suggestions:
        if suggestion.type == 'filename' and suggestion.asset_ids:
            members = set(suggestion.asset_ids)
            best_overlap = max(len(members & date_set) for date_set in date_sets) / len(members)
            if best_overlap >= config.overlap_threshold:
                logger.debug(f"Suppressing '{suggestion.name}': {best_overlap:.0%} already covered by a date suggestion")
                continue
        kept.append(suggestion)
    return kept


DEDUP_POLICIES: Dict[str, DedupPolicy] = {
    DEDUP_POLICY_OVERLAP: suppress_overlapping_series,
    DEDUP_POLICY_NONE: keep_all_suggestions,
}


def get_dedup_policy(name: str) -> DedupPolicy:
    try:
        return DEDUP_POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown dedup policy: {name}. Expected one of {sorted(DEDUP_POLICIES)}") from None


def rank_suggestions(df: pd.DataFrame, config: RankerConfig,
                     dedup_policy: Optional[DedupPolicy] = None) -> List[Suggestion]:
    """Builds, deduplicates, sorts (largest first, stable) and truncates suggestions."""
    if df.empty:
        return []
    policy = dedup_policy or get_dedup_policy(config.dedup_policy)
    candidates = build_suggestions(df, config)
    survivors = policy(candidates, config)
    ranked = sorted(survivors, key=lambda s: -s.photo_count)
    logger.info(f"Ranked {len(ranked)} candidate suggestion(s) from {len(candidates)} "
                f"(cap {config.max_suggestions})")
    return ranked[:config.max_suggestions]


def rank_assets(assets: Sequence[Asset], config: RankerConfig,
                dedup_policy: Optional[DedupPolicy] = None) -> List[Suggestion]:
    """Convenience wrapper that builds the asset frame first."""
    return rank_suggestions(build_asset_frame(assets), config, dedup_policy)
