# smart_collections/grouping.py
"""
Contains the three independent grouping strategies.

Each strategy is a single linear pass over the uncategorized assets: the
extracted keys are laid out in a DataFrame once, then bucketed with an unsorted
groupby so that buckets come out in first-appearance order and members keep
their input order. No strategy compares assets with each other.
"""
from typing import Dict, List, Sequence
import pandas as pd
import logging

from .extraction import extract_camera_key, extract_date_key, extract_filename_prefix
from .models import Asset, AssetId

logger = logging.getLogger(__name__)

Buckets = Dict[str, List[AssetId]]

ASSET_FRAME_COLUMNS = ['asset_id', 'thumbnail_url', 'date_key', 'filename_prefix', 'camera_key']


def build_asset_frame(assets: Sequence[Asset]) -> pd.DataFrame:
    """Extracts the grouping keys of every asset into one DataFrame row each."""
    rows = [
        {
            'asset_id': asset.id,
            'thumbnail_url': asset.thumbnail_url,
            'date_key': extract_date_key(asset.exif_data),
            'filename_prefix': extract_filename_prefix(asset.filename),
            'camera_key': extract_camera_key(asset.exif_data),
        }
        for asset in assets
    ]
    return pd.DataFrame(rows, columns=ASSET_FRAME_COLUMNS)


def _bucket(df: pd.DataFrame, column: str) -> Buckets:
    if df.empty:
        return {}
    # dropna=True is what keeps assets without a key out of every bucket.
    grouped = df.groupby(column, sort=False, dropna=True)['asset_id']
    return {key: ids.tolist() for key, ids in grouped}


def group_by_date(df: pd.DataFrame) -> Buckets:
    """Temporal strategy: one bucket per capture date key, Unknown Date included."""
    buckets = _bucket(df, 'date_key')
    logger.debug(f"Temporal strategy produced {len(buckets)} bucket(s)")
    return buckets


def group_by_filename(df: pd.DataFrame) -> Buckets:
    """Lexical strategy: one bucket per filename prefix; prefix-less assets are skipped."""
    buckets = _bucket(df, 'filename_prefix')
    logger.debug(f"Lexical strategy produced {len(buckets)} bucket(s)")
    return buckets


def group_by_camera(df: pd.DataFrame) -> Buckets:
    """Device strategy: one bucket per camera key, Unknown Camera included."""
    buckets = _bucket(df, 'camera_key')
    logger.debug(f"Device strategy produced {len(buckets)} bucket(s)")
    return buckets
