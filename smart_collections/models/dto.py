# smart_collections/models/dto.py
"""
Data Transfer Objects (DTOs) for type-safe data handling throughout the application.

This module provides strongly typed data classes for the records the engine reads
from the collection store (assets, galleries, collections), the transient
suggestions it produces, and the result shapes it returns to callers.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any, Literal, Union
import json
import logging

logger = logging.getLogger(__name__)

# Type aliases for better readability
SuggestionType = Literal['date', 'filename', 'camera']
AssetId = str
CollectionId = str
GalleryId = str


class ErrorKind(str, Enum):
    """Failure categories surfaced by the engine's public operations."""
    UNAUTHENTICATED = 'Unauthenticated'
    NOT_FOUND = 'NotFound'
    ANALYSIS_FAILED = 'AnalysisFailed'
    CREATE_FAILED = 'CreateFailed'
    ASSIGN_FAILED = 'AssignFailed'
    INVALID_REQUEST = 'InvalidRequest'


def _parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        try:
            return datetime.strptime(str(value), '%Y-%m-%d %H:%M:%S.%f')
        except ValueError:
            logger.warning(f"Could not parse date field {field_name}: {value}")
            return None


@dataclass
class Asset:
    """Represents one delivered photo and its raw metadata blob."""
    id: AssetId
    filename: str = ''
    thumbnail_url: Optional[str] = None
    exif_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    collection_id: Optional[CollectionId] = None

    @property
    def is_uncategorized(self) -> bool:
        return self.collection_id is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for database operations."""
        data = asdict(self)
        data['exif_data_json'] = json.dumps(self.exif_data) if self.exif_data is not None else None
        del data['exif_data']
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Asset:
        """Create Asset from a database row or an import manifest entry."""
        data = dict(data)

        # Import manifests use the camelCase names of the upstream product.
        for camel, snake in [('thumbnailUrl', 'thumbnail_url'), ('exifData', 'exif_data'),
                             ('createdAt', 'created_at'), ('collectionId', 'collection_id')]:
            if camel in data and snake not in data:
                data[snake] = data.pop(camel)

        if 'exif_data_json' in data:
            raw = data.pop('exif_data_json')
            try:
                data['exif_data'] = json.loads(raw) if raw else None
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Could not parse JSON field exif_data_json for asset {data.get('id')}")
                data['exif_data'] = None

        data['created_at'] = _parse_datetime(data.get('created_at'), 'created_at')
        filtered_data = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered_data)


@dataclass
class Gallery:
    """A tenant-scoped container of assets."""
    id: GalleryId
    organization_id: str
    name: str = ''
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Gallery:
        data = dict(data)
        data['created_at'] = _parse_datetime(data.get('created_at'), 'created_at')
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class Collection:
    """A persisted, named grouping of assets within one gallery."""
    id: CollectionId
    gallery_id: GalleryId
    name: str
    description: Optional[str] = None
    cover_asset_id: Optional[AssetId] = None
    sort_order: int = 0
    photo_count: int = 0
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.created_at:
            data['created_at'] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Collection:
        data = dict(data)
        data['created_at'] = _parse_datetime(data.get('created_at'), 'created_at')
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class PreviewPhoto:
    id: AssetId
    thumbnail_url: Optional[str] = None


@dataclass
class Suggestion:
    """A transient, engine-proposed candidate collection. Never persisted."""
    type: SuggestionType
    name: str
    description: str
    asset_ids: List[AssetId] = field(default_factory=list)
    photo_count: int = 0
    preview_photos: List[PreviewPhoto] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisResult:
    suggestions: List[Suggestion] = field(default_factory=list)
    total_uncategorized: int = 0
    message: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'suggestions': [s.to_dict() for s in self.suggestions],
            'total_uncategorized': self.total_uncategorized,
            'message': self.message,
        }


@dataclass
class ApplyRequest:
    """An accepted suggestion submitted for commit."""
    name: str
    asset_ids: List[AssetId] = field(default_factory=list)
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ApplyRequest:
        """Accepts both the engine's own suggestion dicts and camelCase payloads."""
        asset_ids = data.get('asset_ids', data.get('assetIds')) or []
        return cls(
            name=data.get('name') or '',
            asset_ids=list(asset_ids),
            description=data.get('description'),
        )

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion) -> ApplyRequest:
        return cls(name=suggestion.name, asset_ids=list(suggestion.asset_ids),
                   description=suggestion.description)


@dataclass
class ApplyResult:
    collection_id: CollectionId
    name: str
    photo_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BatchItemResult:
    """One entry of the apply-all ledger."""
    name: str
    success: bool
    error: Optional[str] = None
    collection_id: Optional[CollectionId] = None
    photo_count: int = 0
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.error is None:
            del data['error']
        if self.error_kind is None:
            del data['error_kind']
        else:
            data['error_kind'] = self.error_kind.value
        return data


@dataclass
class BatchResult:
    results: List[BatchItemResult] = field(default_factory=list)
    success_count: int = 0
    total_count: int = 0
    cancelled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [r.to_dict() for r in self.results],
            'success_count': self.success_count,
            'total_count': self.total_count,
            'cancelled': self.cancelled,
        }


@dataclass
class ActionResult:
    """
    The outcome of a public engine operation. Failures carry an ErrorKind and a
    caller-safe message; some failures (AssignFailed) still carry data.
    """
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Any = None) -> ActionResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, error: str, data: Any = None) -> ActionResult:
        return cls(success=False, data=data, error=error, error_kind=kind)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {'success': self.success}
        if self.data is not None:
            payload['data'] = self.data.to_dict() if hasattr(self.data, 'to_dict') else self.data
        if not self.success:
            payload['error'] = self.error
            payload['error_kind'] = self.error_kind.value if self.error_kind else None
        return payload


# Utility functions for conversion
def asset_from_db_row(row: Union[Dict[str, Any], Any]) -> Asset:
    """Convert database row to Asset DTO."""
    if hasattr(row, 'keys'):
        # sqlite3.Row or dict-like object
        return Asset.from_dict(dict(row))
    return Asset.from_dict(row)


def collection_from_db_row(row: Union[Dict[str, Any], Any]) -> Collection:
    """Convert database row to Collection DTO."""
    if hasattr(row, 'keys'):
        return Collection.from_dict(dict(row))
    return Collection.from_dict(row)


def gallery_from_db_row(row: Union[Dict[str, Any], Any]) -> Gallery:
    """Convert database row to Gallery DTO."""
    if hasattr(row, 'keys'):
        return Gallery.from_dict(dict(row))
    return Gallery.from_dict(row)
