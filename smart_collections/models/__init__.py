# smart_collections/models/__init__.py
"""
Models package for the Smart Collection Suggester.

This package contains all data model definitions and DTOs for type-safe
data handling throughout the application.
"""

from .dto import (
    # Core DTOs
    Asset,
    Gallery,
    Collection,
    Suggestion,
    PreviewPhoto,
    AnalysisResult,
    ApplyRequest,
    ApplyResult,
    BatchItemResult,
    BatchResult,
    ActionResult,
    ErrorKind,

    # Type aliases
    SuggestionType,
    AssetId,
    CollectionId,
    GalleryId,

    # Utility functions
    asset_from_db_row,
    collection_from_db_row,
    gallery_from_db_row,
)

__all__ = [
    # Core DTOs
    'Asset',
    'Gallery',
    'Collection',
    'Suggestion',
    'PreviewPhoto',
    'AnalysisResult',
    'ApplyRequest',
    'ApplyResult',
    'BatchItemResult',
    'BatchResult',
    'ActionResult',
    'ErrorKind',

    # Type aliases
    'SuggestionType',
    'AssetId',
    'CollectionId',
    'GalleryId',

    # Utility functions
    'asset_from_db_row',
    'collection_from_db_row',
    'gallery_from_db_row',
]
