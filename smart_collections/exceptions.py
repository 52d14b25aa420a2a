# smart_collections/exceptions.py
"""
Defines custom, application-specific exceptions for clear error handling.

The store and the engine's internal layers raise these; the public engine
operations catch them at the boundary and convert them into failed
ActionResults carrying an ErrorKind, so nothing escapes to the caller as an
unhandled fault.
"""
from typing import Optional


class AppServiceError(Exception):
    """Base exception for all service-related errors in the application."""
    pass

class UnauthenticatedError(AppServiceError):
    """Raised when an operation is attempted without a caller identity."""
    pass

class InvalidRequestError(AppServiceError):
    """Raised when a commit request is missing its name or its assets."""
    pass

# --- Collection Store Exceptions ---
class StoreError(AppServiceError):
    """Base exception for errors raised by the gallery collection store."""
    pass

class GalleryNotFoundError(StoreError):
    """Raised when a gallery does not exist or belongs to another organization."""
    pass

class CollectionCreateError(StoreError):
    """Raised when a new collection could not be persisted."""
    pass

class AssetAssignError(StoreError):
    """
    Raised when assets could not be reassigned to a collection. Carries the id of
    the collection that was already created, when there is one.
    """
    def __init__(self, message: str, collection_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection_id = collection_id

# --- Engine Exceptions ---
class AnalysisError(AppServiceError):
    """Raised for unexpected faults while extracting, grouping or ranking."""
    pass
