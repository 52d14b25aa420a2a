# smart_collections/services/__init__.py
"""
Initializes the services package and provides easy access to the service
classes and the configuration singleton.

This pattern allows other parts of the application to import services with a
clean syntax, like so:
from smart_collections.services import config, GalleryStore
"""
# The order of these imports can matter if there are dependencies between them.
# config_service should generally be first.
from .config_service import config
from .store_service import CollectionStore, GalleryStore
from .suggestion_service import SuggestionService
from .commit_service import CommitService

__all__ = [
    "config",
    "CollectionStore",
    "GalleryStore",
    "SuggestionService",
    "CommitService",
]
