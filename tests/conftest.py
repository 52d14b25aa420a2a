"""Pytest fixtures shared across the test suite."""

import pytest

from smart_collections.services.store_service import GalleryStore
from tests.helpers import GALLERY_ID, ORG_ID, FakeStore

@pytest.fixture
def fake_store():
    return FakeStore(organization_id=ORG_ID, gallery_id=GALLERY_ID)


@pytest.fixture
def gallery_store(tmp_path):
    """A real SQLite-backed store with one empty gallery owned by ORG_ID."""
    store = GalleryStore(tmp_path / "galleries.db")
    store.create_gallery(ORG_ID, name="Smith Wedding", gallery_id=GALLERY_ID)
    return store
