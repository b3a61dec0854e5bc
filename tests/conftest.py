"""Shared fixtures: an on-disk store per test, plus a seeded roadmap."""

import pytest

from taskmgr.storage.composite import RepositoryComposite


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "roadmap.db"


@pytest.fixture
def store(db_path):
    """RepositoryComposite on a fresh SQLite file, project code TM."""
    store = RepositoryComposite(db_path, project_code="TM")
    yield store
    store.close()


@pytest.fixture
def roadmap(store):
    return store.create_roadmap("Ship the planner", "Teams plan in tm")


@pytest.fixture
def track(store, roadmap):
    return store.create_track(roadmap.id, "Storage")


@pytest.fixture
def task(store, track):
    return store.create_task(track.id, "Create schema")
