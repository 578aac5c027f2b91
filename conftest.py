import pytest

from storywizard.gateway import UnconfiguredGateway
from storywizard.storage import KeyValueStore, StoryRepository
from storywizard.stories import StoryStore
from storywizard.workspace import Workspace


@pytest.fixture
def data_dir(tmp_path):
    """A fresh, empty data directory for every test."""
    path = tmp_path / "data-tests"
    path.mkdir()
    return path


@pytest.fixture
def kv(data_dir):
    return KeyValueStore(data_dir)


@pytest.fixture
def store(kv):
    """A story store over a single test namespace."""
    return StoryStore(StoryRepository(kv, "tester"))


@pytest.fixture
def workspace(kv):
    return Workspace(kv, UnconfiguredGateway())
