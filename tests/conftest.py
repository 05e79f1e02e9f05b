"""Shared pytest fixtures for storyforge tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from storyforge.adapters import HistoryStore
from storyforge.core.config import Settings
from tests.mocks.providers import MockImageProvider, MockStoryWriter


@pytest_asyncio.fixture
async def history_store() -> AsyncGenerator[HistoryStore, None]:
    """Provide a connected in-memory history store.

    Each test gets a fresh database; the connection is closed afterwards.
    """
    async with HistoryStore(":memory:") as store:
        yield store


@pytest.fixture
def images_dir(tmp_path: Path) -> Path:
    """Provide an empty managed image directory."""
    directory = tmp_path / "public" / "images"
    directory.mkdir(parents=True)
    return directory


@pytest.fixture
def settings(tmp_path: Path, images_dir: Path) -> Settings:
    """Settings pointing every path into the test's temporary directory."""
    return Settings(
        database_path=str(tmp_path / "history.db"),
        public_dir=images_dir.parent,
        images_dir=images_dir,
    )


@pytest.fixture
def mock_image_provider() -> MockImageProvider:
    """Provide a mock image provider returning a small PNG."""
    return MockImageProvider()


@pytest.fixture
def mock_story_writer() -> MockStoryWriter:
    """Provide a mock story writer returning "A mock story."."""
    return MockStoryWriter()
