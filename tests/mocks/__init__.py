"""Mock implementations for testing."""

from tests.mocks.providers import (
    MockImageProvider,
    MockStoryWriter,
    make_jpeg_bytes,
    make_png_bytes,
)

__all__ = ["MockImageProvider", "MockStoryWriter", "make_jpeg_bytes", "make_png_bytes"]
