"""
Pytest configuration and fixtures for filmcam tests.
"""

import io
import tempfile
from collections.abc import Generator
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from filmcam.config import get_config
from filmcam.models.database import create_database
from filmcam.models.pixel_buffer import PixelBuffer
from filmcam.services.metadata import MetadataService


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def mock_user_id() -> str:
    """Provide a mock user ID for testing."""
    return "test-user-123"


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("GCS_PHOTOS_BUCKET", "test-photos-bucket")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
    monkeypatch.setenv("FILMCAM_DB_PATH", ":memory:")
    get_config().clear_cache()
    yield
    get_config().clear_cache()


@pytest.fixture
def metadata_service() -> Generator[MetadataService, None, None]:
    """Metadata service over a fresh in-memory database."""
    db_manager = create_database(":memory:")
    yield MetadataService(db_manager)
    db_manager.close()


class TestDataFactory:
    """Factory class for creating test images and buffers."""

    __test__ = False

    @staticmethod
    def create_buffer(
        width: int = 4, height: int = 3, color: tuple[int, int, int, int] = (10, 128, 250, 255)
    ) -> PixelBuffer:
        return PixelBuffer.blank(width, height, color)

    @staticmethod
    def create_gradient_buffer(width: int = 64, height: int = 48, seed: int = 7) -> PixelBuffer:
        """Buffer with varied, reproducible pixel values."""
        rng = np.random.default_rng(seed)
        data = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
        data[..., 3] = 255
        return PixelBuffer(width=width, height=height, data=data)

    @staticmethod
    def create_jpeg(size: tuple[int, int] = (100, 80), color: str = "red") -> bytes:
        image = Image.new("RGB", size, color=color)
        output = io.BytesIO()
        image.save(output, format="JPEG")
        return output.getvalue()


@pytest.fixture
def factory() -> type[TestDataFactory]:
    return TestDataFactory
