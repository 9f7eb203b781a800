"""
Shared test setup.

Settings are read at import time, so the required secret is provided
before any yardsale module is imported.
"""
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest

from yardsale.services.image_storage import ImageStorage


@pytest.fixture
def storage(tmp_path):
    """Image store writing into a temporary directory."""
    return ImageStorage(upload_dir=str(tmp_path / "uploads"), url_prefix="/uploads", max_size_mb=1)
