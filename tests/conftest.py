"""Shared fixtures: test environment and JSON stores rooted in a temporary directory."""

import os
from pathlib import Path

# Settings are read when backoffice.main is imported; set the environment first.
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402

from backoffice.config.settings import AppSettings  # noqa: E402
from backoffice.infrastructure.storage.stores import DataStores, build_stores  # noqa: E402


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    """Settings whose data directory and collection files all live under tmp_path."""
    files = {
        name: str(tmp_path / Path(field.default).name)
        for name, field in AppSettings.model_fields.items()
        if name.startswith("data_") and name.endswith("_file")
    }
    return AppSettings(data_dir=str(tmp_path), **files)


@pytest.fixture
def stores(settings: AppSettings) -> DataStores:
    return build_stores(settings)
