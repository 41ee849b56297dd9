"""
Pytest configuration and shared fixtures for softusb tests.
"""

from __future__ import annotations

import io
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from softusb.core import log


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "softusb.yaml"
    config_data = {
        "logging": {
            "level": "debug",
            "format": "json",
            "output": str(temp_dir / "logs" / "softusb.log"),
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    """Restore the process-wide level and sink after each test."""
    level = log.get_level()
    logger = log.get_logger()
    yield
    log.set_level(level)
    log.set_logger(logger)


@pytest.fixture
def buf() -> io.StringIO:
    """In-memory log destination."""
    return io.StringIO()
