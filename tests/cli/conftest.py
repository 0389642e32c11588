"""Shared fixtures for CLI tests."""

import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def restore_logger():
    """Re-attach the default sink after commands reconfigure logging."""
    yield
    logger.remove()
    logger.add(sys.stderr)
