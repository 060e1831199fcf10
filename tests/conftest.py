"""
Pytest configuration for liststream tests.
"""

import logging
import os

import pytest
from typer.testing import CliRunner


@pytest.fixture(autouse=True)
def restore_root_handlers():
    """Drop handlers that setup_logging() attaches to the root logger."""
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()


@pytest.fixture
def random_buffers():
    """Twenty distinct 32-byte buffers."""
    return [os.urandom(32) for _ in range(20)]


@pytest.fixture
def expected_objects():
    """Mixed values written in object mode."""
    return ["foo", "bar", {"obj": True}, [1, 2, 3]]


@pytest.fixture
def runner():
    return CliRunner()
