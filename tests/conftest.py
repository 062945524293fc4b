"""Shared pytest configuration and fixtures."""

import os
import shutil
import tempfile

import pytest

from ovpn_exporter.config.models import ServerTarget
from ovpn_exporter.utils.logger import setup_logger


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test", "DEBUG")


@pytest.fixture
def socket_dir():
    """Short temporary directory for UNIX sockets (paths are length limited)."""
    path = tempfile.mkdtemp(prefix="ovpn-")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def make_target(socket_dir):
    """Build a ServerTarget whose socket lives in socket_dir."""
    def _make(label):
        return ServerTarget(label=label, socket_path=os.path.join(socket_dir, f"{label}.sock"))
    return _make
