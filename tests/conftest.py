"""Shared fixtures for pybos tests."""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from pybos.output import OutputFormatter
from pybos.sync.remote import RemoteComponentClient


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True
    output.json_output = False
    return output


@pytest.fixture
def mock_remote():
    """Create a mock remote component client on mainnet."""
    remote = Mock(spec=RemoteComponentClient)
    remote.contract_id = "social.near"
    remote.fetch_records.return_value = {}
    remote.fetch_block_heights.return_value = {}
    remote.is_write_permission_granted.return_value = False
    return remote
