"""
pytest configuration for the status-code stream job tests.

Adds the services directory to the Python path so tests run without installing.
"""

import json
import sys
from pathlib import Path

import pytest

services_dir = Path(__file__).parent.parent / "services"
sys.path.insert(0, str(services_dir))


@pytest.fixture
def write_properties(tmp_path):
    """Write a runtime application properties file and return its path."""

    def _write(groups):
        path = tmp_path / "application_properties.json"
        path.write_text(json.dumps(groups), encoding="utf-8")
        return str(path)

    return _write
