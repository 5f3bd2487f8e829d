"""Pytest configuration and shared fixtures for the impact factor pipeline."""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fixture_data import build_config, build_mapping, build_mass_profile, build_raw_export  # noqa: E402


@pytest.fixture
def config():
    return build_config()


@pytest.fixture
def mapping():
    return build_mapping()


@pytest.fixture
def mass_profile():
    return build_mass_profile()


@pytest.fixture
def raw_exports():
    """Variant A and variant B exports in their raw column layout."""
    return build_raw_export(0), build_raw_export(1)
