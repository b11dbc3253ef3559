"""
pytest configuration and fixtures for GATT parser tests.

Provides reusable fixtures for:
- The bundled characteristic catalog
- A parser backed by that catalog
- Hypothesis property-based testing configuration
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings, Verbosity, Phase

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from gatt_catalog import SpecificationReader
from gatt_parser import GattParser

CATALOG_DIR = Path(__file__).parent.parent / "characteristics"


# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture(scope="session")
def catalog_reader():
    """Specification reader over the bundled characteristics/ directory."""
    return SpecificationReader.from_directory(CATALOG_DIR)


@pytest.fixture
def gatt_parser(catalog_reader):
    """
    Provide a parser backed by the bundled catalog.

    Usage:
        def test_battery(gatt_parser):
            assert gatt_parser.parse('2A19', bytes([51])) == {'Level': 51}
    """
    return GattParser(catalog_reader)


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
