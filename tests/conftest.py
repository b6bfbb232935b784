"""
Pytest configuration and shared fixtures for nexekit tests.
"""

import pytest
from pathlib import Path

from nexekit.config.parser import BuildOptions
from nexekit.core.platform import clear_platform_cache

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.node_sources import (
    cached_source_tree,
    node_source_archive,
)


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def fresh_platform_cache():
    """Reset cached platform detection around every test."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def app_entry(tmp_path: Path) -> Path:
    """Create a dependency-free application entry script."""
    entry = tmp_path / "app" / "index.js"
    entry.parent.mkdir()
    entry.write_text('console.log("hello from nexe");\n', encoding="utf-8")
    return entry


@pytest.fixture
def build_options(tmp_path: Path, app_entry: Path) -> BuildOptions:
    """BuildOptions for a pinned release with a cache under tmp_path."""
    return BuildOptions(
        entry_path=app_entry,
        output_path=tmp_path / "dist" / "app",
        runtime_version="4.2.1",
        cache_dir=tmp_path / "cache",
        verify_checksum=False,
    )
