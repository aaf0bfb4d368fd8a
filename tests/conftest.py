"""Shared pytest configuration and fixtures for the carousel test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "browser: mark test as requiring a real Chromium via Playwright"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--run-browser",
        action="store_true",
        default=False,
        help="Run tests that launch a real browser",
    )


def pytest_collection_modifyitems(config, items):
    """Skip browser tests unless --run-browser is specified."""
    if config.getoption("--run-browser"):
        return

    skip_browser = pytest.mark.skip(reason="Need --run-browser option to run")
    for item in items:
        if "browser" in item.keywords:
            item.add_marker(skip_browser)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT
