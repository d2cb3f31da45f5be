"""
Shared pytest fixtures and configuration for disposal tests.

This module provides:
- An isolated, started DisposalService per test
- Fast shutdown settings
- Default-service and settings-cache cleanup for test isolation
- structlog reset so log capture works in every test

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(service):
        ...
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

# Ensure disposal package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from disposal.service import DisposalService, reset_default_service
from disposal.settings import DisposalSettings, clear_settings_cache


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_global_state() -> Generator[None, None, None]:
    """Reset the default service, settings cache and structlog config.

    structlog is marked configured with its defaults, so services built in
    tests leave log output to ``capture_logs`` and to the test itself.
    """
    clear_settings_cache()
    structlog.reset_defaults()
    structlog.configure()
    yield
    reset_default_service(timeout=2.0)
    clear_settings_cache()
    structlog.reset_defaults()


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def settings() -> DisposalSettings:
    """Settings with short bounded waits and distinct thread names."""
    return DisposalSettings(
        shutdown_timeout_seconds=2.0,
        default_pool_max_workers=4,
        default_pool_thread_prefix="test-default-pool",
        consumer_thread_name="test-consumer",
    )


@pytest.fixture
def service(settings: DisposalSettings) -> Generator[DisposalService, None, None]:
    """A started service, stopped after the test."""
    svc = DisposalService(settings).start()
    yield svc
    svc.stop()


@pytest.fixture
def idle_service(settings: DisposalSettings) -> Generator[DisposalService, None, None]:
    """A service whose consumer is not running, for inspecting queued state."""
    svc = DisposalService(settings)
    yield svc
    svc.stop()

