"""
Shared pytest fixtures and configuration for cloudretry tests.

This module provides:
- Settings cache isolation
- Zero-delay retry policies so tests never sleep for real
- An in-memory database for transactional tests
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from cloudretry.core.config import clear_settings_cache
from cloudretry.execution import ConstantBackoff, ExponentialBackoff, RetryPolicy
from cloudretry.execution.fakes import InMemoryDatabase


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
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_cache(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run each test from an empty directory with no CLOUDRETRY_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("CLOUDRETRY_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Policies and fakes
# =============================================================================


@pytest.fixture
def instant_policy() -> RetryPolicy:
    """Three attempts, no delay, default (retryable-flag) detection."""
    return RetryPolicy(backoff=ConstantBackoff(max_attempts=3, delay=0.0))


@pytest.fixture
def tiny_exponential() -> ExponentialBackoff:
    """Pure exponential schedule in milliseconds."""
    return ExponentialBackoff(max_attempts=3, base_delay=0.001, max_delay=0.01, jitter=False)


@pytest.fixture
def db() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo configure_logging() so capture_logs() sees every logger."""
    import structlog

    yield
    structlog.reset_defaults()
