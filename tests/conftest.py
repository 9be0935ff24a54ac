"""Pytest configuration and fixtures for pg-provision tests."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.models.health import (
    HealthChecks,
    HealthSnapshot,
    HealthStatus,
    PostgresReadCheck,
    PostgresWriteCheck,
)


# Markers for test categorization
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (deselect with '-m \"not integration\"')"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running tests"
    )


@pytest.fixture(scope="session")
def anyio_backend():
    """Set the async backend for anyio."""
    return "asyncio"


def pytest_collection_modifyitems(config, items):
    """Run integration tests last."""
    items.sort(key=lambda item: (item.get_closest_marker("integration") is not None, item.name))


class FakePool:
    """Stands in for ConnectionPool; hands out one connection object."""

    def __init__(self, conn=None, acquire_error: Exception | None = None):
        self.conn = conn if conn is not None else MagicMock()
        self.acquire_error = acquire_error
        self.acquire_count = 0
        self.closed = False

    @asynccontextmanager
    async def acquire(self, timeout=None):
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquire_count += 1
        yield self.conn

    async def close(self):
        self.closed = True


def make_snapshot(status: HealthStatus = HealthStatus.PASS, version: str = "test") -> HealthSnapshot:
    """Build a snapshot stamped with the current time."""
    now = datetime.now(timezone.utc).isoformat()
    return HealthSnapshot(
        status=status,
        checks=HealthChecks(
            postgres_read=PostgresReadCheck(status=status, time=now),
            postgres_write=PostgresWriteCheck(status=status, time=now, pg_is_in_recovery=False),
        ),
        time=now,
        version=version,
    )


@pytest.fixture
def fake_pool():
    """Factory for FakePool instances."""
    return FakePool


@pytest.fixture
def snapshot_factory():
    """Factory for health snapshots."""
    return make_snapshot
