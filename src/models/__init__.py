"""Data models for pg-provision."""

from src.models.database import (
    DatabaseSettings,
    TlsSettings,
    MigrationSettings,
)
from src.models.health import (
    HealthStatus,
    PostgresReadCheck,
    PostgresWriteCheck,
    HealthChecks,
    HealthSnapshot,
)
from src.models.migration import (
    MigrationScript,
    MigrationRecord,
    MigrationReport,
    compute_checksum,
)

__all__ = [
    "DatabaseSettings",
    "TlsSettings",
    "MigrationSettings",
    "HealthStatus",
    "PostgresReadCheck",
    "PostgresWriteCheck",
    "HealthChecks",
    "HealthSnapshot",
    "MigrationScript",
    "MigrationRecord",
    "MigrationReport",
    "compute_checksum",
]
