"""Health snapshot models.

The JSON shape follows the health check response format for HTTP APIs
(https://inadarei.github.io/rfc-healthcheck/).
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Health status enumeration."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


class PostgresReadCheck(BaseModel):
    """Result of the read query."""

    status: HealthStatus
    time: Optional[str] = None
    output: str = ""
    version: Optional[str] = None


class PostgresWriteCheck(BaseModel):
    """Result of the write query."""

    status: HealthStatus
    time: Optional[str] = None
    pg_is_in_recovery: Optional[bool] = None
    output: str = ""
    version: Optional[str] = None


class HealthChecks(BaseModel):
    """Checks included in a snapshot."""

    postgres_read: PostgresReadCheck
    postgres_write: PostgresWriteCheck


class HealthSnapshot(BaseModel):
    """One readiness probe outcome."""

    status: HealthStatus
    checks: HealthChecks
    output: str = ""
    time: str = Field(..., description="RFC 3339 time the probe started")
    version: str

    @property
    def is_passing(self) -> bool:
        return self.status == HealthStatus.PASS

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible response shape."""
        return self.model_dump(mode="json")
