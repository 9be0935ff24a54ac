"""Two-phase PostgreSQL readiness probe."""

import logging
from datetime import datetime, timezone
from typing import Optional

import asyncpg

from src.models.health import (
    HealthChecks,
    HealthSnapshot,
    HealthStatus,
    PostgresReadCheck,
    PostgresWriteCheck,
)
from src.services.database import ConnectionPool

logger = logging.getLogger("readiness")

READ_QUERY = """
SELECT clock_timestamp() AS datetime, pg_is_in_recovery() AS recovery, version() AS pg_version
"""
WRITE_QUERY = """
UPDATE _healthcheck SET updated_by = $1, datetime = clock_timestamp()
WHERE id = true RETURNING datetime
"""

CLIENT_ERROR = "DB client error"
READ_STATEMENT_ERROR = "DB read statement error."
READ_ERROR = "DB read error."
WRITE_STATEMENT_ERROR = "DB write statement error."
WRITE_ERROR = "DB write error."


def to_rfc3339(value: datetime) -> str:
    """Format a datetime as RFC 3339, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _snapshot(
    status: HealthStatus,
    now: str,
    version: str,
    read: PostgresReadCheck,
    write: PostgresWriteCheck,
    output: str = ""
) -> HealthSnapshot:
    return HealthSnapshot(
        status=status,
        checks=HealthChecks(postgres_read=read, postgres_write=write),
        output=output,
        time=now,
        version=version,
    )


def failed_snapshot(output: str, now: str, version: str) -> HealthSnapshot:
    """Snapshot for a database that cannot be read at all."""
    return _snapshot(
        HealthStatus.FAIL,
        now,
        version,
        PostgresReadCheck(status=HealthStatus.FAIL, output=output),
        PostgresWriteCheck(status=HealthStatus.FAIL, output=output),
        output=output,
    )


def _degraded_snapshot(
    output: str,
    now: str,
    version: str,
    read: PostgresReadCheck,
    recovery: Optional[bool],
    pg_version: Optional[str]
) -> HealthSnapshot:
    # Readable but not writable
    write = PostgresWriteCheck(
        status=HealthStatus.FAIL,
        pg_is_in_recovery=recovery,
        output=output,
        version=pg_version,
    )
    return _snapshot(HealthStatus.WARN, now, version, read, write, output=output)


async def probe_readiness(
    pool: ConnectionPool,
    version: str,
    caller: str = "pg-provision",
    acquire_timeout: Optional[float] = None
) -> HealthSnapshot:
    """Run one read and one write query and classify the outcome.

    Never raises: every failure is folded into the returned snapshot.

    - client or read failure: status ``fail``
    - read ok, write failure: status ``warn``
    - both ok: status ``pass``

    Args:
        pool: The connection pool to probe.
        version: Service version copied into the snapshot.
        caller: Identifier written to the sentinel row.
        acquire_timeout: Seconds to wait for a pooled connection.

    Returns:
        The health snapshot.
    """
    now = to_rfc3339(datetime.now(timezone.utc))
    snapshot: Optional[HealthSnapshot] = None
    try:
        async with pool.acquire(timeout=acquire_timeout) as conn:
            snapshot = await _probe_connection(conn, version, caller, now)
    except Exception as e:
        if snapshot is not None:
            logger.warning("Failed to return postgres client to the pool: %s", e)
            return snapshot
        logger.error("Could not retrieve postgres client from pool, %s.", e)
        return failed_snapshot(CLIENT_ERROR, now, version)
    return snapshot


async def _probe_connection(
    conn: asyncpg.Connection,
    version: str,
    caller: str,
    now: str
) -> HealthSnapshot:
    try:
        read_statement = await conn.prepare(READ_QUERY)
    except Exception as e:
        logger.error("Failed to prepare healthcheck read query: %s", e)
        return failed_snapshot(READ_STATEMENT_ERROR, now, version)

    try:
        row = await read_statement.fetchrow()
        if row is None:
            raise LookupError("read query returned no rows")
        read_time = to_rfc3339(row["datetime"])
        recovery = bool(row["recovery"])
        pg_version = str(row["pg_version"])
    except Exception as e:
        logger.warning("Failed healthcheck read query: %s", e)
        return failed_snapshot(READ_ERROR, now, version)

    read = PostgresReadCheck(
        status=HealthStatus.PASS,
        time=read_time,
        version=pg_version,
    )

    try:
        write_statement = await conn.prepare(WRITE_QUERY)
    except Exception as e:
        logger.error("Failed to prepare healthcheck write query: %s", e)
        return _degraded_snapshot(WRITE_STATEMENT_ERROR, now, version, read, recovery, pg_version)

    try:
        row = await write_statement.fetchrow(f"{caller} {now}")
        if row is None:
            raise LookupError("no sentinel row updated")
        write_time = to_rfc3339(row["datetime"])
    except Exception as e:
        logger.warning("Failed healthcheck write query: %s", e)
        return _degraded_snapshot(WRITE_ERROR, now, version, read, recovery, pg_version)

    write = PostgresWriteCheck(
        status=HealthStatus.PASS,
        time=write_time,
        pg_is_in_recovery=recovery,
        version=pg_version,
    )
    return _snapshot(HealthStatus.PASS, now, version, read, write)
