"""Target database provisioning."""

import logging
from typing import Optional

import asyncpg

from src.models.database import DatabaseSettings
from src.services.database import ConnectionPool, create_pool
from src.utils.constants import DEFAULT_DATABASE_NAME, ErrorCode
from src.utils.exceptions import DatabaseProvisioningError

logger = logging.getLogger("provisioning")

DATABASE_EXISTS_QUERY = "SELECT 1 FROM pg_database WHERE datname = $1"


def resolve_database_name(settings: DatabaseSettings) -> str:
    """Return the configured database name, falling back to the default."""
    if settings.database:
        return settings.database
    logger.warning(
        "Failed to retrieve a database name from settings, using default value '%s'",
        DEFAULT_DATABASE_NAME
    )
    return DEFAULT_DATABASE_NAME


async def database_exists(conn: asyncpg.Connection, database: str) -> bool:
    """Check whether a database exists on the server."""
    rows = await conn.fetch(DATABASE_EXISTS_QUERY, database)
    return len(rows) > 0


async def build_pool(settings: DatabaseSettings, without_database: bool = False, **kwargs) -> ConnectionPool:
    """Build a pool for the given settings, honoring their TLS options.

    Args:
        settings: Database settings.
        without_database: Connect at the server level, no database selected.
        **kwargs: Passed through to ``create_pool``.

    Returns:
        The connection pool.
    """
    if without_database:
        connection_string = settings.connection_string_without_database()
    else:
        connection_string = settings.connection_string()
    return await create_pool(
        connection_string,
        tls_enabled=settings.tls.enabled,
        ca_certificates=settings.tls.ca_certificates,
        **kwargs
    )


async def check_database_exists(settings: DatabaseSettings, database: Optional[str] = None) -> bool:
    """Check database existence through a short-lived admin pool.

    Raises:
        DatabaseProvisioningError: If the check cannot be performed.
    """
    name = database or resolve_database_name(settings)
    admin_pool = await build_pool(settings, without_database=True, min_size=0, max_size=1)
    try:
        async with admin_pool.acquire() as conn:
            return await database_exists(conn, name)
    except Exception as e:
        raise DatabaseProvisioningError(
            ErrorCode.DATABASE_CHECK_FAILED,
            name,
            f"Failed to assert existence of database '{name}' on "
            f"{settings.connection_string_without_database_censored()}: {e}"
        ) from e
    finally:
        await admin_pool.close()


async def ensure_database(settings: DatabaseSettings, **pool_kwargs) -> ConnectionPool:
    """Make sure the target database exists, then return a pool scoped to it.

    The existence check and ``CREATE DATABASE`` run through an admin pool with
    no database selected. The database name is trusted configuration and is
    quoted but not otherwise sanitized.

    Args:
        settings: Database settings. A copy is scoped to the resolved name.
        **pool_kwargs: Passed through to ``create_pool`` for the scoped pool.

    Returns:
        A pool connected to the target database.

    Raises:
        DatabaseProvisioningError: If the check or the creation fails.
        InvalidConnectionStringError, TlsConfigurationError, PoolBuildError:
            If a pool cannot be built.
    """
    name = resolve_database_name(settings)
    scoped_settings = settings.with_database(name)

    admin_pool = await build_pool(settings, without_database=True, min_size=0, max_size=1)
    try:
        try:
            async with admin_pool.acquire() as conn:
                exists = await database_exists(conn, name)
                if exists:
                    logger.info("Database '%s' already exists", name)
                else:
                    await _create_database(conn, name)
        except DatabaseProvisioningError:
            raise
        except Exception as e:
            raise DatabaseProvisioningError(
                ErrorCode.DATABASE_CHECK_FAILED,
                name,
                f"Failed to assert existence of database '{name}' on "
                f"{settings.connection_string_without_database_censored()}: {e}"
            ) from e
    finally:
        await admin_pool.close()

    logger.info("Connecting to %s", scoped_settings.connection_string_censored())
    return await build_pool(scoped_settings, **pool_kwargs)


async def _create_database(conn: asyncpg.Connection, name: str) -> None:
    query = f'CREATE DATABASE "{name}"'
    try:
        await conn.execute(query)
    except Exception as e:
        raise DatabaseProvisioningError(
            ErrorCode.DATABASE_CREATE_FAILED,
            name,
            f"Failed to create database '{name}': {e}"
        ) from e
    logger.info("Created database '%s'", name)
