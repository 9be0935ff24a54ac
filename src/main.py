"""Main entry point for the pg-provision server."""

import asyncio
import logging
import sys

from mcp.server.fastmcp import FastMCP

from src.config import Settings
from src.models.database import DatabaseSettings
from src.services.database import ConnectionPool, close_pool
from src.services.health_cache import HealthCache
from src.services.migrations import migrate
from src.services.provisioning import (
    build_pool,
    check_database_exists,
    ensure_database,
    resolve_database_name,
)
from src.tools.health import register_health_tool
from src.utils.constants import ErrorCode
from src.utils.exceptions import DatabaseProvisioningError, ProvisioningError


logger = logging.getLogger("pg_provision")


async def prepare_database(
    db_settings: DatabaseSettings,
    command_timeout: float | None = 30
) -> ConnectionPool:
    """Provision and migrate the database, returning the long-lived pool.

    With migrations enabled the database is created if missing and pending
    scripts are applied. Otherwise the database must already exist.

    Args:
        db_settings: Database settings.
        command_timeout: Per-command timeout of the returned pool.

    Returns:
        A pool scoped to the service database.

    Raises:
        ProvisioningError: On any startup-fatal condition.
    """
    migration = db_settings.migration
    if migration is not None and migration.enabled:
        pool = await ensure_database(db_settings, timeout=command_timeout)
        try:
            return await migrate(pool, migration.directory, atomic=migration.atomic)
        except BaseException:
            await close_pool(pool)
            raise

    name = resolve_database_name(db_settings)
    if not await check_database_exists(db_settings, name):
        raise DatabaseProvisioningError(
            ErrorCode.DATABASE_CHECK_FAILED,
            name,
            f"Database '{name}' doesn't exist and migrations are disabled"
        )
    return await build_pool(db_settings.with_database(name), timeout=command_timeout)


async def run_server(settings: Settings) -> None:
    """Run the server.

    Args:
        settings: Application settings.
    """
    db_settings = settings.get_database_settings()
    logger.info("Database: %s", db_settings.connection_string_censored())

    pool = await prepare_database(db_settings, command_timeout=settings.command_timeout)

    cache = HealthCache(
        pool=pool,
        version=settings.service_version,
        validity_period_ms=settings.health_cache_validity_ms,
        caller=settings.service_name
    )

    mcp = FastMCP(settings.service_name, host=settings.server_host, port=settings.server_port)
    register_health_tool(mcp, cache)

    cache.start()
    logger.info("%s ready on %s:%d", settings.service_name, settings.server_host, settings.server_port)
    try:
        await mcp.run_sse_async()
    finally:
        await cache.stop()
        await close_pool(pool)


def main() -> None:
    """Main entry point for the server."""
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="PostgreSQL provisioning and readiness server")
    parser.add_argument(
        "--dsn",
        type=str,
        help="Database DSN"
    )
    parser.add_argument(
        "--migrations",
        type=str,
        help="Migrations directory"
    )
    parser.add_argument(
        "--no-migrate",
        action="store_true",
        help="Require an existing database instead of creating and migrating it"
    )
    parser.add_argument(
        "--health-cache-ms",
        type=int,
        help="Health cache validity period in milliseconds"
    )

    args = parser.parse_args()

    # Load settings
    settings = Settings()
    if args.dsn:
        settings.postgres_dsn = args.dsn
    if args.migrations:
        settings.migration_directory = args.migrations
    if args.no_migrate:
        settings.migration_enabled = False
    if args.health_cache_ms:
        settings.health_cache_validity_ms = args.health_cache_ms

    logger.info("Starting %s %s", settings.service_name, settings.service_version)

    try:
        asyncio.run(run_server(settings))
    except ProvisioningError as e:
        logger.critical("Startup aborted [%s]: %s", e.code.value, e.message)
        sys.exit(1)


if __name__ == "__main__":
    main()
