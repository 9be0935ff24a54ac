"""Service modules for pg-provision."""

from src.services.database import (
    ConnectParams,
    ConnectionPool,
    build_ssl_context,
    close_pool,
    create_pool,
    parse_connection_string,
    split_pem_bundle,
)
from src.services.provisioning import (
    build_pool,
    check_database_exists,
    database_exists,
    ensure_database,
    resolve_database_name,
)
from src.services.migrations import (
    MigrationPhase,
    MigrationRunner,
    applied_migrations,
    list_scripts,
    migrate,
    read_script,
)
from src.services.readiness import probe_readiness, to_rfc3339
from src.services.health_cache import HealthCache

__all__ = [
    # Database
    "ConnectParams",
    "ConnectionPool",
    "build_ssl_context",
    "close_pool",
    "create_pool",
    "parse_connection_string",
    "split_pem_bundle",
    # Provisioning
    "build_pool",
    "check_database_exists",
    "database_exists",
    "ensure_database",
    "resolve_database_name",
    # Migrations
    "MigrationPhase",
    "MigrationRunner",
    "applied_migrations",
    "list_scripts",
    "migrate",
    "read_script",
    # Health
    "probe_readiness",
    "to_rfc3339",
    "HealthCache",
]
