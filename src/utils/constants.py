"""Constants for pg-provision."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error code enumeration."""

    INVALID_CONNECTION_STRING = "ERR_001"
    TLS_CONFIGURATION_FAILED = "ERR_002"
    POOL_BUILD_FAILED = "ERR_003"
    DATABASE_CHECK_FAILED = "ERR_004"
    DATABASE_CREATE_FAILED = "ERR_005"
    MIGRATION_DIRECTORY_UNREADABLE = "ERR_006"
    MIGRATION_FILE_UNREADABLE = "ERR_007"
    MIGRATION_FAILED = "ERR_008"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CONNECTION_STRING: "Malformed PostgreSQL connection string",
    ErrorCode.TLS_CONFIGURATION_FAILED: "Failed to build the TLS configuration",
    ErrorCode.POOL_BUILD_FAILED: "Failed to build the connection pool",
    ErrorCode.DATABASE_CHECK_FAILED: "Failed to check database existence",
    ErrorCode.DATABASE_CREATE_FAILED: "Failed to create database",
    ErrorCode.MIGRATION_DIRECTORY_UNREADABLE: "Failed to read the migrations directory",
    ErrorCode.MIGRATION_FILE_UNREADABLE: "Failed to read a migration script",
    ErrorCode.MIGRATION_FAILED: "Migration failed",
}

# Pool and probe defaults
POOL_MAX_SIZE = 16
DEFAULT_DATABASE_NAME = "newsletter"
DEFAULT_HEALTH_CACHE_VALIDITY_MS = 1000
MIGRATIONS_TABLE = "_initialization_migrations"
CENSOR_STRING = "***REMOVED***"
