"""Utility modules for pg-provision."""

from src.utils.constants import ErrorCode, ERROR_MESSAGES
from src.utils.exceptions import (
    ProvisioningError,
    InvalidConnectionStringError,
    TlsConfigurationError,
    PoolBuildError,
    DatabaseProvisioningError,
    MigrationDirectoryError,
    MigrationFileError,
    MigrationExecutionError,
)
from src.utils.rwlock import ReadWriteLock

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "ProvisioningError",
    "InvalidConnectionStringError",
    "TlsConfigurationError",
    "PoolBuildError",
    "DatabaseProvisioningError",
    "MigrationDirectoryError",
    "MigrationFileError",
    "MigrationExecutionError",
    "ReadWriteLock",
]
