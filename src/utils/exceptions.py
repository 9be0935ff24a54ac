"""Exception classes for pg-provision.

Every exception here is a startup-fatal condition: the service cannot accept
traffic without a reachable, migrated database.
"""

from src.utils.constants import ErrorCode, ERROR_MESSAGES


class ProvisioningError(Exception):
    """Base exception class for pg-provision."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict | None = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert the exception to a dictionary format.

        Returns:
            A dictionary representation of the error.
        """
        return {
            "status": "error",
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details
            }
        }


class InvalidConnectionStringError(ProvisioningError):
    """Connection string could not be parsed."""

    def __init__(self, reason: str):
        super().__init__(
            code=ErrorCode.INVALID_CONNECTION_STRING,
            message=f"Malformed PostgreSQL connection string: {reason}"
        )


class TlsConfigurationError(ProvisioningError):
    """TLS context could not be created."""

    def __init__(self, message: str):
        super().__init__(
            code=ErrorCode.TLS_CONFIGURATION_FAILED,
            message=message
        )


class PoolBuildError(ProvisioningError):
    """Underlying asyncpg pool could not be created."""

    def __init__(self, message: str, target: str | None = None):
        super().__init__(
            code=ErrorCode.POOL_BUILD_FAILED,
            message=message,
            details={"target": target} if target else None
        )


class DatabaseProvisioningError(ProvisioningError):
    """Database existence check or creation failed."""

    def __init__(self, code: ErrorCode, database: str, message: str):
        super().__init__(
            code=code,
            message=message,
            details={"database": database}
        )


class MigrationDirectoryError(ProvisioningError):
    """Migrations directory could not be listed."""

    def __init__(self, directory: str, reason: str):
        super().__init__(
            code=ErrorCode.MIGRATION_DIRECTORY_UNREADABLE,
            message=f"Failed to read database migrations directory '{directory}': {reason}",
            details={"directory": directory}
        )


class MigrationFileError(ProvisioningError):
    """A migration script could not be read."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            code=ErrorCode.MIGRATION_FILE_UNREADABLE,
            message=f"Failed to read contents of file {path}: {reason}",
            details={"path": path}
        )


class MigrationExecutionError(ProvisioningError):
    """A migration script or its tracking row failed to apply."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(
            code=ErrorCode.MIGRATION_FAILED,
            message=message,
            details={"filename": filename} if filename else None
        )
