"""Configuration management for pg-provision."""

from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

from src.models.database import DatabaseSettings, MigrationSettings, TlsSettings
from src.services.database import parse_connection_string
from src.utils.exceptions import TlsConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PostgreSQL connection configuration
    postgres_dsn: Optional[str] = Field(
        default=None,
        description="Full connection string; overrides the separate parts"
    )
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: Optional[str] = None
    postgres_user: str = "postgres"
    postgres_password: SecretStr = SecretStr("")

    # TLS configuration
    postgres_tls: bool = False
    postgres_ca_certificates: Optional[str] = Field(
        default=None,
        description="Concatenated PEM CA certificates"
    )
    postgres_ca_file: Optional[str] = Field(
        default=None,
        description="Path to a PEM CA bundle, read when postgres_ca_certificates is unset"
    )

    # Migration configuration
    migration_enabled: bool = True
    migration_directory: str = "./migrations"
    migration_atomic: bool = True

    # Pool and probe configuration
    command_timeout: Optional[float] = 30
    health_cache_validity_ms: Optional[int] = None

    # Service identity, copied into health snapshots
    service_name: str = "pg-provision"
    service_version: str = "0.1.0"

    # Server configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8989

    class Config:
        env_prefix = "PG_PROVISION_"

    def get_ca_certificates(self) -> Optional[str]:
        """Get the CA bundle text, reading the bundle file if configured.

        Raises:
            TlsConfigurationError: If the bundle file cannot be read.
        """
        if self.postgres_ca_certificates:
            return self.postgres_ca_certificates
        if not self.postgres_ca_file:
            return None
        try:
            return Path(self.postgres_ca_file).read_text(encoding="utf-8")
        except OSError as e:
            raise TlsConfigurationError(
                f"Failed to read CA bundle '{self.postgres_ca_file}': {e}"
            ) from e

    def get_database_settings(self) -> DatabaseSettings:
        """Build the immutable database settings.

        Returns:
            Database settings; an explicit DSN takes precedence over the parts.
        """
        host = self.postgres_host
        port = self.postgres_port
        user = self.postgres_user
        password = self.postgres_password
        database = self.postgres_database

        if self.postgres_dsn:
            params = parse_connection_string(self.postgres_dsn)
            host = params.host
            port = params.port
            user = params.user or user
            if params.password is not None:
                password = SecretStr(params.password)
            database = params.database or database

        return DatabaseSettings(
            host=host,
            port=port,
            username=user,
            password=password,
            database=database,
            tls=TlsSettings(
                enabled=self.postgres_tls,
                ca_certificates=self.get_ca_certificates() if self.postgres_tls else None
            ),
            migration=MigrationSettings(
                enabled=self.migration_enabled,
                directory=self.migration_directory,
                atomic=self.migration_atomic
            )
        )
