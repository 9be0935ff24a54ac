"""Database-related data models."""

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from src.utils.constants import CENSOR_STRING


def uri_host(host: str) -> str:
    """Host as written in a URI; IPv6 literals are bracketed."""
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


class TlsSettings(BaseModel):
    """TLS options for PostgreSQL connections."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    ca_certificates: Optional[str] = Field(
        default=None,
        description="Concatenated PEM certificate blocks to trust"
    )


class MigrationSettings(BaseModel):
    """Migration options."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    directory: str = "./migrations"
    atomic: bool = Field(
        default=True,
        description="Run each script and its tracking insert in one transaction"
    )


class DatabaseSettings(BaseModel):
    """Connection settings for the service database.

    The password is a ``SecretStr``: it prints as ``**********`` and is only
    reachable through ``get_secret_value()``. Connection strings meant for logs
    go through the ``*_censored`` helpers.
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    username: str = "postgres"
    password: SecretStr = SecretStr("")
    database: Optional[str] = None
    tls: TlsSettings = Field(default_factory=TlsSettings)
    migration: Optional[MigrationSettings] = None

    def with_database(self, database: str) -> "DatabaseSettings":
        """Return a copy scoped to the given database."""
        return self.model_copy(update={"database": database})

    def _base(self, password: str) -> str:
        return (
            f"postgresql://{quote(self.username, safe='')}:{password}"
            f"@{uri_host(self.host)}:{self.port}"
        )

    def connection_string(self) -> str:
        """Connection string including the database segment, if any."""
        base = self._base(quote(self.password.get_secret_value(), safe=""))
        if self.database is None:
            return base
        return f"{base}/{quote(self.database, safe='')}"

    def connection_string_without_database(self) -> str:
        """Connection string at the server level, no database selected."""
        return self._base(quote(self.password.get_secret_value(), safe="")) + "/"

    def connection_string_censored(self) -> str:
        base = self._base(CENSOR_STRING)
        if self.database is None:
            return base + "/"
        return f"{base}/{self.database}"

    def connection_string_without_database_censored(self) -> str:
        return self._base(CENSOR_STRING) + "/"
