"""Migration-related data models."""

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


def compute_checksum(content: bytes) -> uuid.UUID:
    """MD5 of the script's UTF-8 (lossy) text, shaped as a UUID."""
    text = content.decode("utf-8", errors="replace")
    return uuid.UUID(hashlib.md5(text.encode("utf-8")).hexdigest())


@dataclass
class MigrationScript:
    """A script discovered in the migrations directory."""

    path: Path
    content: bytes

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def checksum(self) -> uuid.UUID:
        return compute_checksum(self.content)


class MigrationRecord(BaseModel):
    """A row of the migrations tracking table."""

    version: int
    filename: str
    installed_on: datetime
    checksum: uuid.UUID


@dataclass
class MigrationReport:
    """Outcome of one migration run."""

    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
