"""SQL migration runner.

Scripts in the migrations directory run in ascending path order, exactly once
each. A script counts as applied when the tracking table holds a row with its
content checksum, so renaming an applied script does not re-run it and two
files with identical content are applied once.

With ``atomic=False`` a crash between running a script and recording it leaves
the script applied but unrecorded, and it runs again on the next start. Scripts
must be safe to re-run in that mode (``CREATE TABLE IF NOT EXISTS`` and so on).
"""

import logging
import uuid
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import asyncpg

from src.models.migration import MigrationRecord, MigrationReport, MigrationScript
from src.services.database import ConnectionPool
from src.utils.constants import MIGRATIONS_TABLE
from src.utils.exceptions import (
    MigrationDirectoryError,
    MigrationExecutionError,
    MigrationFileError,
)

logger = logging.getLogger("migrations")

# Arbitrary key for pg_advisory_lock, shared by every process running migrations
MIGRATION_LOCK_KEY = 7_283_941_117

CREATE_MIGRATIONS_TABLE = f"""
CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE}(
    version SERIAL PRIMARY KEY,
    filename TEXT NOT NULL,
    installed_on TIMESTAMPTZ NOT NULL DEFAULT now(),
    checksum UUID NOT NULL
)
"""
CHECKSUM_APPLIED_QUERY = f"SELECT 1 FROM {MIGRATIONS_TABLE} WHERE checksum = $1"
INSERT_MIGRATION_QUERY = f"INSERT INTO {MIGRATIONS_TABLE} (filename, checksum) VALUES ($1, $2)"
APPLIED_MIGRATIONS_QUERY = f"""
SELECT version, filename, installed_on, checksum
FROM {MIGRATIONS_TABLE}
ORDER BY version
"""


class MigrationPhase(Enum):
    """Phases of a migration run."""
    ENSURE_TABLE = "ensure_table"
    LIST_SCRIPTS = "list_scripts"
    CHECK_APPLIED = "check_applied"
    APPLY_IF_NEW = "apply_if_new"
    DONE = "done"


def list_scripts(directory: Union[str, Path]) -> list[Path]:
    """List migration scripts, sorted by full path ascending.

    Only regular files in the directory itself are returned.

    Raises:
        MigrationDirectoryError: If the directory cannot be listed.
    """
    directory = Path(directory)
    try:
        entries = list(directory.iterdir())
    except OSError as e:
        raise MigrationDirectoryError(str(directory), str(e)) from e

    scripts = []
    for entry in entries:
        if not entry.is_file():
            logger.debug("Skipping non-file entry in migrations directory: %s", entry)
            continue
        scripts.append(entry)
    return sorted(scripts, key=str)


def read_script(path: Path) -> MigrationScript:
    """Read a migration script from disk.

    Raises:
        MigrationFileError: If the file cannot be read.
    """
    try:
        content = path.read_bytes()
    except OSError as e:
        raise MigrationFileError(str(path), str(e)) from e
    return MigrationScript(path=path, content=content)


async def applied_migrations(conn: asyncpg.Connection) -> list[MigrationRecord]:
    """Read the tracking table in version order."""
    rows = await conn.fetch(APPLIED_MIGRATIONS_QUERY)
    return [
        MigrationRecord(
            version=row["version"],
            filename=row["filename"],
            installed_on=row["installed_on"],
            checksum=uuid.UUID(str(row["checksum"]))
        )
        for row in rows
    ]


class MigrationRunner:
    """Applies unapplied scripts from a directory, in path order."""

    def __init__(
        self,
        pool: ConnectionPool,
        directory: Union[str, Path],
        atomic: bool = True,
        use_advisory_lock: bool = True
    ):
        """Initialize the runner.

        Args:
            pool: Pool connected to the target database.
            directory: Directory holding the SQL scripts.
            atomic: Run each script and its tracking insert in one transaction.
            use_advisory_lock: Serialize runs across processes with a session
                advisory lock.
        """
        self.pool = pool
        self.directory = Path(directory)
        self.atomic = atomic
        self.use_advisory_lock = use_advisory_lock
        self.phase: Optional[MigrationPhase] = None

    async def run(self) -> MigrationReport:
        """Run all pending migrations.

        Returns:
            The filenames applied and skipped.

        Raises:
            MigrationDirectoryError, MigrationFileError, MigrationExecutionError:
                On any I/O or query failure.
        """
        report = MigrationReport()
        async with self.pool.acquire() as conn:
            if self.use_advisory_lock:
                await self._query(conn.execute("SELECT pg_advisory_lock($1)", MIGRATION_LOCK_KEY),
                                  "Failed to take the migrations advisory lock")
            try:
                await self._ensure_table(conn)

                self.phase = MigrationPhase.LIST_SCRIPTS
                paths = list_scripts(self.directory)
                logger.info("Found %d migration script(s) in %s", len(paths), self.directory)

                for path in paths:
                    script = read_script(path)
                    if await self._is_applied(conn, script):
                        logger.debug("Skipping already applied migration %s", script.filename)
                        report.skipped.append(script.filename)
                        continue
                    await self._apply(conn, script)
                    report.applied.append(script.filename)
            finally:
                if self.use_advisory_lock:
                    await self._release_lock(conn)

        self.phase = MigrationPhase.DONE
        logger.info(
            "Migrations complete: %d applied, %d already applied",
            len(report.applied), len(report.skipped)
        )
        return report

    @staticmethod
    async def _release_lock(conn: asyncpg.Connection) -> None:
        try:
            await conn.execute("SELECT pg_advisory_unlock($1)", MIGRATION_LOCK_KEY)
        except Exception as e:
            # Session locks go away with the connection anyway
            logger.warning("Failed to release the migrations advisory lock: %s", e)

    async def _ensure_table(self, conn: asyncpg.Connection) -> None:
        self.phase = MigrationPhase.ENSURE_TABLE
        await self._query(
            conn.execute(CREATE_MIGRATIONS_TABLE),
            f"Failed to create table \"{MIGRATIONS_TABLE}\""
        )

    async def _is_applied(self, conn: asyncpg.Connection, script: MigrationScript) -> bool:
        self.phase = MigrationPhase.CHECK_APPLIED
        row = await self._query(
            conn.fetchval(CHECKSUM_APPLIED_QUERY, script.checksum),
            f"Failed to look up migration checksum of {script.filename}",
            script.filename
        )
        return row is not None

    async def _apply(self, conn: asyncpg.Connection, script: MigrationScript) -> None:
        self.phase = MigrationPhase.APPLY_IF_NEW
        logger.info("Applying migration %s (%s)", script.filename, script.checksum)
        if self.atomic:
            try:
                async with conn.transaction():
                    await self._execute_and_record(conn, script)
            except MigrationExecutionError:
                raise
            except Exception as e:
                raise MigrationExecutionError(
                    f"Failed to perform query migration of file {script.path}: {e}",
                    script.filename
                ) from e
        else:
            await self._execute_and_record(conn, script)

    async def _execute_and_record(self, conn: asyncpg.Connection, script: MigrationScript) -> None:
        # No arguments: asyncpg sends the whole file as one simple-protocol batch
        await self._query(
            conn.execute(script.text),
            f"Failed to perform query migration of file {script.path}",
            script.filename
        )
        await self._query(
            conn.execute(INSERT_MIGRATION_QUERY, script.filename, script.checksum),
            f"Failed to insert migration {script.filename}",
            script.filename
        )

    @staticmethod
    async def _query(awaitable, message: str, filename: Optional[str] = None):
        try:
            return await awaitable
        except Exception as e:
            raise MigrationExecutionError(f"{message}: {e}", filename) from e


async def migrate(
    pool: ConnectionPool,
    directory: Union[str, Path],
    atomic: bool = True
) -> ConnectionPool:
    """Apply pending migrations and hand the pool back for chaining.

    Args:
        pool: Pool connected to the target database.
        directory: Directory holding the SQL scripts.
        atomic: Run each script and its tracking insert in one transaction.

    Returns:
        The same pool.
    """
    await MigrationRunner(pool, directory, atomic=atomic).run()
    return pool
