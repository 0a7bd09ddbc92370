import asyncio
import logging
import socket
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, assert_never

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from app.core.config import Settings
from app.core.base import enable_transactional_ddl
from app.core.exceptions import (
    DatabaseUnreachable,
    MigrationApplyFailure,
    MigrationError,
    SchemaDrift,
)


# -----------------------------------------------------------------------------
# MIGRATIONS MODULE
# Purpose: bring the database schema to the alembic head before serving traffic.
# Runs once per process. Anything that is not "up to date" or "behind" stops
# the process: serving requests against an unknown schema is worse than not
# serving at all.
# -----------------------------------------------------------------------------

logger = logging.getLogger("database.migrations")

VERSION_TABLE = "alembic_version"

# Fragments drivers put in their error text when the server cannot be reached
UNREACHABLE_MARKERS = (
    "connection refused",
    "connect call failed",
    "could not connect",
    "could not translate host name",
    "name or service not known",
    "unable to open database file",
    "timeout expired",
)


class MigrationDiagnostic(Enum):
    """Relationship between the database history and the expected lineage."""

    UP_TO_DATE = "up_to_date"
    BEHIND = "behind"
    DRIFTED_OR_UNKNOWN = "drifted_or_unknown"


@dataclass(frozen=True)
class MigrationConfig:
    database_url: str
    alembic_ini: str = "alembic.ini"
    timeout: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MigrationConfig":
        return cls(
            database_url=settings.DATABASE_URL,
            alembic_ini=settings.ALEMBIC_CONFIG,
            timeout=settings.MIGRATION_TIMEOUT_SECONDS,
        )


def is_unreachable_error(error: BaseException) -> bool:
    """
    Tell "the database is not there" apart from every other failure.

    Walks the exception chain, including the DBAPI error wrapped by SQLAlchemy.
    """
    seen = set()
    pending = [error]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))

        if isinstance(current, (ConnectionRefusedError, socket.gaierror, TimeoutError)):
            return True
        if isinstance(current, DBAPIError) and current.connection_invalidated:
            return True
        message = str(current).lower()
        if any(marker in message for marker in UNREACHABLE_MARKERS):
            return True

        pending.append(getattr(current, "orig", None))
        pending.append(current.__cause__)
        pending.append(current.__context__)
    return False


class MigrationOrchestrator:
    """
    Ensure the database exists, diagnose its migration history and upgrade it
    when it is behind.

    Usage:
        orchestrator = MigrationOrchestrator(MigrationConfig(database_url=url))
        diagnostic = await orchestrator.run()
    """

    def __init__(self, config: MigrationConfig):
        self.config = config

    def alembic_config(self) -> Config:
        # %(here)s in the ini resolves against the ini location
        alembic_cfg = Config(str(Path(self.config.alembic_ini).resolve()))
        # configparser treats % as interpolation
        alembic_cfg.set_main_option(
            "sqlalchemy.url", self.config.database_url.replace("%", "%%")
        )
        return alembic_cfg

    async def run(self) -> MigrationDiagnostic:
        """
        Run the whole bootstrap.

        Returns:
            The diagnostic found before any upgrade happened.

        Raises:
            DatabaseUnreachable: database refused, unresolvable, or timed out
            SchemaDrift: history does not match the lineage
            MigrationApplyFailure: an upgrade step failed
        """
        try:
            if self.config.timeout:
                return await asyncio.wait_for(self._run(), timeout=self.config.timeout)
            return await self._run()
        except MigrationError:
            raise
        except Exception as error:
            if is_unreachable_error(error):
                raise DatabaseUnreachable(self.config.database_url) from error
            raise

    async def _run(self) -> MigrationDiagnostic:
        logger.debug(
            "ensuring database exists, if not creating database - may error if no permissions"
        )
        await self.ensure_database_exists()

        logger.debug("establishing database connection")
        engine = create_async_engine(self.config.database_url)
        enable_transactional_ddl(engine)
        try:
            async with engine.connect() as conn:
                diagnostic = await self.diagnose(conn)

                match diagnostic:
                    case MigrationDiagnostic.UP_TO_DATE:
                        logger.debug("exiting migrations engine - database is up to date")
                    case MigrationDiagnostic.BEHIND:
                        logger.debug("database is behind, attempting to migrate")
                        await self.apply(conn)
                        logger.info("finished migrating database")
                    case MigrationDiagnostic.DRIFTED_OR_UNKNOWN:
                        current, expected = await conn.run_sync(self._heads)
                        raise SchemaDrift(current, expected)
                    case _:
                        assert_never(diagnostic)

                return diagnostic
        finally:
            await engine.dispose()

    async def ensure_database_exists(self) -> None:
        url = make_url(self.config.database_url)
        backend = url.get_backend_name()

        if backend == "sqlite":
            database = url.database
            if database and database != ":memory:" and not database.startswith("file:"):
                Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)
            return

        if backend != "postgresql":
            logger.debug(f"cannot create databases for {backend}, assuming it exists")
            return

        maintenance = create_async_engine(
            url.set(database="postgres"), isolation_level="AUTOCOMMIT"
        )
        try:
            async with maintenance.connect() as conn:
                result = await conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": url.database},
                )
                if result.scalar() is None:
                    logger.info(f"creating database {url.database}")
                    quoted = maintenance.dialect.identifier_preparer.quote(url.database)
                    await conn.execute(text(f"CREATE DATABASE {quoted}"))
        finally:
            await maintenance.dispose()

    async def diagnose(self, conn: AsyncConnection) -> MigrationDiagnostic:
        """Compare the recorded history with the lineage without writing anything."""
        diagnostic = await conn.run_sync(self._diagnose)
        # Close the read transaction so each migration can run in its own
        await conn.commit()
        logger.debug(f"migration history diagnostic: {diagnostic.value}")
        return diagnostic

    async def apply(self, conn: AsyncConnection) -> None:
        """Upgrade to the lineage heads; migrations already applied stay applied on failure."""
        logger.debug("migrating database")
        try:
            await conn.run_sync(self._upgrade)
            await conn.commit()
        except Exception as error:
            if is_unreachable_error(error):
                raise DatabaseUnreachable(self.config.database_url) from error
            raise MigrationApplyFailure(str(error)) from error

    def _heads(self, connection: Connection) -> tuple[set[str], set[str]]:
        context = MigrationContext.configure(connection)
        script = ScriptDirectory.from_config(self.alembic_config())
        return set(context.get_current_heads()), set(script.get_heads())

    def _diagnose(self, connection: Connection) -> MigrationDiagnostic:
        current, expected = self._heads(connection)

        if current == expected:
            return MigrationDiagnostic.UP_TO_DATE

        if not current:
            # Tables without a version table were not created by us
            tables = set(inspect(connection).get_table_names()) - {VERSION_TABLE}
            if tables:
                return MigrationDiagnostic.DRIFTED_OR_UNKNOWN
            return MigrationDiagnostic.BEHIND

        script = ScriptDirectory.from_config(self.alembic_config())
        lineage = {rev.revision for rev in script.walk_revisions()}
        if current <= lineage and len(current) <= len(expected):
            return MigrationDiagnostic.BEHIND
        return MigrationDiagnostic.DRIFTED_OR_UNKNOWN

    def _upgrade(self, connection: Connection) -> None:
        alembic_cfg = self.alembic_config()
        # env.py reuses this connection instead of opening its own
        alembic_cfg.attributes["connection"] = connection
        command.upgrade(alembic_cfg, "heads")


async def run_migrations(settings: Settings) -> MigrationDiagnostic:
    """
    Process boundary for the orchestrator: logs and exits with status 1 on
    any failure, returns the diagnostic otherwise.
    """
    config = MigrationConfig.from_settings(settings)
    orchestrator = MigrationOrchestrator(config)

    try:
        return await orchestrator.run()
    except DatabaseUnreachable:
        logger.error(
            f"Unable to connect to database `{config.database_url}`, check your database connection"
        )
    except SchemaDrift as error:
        logger.error(f"Database schema has drifted, refusing to migrate... exiting... ({error})")
    except Exception as error:
        logger.error("Failed to migrate database... exiting...")
        logger.error(error, exc_info=error)

    sys.exit(1)
