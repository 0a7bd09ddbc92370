from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import DeclarativeBase

# Imported by alembic/env.py as well, so nothing here may read the settings


# Every model registers its table here; alembic/env.py compares against it
class Base(DeclarativeBase):
    pass


def enable_transactional_ddl(async_engine: AsyncEngine) -> None:
    """
    Make DDL part of the surrounding transaction on sqlite.

    The sqlite drivers only open a transaction before INSERT/UPDATE/DELETE,
    so CREATE/ALTER statements commit one by one and a failed migration
    leaves half of its tables behind. Other backends are left untouched.
    """
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")
