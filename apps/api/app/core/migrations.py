"""Database migration utilities and the reminder schema bootstrap."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError, OperationalError, ProgrammingError
from sqlalchemy.schema import CreateColumn

from app.core.config import settings

logger = logging.getLogger(__name__)

ALEMBIC_VERSION_TABLE = "alembic_version"
MIGRATION_LOCK_ID = 9823417

REMINDER_TABLES = ("tenant_settings", "reminders_log")

# Table-level only; a missing column must not read as a missing table
_MISSING_TABLE_PATTERNS = (
    re.compile(r"no such table"),  # sqlite
    re.compile(r'relation "[^"]+" does not exist'),  # postgres
    re.compile(r"table '[^']+' doesn't exist"),  # mysql
)
_COLUMN_ERROR_PATTERN = re.compile(r"\bcolumn\b")
_ALREADY_EXISTS_MARKERS = ("already exists", "duplicatetable", "duplicate column")


@dataclass(frozen=True)
class MigrationStatus:
    current_heads: tuple[str, ...]
    head_revisions: tuple[str, ...]
    is_up_to_date: bool


class MigrationError(RuntimeError):
    """Raised when automatic migrations fail to reach head."""


class SchemaMissingError(RuntimeError):
    """Raised when reminder tables are absent and could not be created."""


def is_missing_table_error(exc: BaseException) -> bool:
    """
    True when a DB error was caused by an absent table.

    Missing-column errors (UndefinedColumn, "no such column", postgres
    'column "x" of relation "y" does not exist') are not table errors.
    """
    if not isinstance(exc, (OperationalError, ProgrammingError)):
        return False
    orig = getattr(exc, "orig", None)
    orig_name = type(orig).__name__ if orig is not None else ""
    if orig_name == "UndefinedTable":
        return True
    if orig_name == "UndefinedColumn":
        return False

    message = str(orig if orig is not None else exc).lower()
    if _COLUMN_ERROR_PATTERN.search(message):
        return False
    return any(pattern.search(message) for pattern in _MISSING_TABLE_PATTERNS)


def _is_already_exists_error(exc: DBAPIError) -> bool:
    message = f"{type(getattr(exc, 'orig', None)).__name__} {exc}".lower()
    return any(marker in message for marker in _ALREADY_EXISTS_MARKERS)


def _add_missing_columns(engine: Engine, table_names: Iterable[str]) -> list[str]:
    """
    ALTER TABLE ... ADD COLUMN for owned columns an older table lacks.

    Only columns that can be added to a populated table (nullable or with a
    server default) are added; anything else is left to Alembic.
    """
    from app.db.base import Base

    inspector = inspect(engine)
    preparer = engine.dialect.identifier_preparer
    added: list[str] = []

    for name in table_names:
        table = Base.metadata.tables[name]
        present = {column["name"] for column in inspector.get_columns(name)}
        for column in table.columns:
            if column.name in present:
                continue
            if column.primary_key or (not column.nullable and column.server_default is None):
                logger.warning(
                    "Column %s.%s is missing and needs an Alembic migration", name, column.name
                )
                continue

            ddl = CreateColumn(column).compile(dialect=engine.dialect)
            try:
                with engine.begin() as conn:
                    conn.execute(text(f"ALTER TABLE {preparer.format_table(table)} ADD COLUMN {ddl}"))
            except (OperationalError, ProgrammingError) as exc:
                if not _is_already_exists_error(exc):
                    raise SchemaMissingError(
                        f"Could not add column {name}.{column.name}: {exc}"
                    ) from exc
                continue
            added.append(f"{name}.{column.name}")

    if added:
        logger.warning("Reminder schema was outdated; added columns: %s", ", ".join(added))
    return added


def ensure_reminder_schema(engine: Engine) -> list[str]:
    """
    Create the reminder tables if they are missing.

    Existing owned tables get any missing addable columns. Idempotent:
    a concurrent creator winning the race is not an error. Returns the
    names of tables created.
    """
    from app.db.base import Base
    import app.db.models  # noqa: F401

    existing = set(inspect(engine).get_table_names())
    present = [name for name in REMINDER_TABLES if name in existing]
    missing = [name for name in REMINDER_TABLES if name not in existing]
    if present:
        _add_missing_columns(engine, present)
    if not missing:
        return []

    tables = [Base.metadata.tables[name] for name in missing]
    try:
        Base.metadata.create_all(engine, tables=tables, checkfirst=True)
    except (OperationalError, ProgrammingError) as exc:
        if not _is_already_exists_error(exc):
            raise SchemaMissingError(f"Could not create reminder tables: {exc}") from exc
        logger.info("Reminder tables created concurrently by another process")
        return []

    logger.warning("Reminder schema was missing; created tables: %s", ", ".join(missing))
    return missing


def _get_alembic_config() -> Config:
    api_root = Path(__file__).resolve().parents[2]
    alembic_ini = api_root / "alembic.ini"
    if not alembic_ini.is_file():
        raise FileNotFoundError(f"Alembic config not found at {alembic_ini}")
    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(api_root / "alembic"))
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
    return config


def _tuple_or_empty(values: Iterable[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    return tuple(values)


def _current_heads(connection: Connection) -> tuple[str, ...]:
    inspector = inspect(connection)
    if ALEMBIC_VERSION_TABLE not in inspector.get_table_names():
        return ()

    context = MigrationContext.configure(connection)
    return _tuple_or_empty(context.get_current_heads())


def get_migration_status(engine: Engine) -> MigrationStatus:
    config = _get_alembic_config()
    script = ScriptDirectory.from_config(config)
    head_revisions = _tuple_or_empty(script.get_heads())

    with engine.connect() as connection:
        current_heads = _current_heads(connection)

    is_up_to_date = set(current_heads) == set(head_revisions)
    return MigrationStatus(
        current_heads=current_heads,
        head_revisions=head_revisions,
        is_up_to_date=is_up_to_date,
    )


def ensure_migrations(engine: Engine, auto_migrate: bool) -> MigrationStatus:
    status = get_migration_status(engine)
    if status.is_up_to_date or not auto_migrate:
        return status

    _upgrade_to_head(engine)
    status = get_migration_status(engine)
    if not status.is_up_to_date:
        raise MigrationError("Database migrations did not reach head after auto-upgrade.")
    return status


def _upgrade_to_head(engine: Engine) -> None:
    config = _get_alembic_config()

    if engine.dialect.name != "postgresql":
        command.upgrade(config, "head")
        return

    with engine.connect() as connection:
        connection.execute(
            text("SELECT pg_advisory_lock(:lock_id)"),
            {"lock_id": MIGRATION_LOCK_ID},
        )
        if connection.in_transaction():
            connection.commit()
        try:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
            if connection.in_transaction():
                connection.commit()
        finally:
            connection.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"),
                {"lock_id": MIGRATION_LOCK_ID},
            )
            if connection.in_transaction():
                connection.commit()
