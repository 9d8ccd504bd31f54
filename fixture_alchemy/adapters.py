from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import event, text
from sqlalchemy.schema import CreateSchema, DropSchema

from fixture_alchemy.exceptions import ImproperConfigurationError, SchemaError

if TYPE_CHECKING:
    from typing import Any

    from sqlalchemy import Column, Connection, Engine, Table

    from fixture_alchemy.config import FixtureConfig

__all__ = (
    "ADAPTERS",
    "PostgresAdapter",
    "SQLiteAdapter",
    "SchemaAdapter",
    "get_adapter",
)

logger = logging.getLogger(__name__)


class SchemaAdapter(Protocol):
    """Dialect specific schema and sequence operations.

    ``create_schema`` and ``use_schema`` return the engine that handles must use; it is
    scoped to the schema for every connection it hands out, including ones opened after a
    reconnect.
    """

    supported_drivers: set[str] = set()
    dialect: str
    config: FixtureConfig

    def __init__(self, config: FixtureConfig) -> None:
        self.config = config

    def create_schema(self, engine: Engine, schema_name: str) -> Engine: ...
    def use_schema(self, engine: Engine, schema_name: str) -> Engine: ...
    def drop_schema(self, engine: Engine, schema_name: str, missing_ok: bool = False) -> None: ...
    def reset_sequence(
        self,
        connection: Connection,
        table: Table,
        column: Column[Any],
        value: int,
        schema_name: str | None = None,
    ) -> bool: ...


class PostgresAdapter(SchemaAdapter):
    supported_drivers: set[str] = {"psycopg", "psycopg2", "psycopg2cffi", "pg8000"}
    dialect: str = "postgresql"

    def create_schema(self, engine: Engine, schema_name: str) -> Engine:
        with engine.begin() as conn:
            conn.execute(CreateSchema(schema_name))
        logger.debug("created schema %s", schema_name)
        return self.use_schema(engine, schema_name)

    def use_schema(self, engine: Engine, schema_name: str) -> Engine:
        quoted_name = engine.dialect.identifier_preparer.quote_identifier(schema_name)

        def set_search_path(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
            # outside a transaction, so a rollback on checkin can't revert it
            existing_autocommit = dbapi_connection.autocommit
            dbapi_connection.autocommit = True
            cursor = dbapi_connection.cursor()
            cursor.execute(f"SET SESSION search_path TO {quoted_name}")
            cursor.close()
            dbapi_connection.autocommit = existing_autocommit

        event.listen(engine, "connect", set_search_path, insert=True)
        # pooled connections opened before the listener existed
        engine.dispose()
        return engine

    def drop_schema(self, engine: Engine, schema_name: str, missing_ok: bool = False) -> None:
        with engine.begin() as conn:
            conn.execute(text("SET LOCAL client_min_messages TO WARNING"))
            conn.execute(DropSchema(schema_name, cascade=True, if_exists=missing_ok))

    def reset_sequence(
        self,
        connection: Connection,
        table: Table,
        column: Column[Any],
        value: int,
        schema_name: str | None = None,
    ) -> bool:
        preparer = connection.dialect.identifier_preparer
        table_name = preparer.format_table(table)
        if schema_name is not None and table.schema is None:
            table_name = f"{preparer.quote_identifier(schema_name)}.{table_name}"
        sequence = connection.execute(
            text("SELECT pg_get_serial_sequence(:table_name, :column_name)"),
            {"table_name": table_name, "column_name": column.name},
        ).scalar()
        if sequence is None:
            return False
        connection.execute(text(f"ALTER SEQUENCE {sequence} RESTART WITH {int(value)}"))
        return True


class SQLiteAdapter(SchemaAdapter):
    """Schemas as attached database files.

    A schema named ``x`` is the file ``<schema_directory>/x.sqlite``, attached as ``x`` on
    every connection. Tables without an explicit schema are routed into it through
    ``schema_translate_map``.
    """

    supported_drivers: set[str] = {"pysqlite"}
    dialect: str = "sqlite"

    def schema_path(self, schema_name: str) -> Path:
        return Path(self.config.schema_directory or ".") / f"{schema_name}.sqlite"

    def create_schema(self, engine: Engine, schema_name: str) -> Engine:
        path = self.schema_path(schema_name)
        try:
            path.touch(exist_ok=False)
        except FileExistsError as exc:
            msg = f"Schema {schema_name!r} already exists ({path})"
            raise SchemaError(msg) from exc
        logger.debug("created schema file %s", path)
        return self.use_schema(engine, schema_name)

    def use_schema(self, engine: Engine, schema_name: str) -> Engine:
        path = self.schema_path(schema_name)
        if not path.exists():
            msg = f"Schema {schema_name!r} does not exist ({path})"
            raise SchemaError(msg)
        quoted_name = engine.dialect.identifier_preparer.quote_identifier(schema_name)

        def attach_schema(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
            cursor = dbapi_connection.cursor()
            cursor.execute(f"ATTACH DATABASE ? AS {quoted_name}", (str(path),))
            cursor.close()

        event.listen(engine, "connect", attach_schema)
        engine.dispose()
        return engine.execution_options(schema_translate_map={None: schema_name})

    def drop_schema(self, engine: Engine, schema_name: str, missing_ok: bool = False) -> None:
        engine.dispose()
        path = self.schema_path(schema_name)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            if not missing_ok:
                msg = f"Schema {schema_name!r} does not exist ({path})"
                raise SchemaError(msg) from exc

    def reset_sequence(
        self,
        connection: Connection,
        table: Table,
        column: Column[Any],  # noqa: ARG002
        value: int,
        schema_name: str | None = None,
    ) -> bool:
        # rowid tables already continue at max(rowid) + 1; only AUTOINCREMENT keeps a counter
        schema = table.schema or schema_name
        prefix = f"{connection.dialect.identifier_preparer.quote_identifier(schema)}." if schema else ""
        has_sequences = connection.execute(
            text(f"SELECT 1 FROM {prefix}sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'")
        ).first()
        if has_sequences is None:
            return False
        result = connection.execute(
            text(f"UPDATE {prefix}sqlite_sequence SET seq = :seq WHERE name = :name"),
            {"seq": value - 1, "name": table.name},
        )
        return bool(result.rowcount)


ADAPTERS: dict[str, type[SchemaAdapter]] = {"sqlite": SQLiteAdapter, "postgresql": PostgresAdapter}


def get_adapter(engine: Engine, config: FixtureConfig) -> SchemaAdapter:
    dialect_name = engine.dialect.name
    adapter_class = ADAPTERS.get(dialect_name)

    if not adapter_class:
        msg = f"No adapter available for {dialect_name}"
        raise ImproperConfigurationError(msg)

    driver = engine.dialect.driver
    if driver not in adapter_class.supported_drivers:
        msg = f"{dialect_name} adapter does not support the {driver} driver"
        raise ImproperConfigurationError(msg)

    return adapter_class(config)
