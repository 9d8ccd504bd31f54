"""Disposable test schemas and fixture loading.

Example:
    Create a schema, deploy the models, load every fixture and drop it all again::

        loader = FixtureLoader(FixtureConfig(base=Base, fixtures_path="tests/fixtures"))
        database = loader.create()
        with database.get_session() as session:
            session.scalars(select(User)).all()
        database.disconnect()
"""

from __future__ import annotations

import datetime
import decimal
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session, sessionmaker

from fixture_alchemy.adapters import get_adapter
from fixture_alchemy.deploy import MetadataDeployment
from fixture_alchemy.exceptions import FixtureLoadError
from fixture_alchemy.fixtures import (
    SingleTableFixture,
    discover_fixtures,
    display_path,
    fixture_base_name,
    load_fixture,
)
from fixture_alchemy.utils.text import random_string

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

    from sqlalchemy import Column, Engine
    from sqlalchemy.orm import Mapper

    from fixture_alchemy.adapters import SchemaAdapter
    from fixture_alchemy.config import FixtureConfig
    from fixture_alchemy.fixtures import Fixture

__all__ = (
    "FixtureLoader",
    "TestDatabase",
)

logger = logging.getLogger(__name__)


@dataclass
class TestDatabase:
    """A live database handle, scoped to one schema when isolation is used."""

    __test__: ClassVar[bool] = False

    engine: Engine
    """Engine scoped to :attr:`schema_name`."""
    adapter: SchemaAdapter
    schema_name: Optional[str] = None
    """The schema this handle owns, ``None`` without schema isolation."""
    root_engine: Optional[Engine] = None
    """The unscoped engine the schema was created with. Defaults to :attr:`engine`."""
    closed: bool = False
    session_maker: sessionmaker[Session] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.root_engine is None:
            self.root_engine = self.engine
        self.session_maker = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get a session context manager.

        Yields:
            Generator[sqlalchemy.orm.Session, None, None]: A session bound to the scoped engine.
        """
        with self.session_maker() as session:
            yield session

    def close(self) -> None:
        """Release every connection, leaving the schema in place for inspection."""
        if self.closed:
            return
        self.root_engine.dispose()  # type: ignore[union-attr]
        self.closed = True

    def disconnect(self) -> None:
        """Drop the owned schema, if any, and release every connection."""
        if self.closed:
            return
        if self.schema_name is not None:
            self.adapter.drop_schema(self.root_engine, self.schema_name)  # type: ignore[arg-type]
            logger.info('dropped database schema "%s"', self.schema_name)
        self.close()


_TRUE_STRINGS = frozenset({"1", "true", "t", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "f", "no", "n", "off"})


def _coerce_value(column: Column[Any], value: Any) -> Any:
    """Convert text from JSON strings or CSV cells to the column's Python type."""
    if not isinstance(value, str):
        return value
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type is str:
        return value
    if value == "":
        return None
    if python_type is datetime.datetime:
        return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if python_type is datetime.date:
        return datetime.date.fromisoformat(value)
    if python_type is datetime.time:
        return datetime.time.fromisoformat(value)
    if python_type is bool:
        flag = value.strip().lower()
        if flag in _TRUE_STRINGS:
            return True
        if flag in _FALSE_STRINGS:
            return False
        msg = f"{value!r} is not a boolean"
        raise ValueError(msg)
    if python_type in (int, float, decimal.Decimal):
        return python_type(value)
    return value


@dataclass
class FixtureLoader:
    """Creates test schemas and loads fixture files into them."""

    config: FixtureConfig

    @property
    def fixtures_path(self) -> Path:
        return self.config.fixtures_path  # type: ignore[return-value]

    def generate_schema_name(self) -> str:
        return f"{self.config.schema_prefix}{random_string()}"

    def create(
        self,
        *,
        skip_schema: bool = False,
        schema_name: Optional[str] = None,
        drop_schema: bool = False,
        skip_fixtures: bool = False,
        fixtures_glob: Optional[str] = None,
    ) -> TestDatabase:
        """Create a test database.

        Args:
            skip_schema: Work in the connection's default schema instead of a new one.
            schema_name: Name of the schema to create. A random ``tmp_`` name is generated
                when omitted.
            drop_schema: Drop a schema of the same name before creating it.
            skip_fixtures: Deploy the tables but do not load fixtures.
            fixtures_glob: Restrict the fixture files loaded, see :meth:`insert_fixtures`.

        Raises:
            ImproperConfigurationError: If no test database is configured or its dialect
                is not supported.

        Returns:
            A live handle scoped to the new schema.
        """
        engine = self.config.get_engine()
        adapter = get_adapter(engine, self.config)
        database = TestDatabase(engine=engine, adapter=adapter)

        if not skip_schema:
            schema_name = schema_name or self.generate_schema_name()
            logger.info('using database schema "%s"', schema_name)
            try:
                if drop_schema:
                    adapter.drop_schema(engine, schema_name, missing_ok=True)
                scoped_engine = adapter.create_schema(engine, schema_name)
            except BaseException:
                engine.dispose()
                raise
            database = TestDatabase(
                engine=scoped_engine,
                adapter=adapter,
                schema_name=schema_name,
                root_engine=engine,
            )

        try:
            self.deploy(database)
            if not skip_fixtures:
                self.insert_fixtures(database, fixtures_glob)
        except BaseException:
            database.close()
            raise
        return database

    def connect(self, schema_name: Optional[str] = None) -> TestDatabase:
        """Open a handle on an existing schema without creating or deploying anything."""
        engine = self.config.get_engine()
        adapter = get_adapter(engine, self.config)
        if schema_name is None:
            return TestDatabase(engine=engine, adapter=adapter)
        return TestDatabase(
            engine=adapter.use_schema(engine, schema_name),
            adapter=adapter,
            schema_name=schema_name,
            root_engine=engine,
        )

    def deploy(self, database: TestDatabase) -> None:
        deployment = self.config.deployment or MetadataDeployment(self.config.metadata)
        deployment(database.engine)

    def disconnect(self, database: TestDatabase) -> None:
        database.disconnect()

    def resolve_model(self, *names: str) -> type[Any]:
        """Find the mapped class for a fixture table token.

        Each name is tried in turn against table names, then class names, then class names
        ignoring case.

        Raises:
            LookupError: If no mapped class matches.
        """
        mappers = sorted(self.config.orm_registry.mappers, key=lambda mapper: mapper.class_.__name__)
        for name in names:
            for matches in (
                lambda mapper: not mapper.single and getattr(mapper.local_table, "name", None) == name,
                lambda mapper: mapper.class_.__name__ == name,
                lambda mapper: mapper.class_.__name__.lower() == name.lower(),
            ):
                for mapper in mappers:
                    if matches(mapper):
                        return mapper.class_
        msg = f"No mapped class for table {names[0]!r}"
        raise LookupError(msg)

    def _build_instance(self, model: type[Any], row: dict[str, Any], watermarks: dict[Mapper[Any], int]) -> Any:
        mapper = inspect(model)
        values = {}
        for key, value in row.items():
            column = mapper.columns.get(key)
            values[key] = _coerce_value(column, value) if column is not None else value

        if len(mapper.primary_key) == 1:
            pk_key = mapper.get_property_by_column(mapper.primary_key[0]).key
            pk_value = values.get(pk_key)
            if isinstance(pk_value, int) and not isinstance(pk_value, bool):
                watermarks[mapper] = max(watermarks.get(mapper, pk_value), pk_value)
        return model(**values)

    def _insert_fixture(self, session: Session, fixture: Fixture, watermarks: dict[Mapper[Any], int]) -> None:
        if isinstance(fixture, SingleTableFixture):
            model = self.resolve_model(fixture.table, fixture_base_name(fixture.path))
            session.add_all([self._build_instance(model, row, watermarks) for row in fixture.rows])
            session.flush()
            logger.debug("loaded %d %s rows from %s", len(fixture.rows), model.__name__, display_path(fixture.path))
            return

        for table, row in fixture.entries:
            session.add(self._build_instance(self.resolve_model(table), row, watermarks))
            session.flush()
        logger.debug("loaded %d rows from %s", len(fixture.entries), display_path(fixture.path))

    def _realign_sequences(self, session: Session, database: TestDatabase, watermarks: dict[Mapper[Any], int]) -> None:
        connection = session.connection()
        for mapper, watermark in sorted(watermarks.items(), key=lambda item: item[0].class_.__name__):
            column = mapper.primary_key[0]
            current = session.execute(select(func.max(column))).scalar() or 0
            next_value = max(current, watermark) + 1
            if database.adapter.reset_sequence(connection, column.table, column, next_value, database.schema_name):
                logger.debug("restarted %s.%s at %d", column.table.name, column.name, next_value)

    def insert_fixtures(self, database: TestDatabase, fixtures_glob: Optional[str] = None) -> None:
        """Load fixture files into ``database``.

        Files are taken from :attr:`FixtureConfig.fixtures_path` in lexical order. Explicit
        integer primary keys found in the rows leave each table's sequence set past the
        highest of them, so rows inserted later never collide with fixture rows.

        Args:
            database: The handle to load into.
            fixtures_glob: Glob relative to the fixture directory. Defaults to
                :attr:`FixtureConfig.fixtures_glob`, then to every supported file.

        Raises:
            FixtureParseError: If a file cannot be decoded.
            FixtureLoadError: If a row cannot be inserted. Nothing from the load is kept.
        """
        if fixtures_glob is None:
            fixtures_glob = self.config.fixtures_glob
        watermarks: dict[Mapper[Any], int] = {}

        with database.get_session() as session:
            for path in discover_fixtures(self.fixtures_path, fixtures_glob):
                fixture = load_fixture(path)
                try:
                    self._insert_fixture(session, fixture, watermarks)
                except Exception as exc:
                    session.rollback()
                    msg = f"Could not insert fixture {display_path(path)}: {exc}"
                    raise FixtureLoadError(msg, path=path) from exc

            self._realign_sequences(session, database, watermarks)
            session.commit()
