"""Schema isolation against a real server, skipped unless ``TEST_DATABASE_URL`` is set."""

from __future__ import annotations

import pytest
from sqlalchemy import func, inspect, select

from fixture_alchemy.database import FixtureLoader, TestDatabase
from tests.unit.models import Job, Tag, User


def test_fixtures_loaded(test_database: TestDatabase) -> None:
    with test_database.get_session() as session:
        assert session.scalar(select(func.count()).select_from(User)) == 2
        assert session.scalar(select(func.count()).select_from(Tag)) == 3
        assert session.get(Job, 7).status == "queued"
        assert session.get(Job, 9).status == "done"


def test_sequences_continue_after_fixtures(test_database: TestDatabase) -> None:
    with test_database.get_session() as session:
        user, job, tag = User(name="new"), Job(name="new"), Tag(label="new")
        session.add_all([user, job, tag])
        session.commit()

        assert user.id == 3
        assert job.id == 10
        assert tag.id == 5


def test_schema_is_private(test_database: TestDatabase) -> None:
    assert test_database.schema_name is not None
    inspector = inspect(test_database.root_engine)
    assert test_database.schema_name in inspector.get_schema_names()
    assert "user" in inspector.get_table_names(schema=test_database.schema_name)


def test_disconnect_drops_schema(fixture_loader: FixtureLoader) -> None:
    if not fixture_loader.config.enabled:
        pytest.skip(fixture_loader.config.skip_reason)
    database = fixture_loader.create(skip_fixtures=True)
    schema_name = database.schema_name
    database.disconnect()

    check = fixture_loader.connect()
    try:
        assert schema_name not in inspect(check.engine).get_schema_names()
    finally:
        check.close()
