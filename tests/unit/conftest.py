from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import pytest

from fixture_alchemy.config import FixtureConfig
from fixture_alchemy.database import FixtureLoader
from tests.unit.models import Base

if TYPE_CHECKING:
    from collections.abc import Generator

    from fixture_alchemy.database import TestDatabase


@pytest.fixture
def fixtures_dir(tmp_path: Path) -> Path:
    path = tmp_path / "fixtures"
    path.mkdir()
    return path


@pytest.fixture
def schema_dir(tmp_path: Path) -> Path:
    path = tmp_path / "schemas"
    path.mkdir()
    return path


@pytest.fixture
def write_fixture(fixtures_dir: Path) -> Callable[[str, Any], Path]:
    """Write ``data`` as JSON into the fixture directory."""

    def _write(name: str, data: Any) -> Path:
        path = fixtures_dir / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sqlite_config(tmp_path: Path, fixtures_dir: Path, schema_dir: Path) -> FixtureConfig:
    return FixtureConfig(
        base=Base,
        connection_string=f"sqlite:///{tmp_path / 'main.db'}",
        fixtures_path=fixtures_dir,
        schema_directory=schema_dir,
    )


@pytest.fixture
def loader(sqlite_config: FixtureConfig) -> FixtureLoader:
    return FixtureLoader(sqlite_config)


@pytest.fixture
def databases() -> Generator[list[TestDatabase], None, None]:
    """Collects handles created by a test and releases them afterwards."""
    created: list[TestDatabase] = []
    yield created
    for database in created:
        database.close()
