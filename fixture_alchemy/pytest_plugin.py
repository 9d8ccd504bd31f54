"""pytest fixtures for schema-isolated test databases.

Enable the plugin from a ``conftest.py``::

    pytest_plugins = ["fixture_alchemy.pytest_plugin"]

and point it at a configuration, either with the ``fixture_alchemy_config`` ini option
(``fixture_alchemy_config = tests.conftest:fixture_config``) or by overriding the
``fixture_alchemy_config`` fixture. Tests using ``test_database`` are skipped while the
configured environment variable is unset.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from fixture_alchemy.config import FixtureConfig
from fixture_alchemy.database import FixtureLoader
from fixture_alchemy.utils.module_loader import import_string

if TYPE_CHECKING:
    from collections.abc import Generator

    from fixture_alchemy.database import TestDatabase

__all__ = (
    "fixture_alchemy_config",
    "fixture_loader",
    "pytest_addoption",
    "test_database",
)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addini(
        "fixture_alchemy_config",
        help="Dotted path to the FixtureConfig used by the test_database fixture",
        default=None,
    )


@pytest.fixture(scope="session")
def fixture_alchemy_config(pytestconfig: pytest.Config) -> FixtureConfig:
    dotted_path = pytestconfig.getini("fixture_alchemy_config")
    if not dotted_path:
        pytest.fail("set the 'fixture_alchemy_config' ini option or override the fixture_alchemy_config fixture")
    config = import_string(dotted_path)
    if not isinstance(config, FixtureConfig):
        pytest.fail(f"{dotted_path} is not a FixtureConfig")
    return config


@pytest.fixture(scope="session")
def fixture_loader(fixture_alchemy_config: FixtureConfig) -> FixtureLoader:
    return FixtureLoader(fixture_alchemy_config)


@pytest.fixture
def test_database(fixture_loader: FixtureLoader) -> Generator[TestDatabase, None, None]:
    """A fresh schema with every fixture loaded, dropped after the test."""
    if not fixture_loader.config.enabled:
        pytest.skip(fixture_loader.config.skip_reason)
    database = fixture_loader.create()
    yield database
    database.disconnect()
