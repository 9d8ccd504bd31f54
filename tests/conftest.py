import logging

import pytest

pytest_plugins = [
    "pytester",
    "fixture_alchemy.pytest_plugin",
]


@pytest.fixture(autouse=True, scope="session")
def configure_logging() -> None:
    """Configure logging levels to suppress verbose database output."""
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("fixture_alchemy").setLevel(logging.DEBUG)
