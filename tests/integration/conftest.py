from pathlib import Path

import pytest

from fixture_alchemy.config import FixtureConfig
from tests.unit.models import Base


@pytest.fixture(scope="session")
def fixture_alchemy_config() -> FixtureConfig:
    """Connection string comes from ``TEST_DATABASE_URL``."""
    return FixtureConfig(base=Base, fixtures_path=Path(__file__).parent / "fixtures")
