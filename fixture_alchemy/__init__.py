from fixture_alchemy import adapters, config, deploy, exceptions, fixtures, utils
from fixture_alchemy.config import FixtureConfig
from fixture_alchemy.database import FixtureLoader, TestDatabase
from fixture_alchemy.deploy import AlembicDeployment, MetadataDeployment

__all__ = (
    "AlembicDeployment",
    "FixtureConfig",
    "FixtureLoader",
    "MetadataDeployment",
    "TestDatabase",
    "adapters",
    "config",
    "deploy",
    "exceptions",
    "fixtures",
    "utils",
)
