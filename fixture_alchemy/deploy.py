"""Deployment strategies bringing a fresh schema's tables up to date."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from fixture_alchemy.exceptions import MissingDependencyError

if TYPE_CHECKING:
    import os

    from sqlalchemy import Engine, MetaData

__all__ = (
    "AlembicDeployment",
    "MetadataDeployment",
)

logger = logging.getLogger(__name__)


@dataclass
class MetadataDeployment:
    """Create every table of ``metadata`` that does not exist yet."""

    metadata: MetaData

    def __call__(self, engine: Engine) -> None:
        self.metadata.create_all(engine, checkfirst=True)


@dataclass
class AlembicDeployment:
    """Upgrade the schema with Alembic migrations.

    The open connection is handed to ``env.py`` as ``config.attributes["connection"]``; the
    migration environment must use it rather than build its own engine, so migrations run
    inside the test schema::

        connectable = config.attributes.get("connection")
        if connectable is None:
            connectable = engine_from_config(...)
    """

    script_location: str | os.PathLike[str]
    """Directory containing ``env.py`` and the ``versions`` folder."""
    revision: str = "head"
    """Target revision."""
    config_file: Optional[str | os.PathLike[str]] = None
    """Optional ``alembic.ini`` to read further options from."""
    attributes: dict[str, Any] = field(default_factory=dict)
    """Extra values passed to ``env.py`` through ``config.attributes``."""

    def __call__(self, engine: Engine) -> None:
        try:
            from alembic import command
            from alembic.config import Config
        except ImportError as exc:
            raise MissingDependencyError(package="alembic") from exc

        alembic_config = Config(file_=self.config_file)
        alembic_config.set_main_option("script_location", str(self.script_location))
        alembic_config.set_main_option(
            "sqlalchemy.url", engine.url.render_as_string(hide_password=False).replace("%", "%%")
        )
        alembic_config.attributes.update(self.attributes)
        logger.debug("upgrading schema to %s from %s", self.revision, self.script_location)
        with engine.begin() as connection:
            alembic_config.attributes["connection"] = connection
            command.upgrade(alembic_config, self.revision)
