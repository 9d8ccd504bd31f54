"""Loader configuration."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Union

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, registry

from fixture_alchemy.exceptions import ImproperConfigurationError

if TYPE_CHECKING:
    from sqlalchemy import Engine, MetaData

__all__ = (
    "DEFAULT_ENV_VAR",
    "FixtureConfig",
)

DEFAULT_ENV_VAR = "TEST_DATABASE_URL"
"""Environment variable holding the test database connection string."""


@dataclass
class FixtureConfig:
    """Fixture loader configuration.

    Example:
        Basic configuration::

            config = FixtureConfig(
                base=Base,
                fixtures_path="tests/fixtures",
            )

        The connection string is read from ``TEST_DATABASE_URL`` unless given explicitly.
        Without one the loader is disabled, see :attr:`enabled`.
    """

    base: Union[type[DeclarativeBase], registry, None] = None
    """Declarative base class or ORM registry whose mapped classes fixtures load into."""
    connection_string: Union[str, None] = None
    """Database connection string in one of the formats supported by SQLAlchemy.

    Falls back to the value of :attr:`env_var`.
    """
    env_var: str = DEFAULT_ENV_VAR
    """Environment variable consulted when :attr:`connection_string` is not set."""
    fixtures_path: Union[str, os.PathLike[str]] = "tests/fixtures"
    """Directory holding the fixture files. Relative paths resolve against the working directory."""
    fixtures_glob: Union[str, None] = None
    """Default glob selecting fixture files. ``None`` selects every supported file."""
    engine_config: dict[str, Any] = field(default_factory=dict)
    """Extra keyword arguments for :func:`sqlalchemy.create_engine`."""
    deployment: Union[Callable[[Engine], None], None] = None
    """Callable bringing the tables of a fresh schema up to date.

    Defaults to :meth:`MetaData.create_all <sqlalchemy.schema.MetaData.create_all>`.
    See :class:`fixture_alchemy.deploy.AlembicDeployment` for migration based deployment.
    """
    schema_prefix: str = "tmp_"
    """Prefix of generated schema names."""
    schema_directory: Union[str, os.PathLike[str], None] = None
    """Directory for SQLite schema files. Defaults to the system temporary directory."""
    create_engine_callable: Callable[..., Engine] = create_engine
    """Callable that creates an :class:`Engine <sqlalchemy.Engine>` instance or instance of its subclass."""

    def __post_init__(self) -> None:
        if self.base is None:
            msg = "'base' must be a declarative base class or an ORM registry."
            raise ImproperConfigurationError(msg)
        if not isinstance(self.base, registry) and not hasattr(self.base, "registry"):
            msg = f"{self.base!r} is neither a declarative base class nor an ORM registry."
            raise ImproperConfigurationError(msg)
        if self.connection_string is None:
            self.connection_string = os.environ.get(self.env_var) or None
        self.fixtures_path = Path(self.fixtures_path)
        self.schema_directory = Path(self.schema_directory or tempfile.gettempdir())

    @property
    def enabled(self) -> bool:
        """Whether a test database is configured."""
        return self.connection_string is not None

    @property
    def orm_registry(self) -> registry:
        if isinstance(self.base, registry):
            return self.base
        return self.base.registry  # type: ignore[union-attr]

    @property
    def metadata(self) -> MetaData:
        return self.orm_registry.metadata

    @property
    def skip_reason(self) -> str:
        return f'set {self.env_var} to e.g. "postgresql+psycopg://localhost/test" to enable this test'

    def get_engine(self) -> Engine:
        """Create a new engine for the test database.

        Raises:
            ImproperConfigurationError: If no connection string is configured.

        Returns:
            A fresh engine; every handle owns its own.
        """
        if self.connection_string is None:
            raise ImproperConfigurationError(self.skip_reason)
        return self.create_engine_callable(self.connection_string, **self.engine_config)
