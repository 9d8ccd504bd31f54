from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

__all__ = (
    "FixtureAlchemyError",
    "FixtureError",
    "FixtureLoadError",
    "FixtureParseError",
    "ImproperConfigurationError",
    "MissingDependencyError",
    "SchemaError",
)


class FixtureAlchemyError(Exception):
    """Base exception class from which all Fixture Alchemy exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``FixtureAlchemyError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(FixtureAlchemyError, ImportError):
    """Missing optional dependency.

    This exception is raised when a module depends on a dependency that has not been installed.

    Args:
        package: Name of the missing package.
        install_package: Optional alternative package name to install.
    """

    def __init__(self, package: str, install_package: str | None = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install fixture-alchemy[{install_package or package}]' to install fixture-alchemy with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(FixtureAlchemyError):
    """Improper Configuration error.

    This exception is raised when there is an issue with the configuration of the loader,
    such as a missing connection string or an unsupported database driver.

    Args:
        *args: Variable length argument list passed to parent class.
        detail: Detailed error message.
    """


class SchemaError(FixtureAlchemyError):
    """A test schema could not be created or scoped.

    Args:
        *args: Variable length argument list passed to parent class.
        detail: Detailed error message.
    """


class FixtureError(FixtureAlchemyError):
    """Base fixture exception type.

    Args:
        *args: Variable length argument list passed to parent class.
        path: The fixture file the error relates to.
        detail: Detailed error message.
    """

    def __init__(self, *args: Any, path: Path | None = None, detail: str = "") -> None:
        self.path = path
        super().__init__(*args, detail=detail)


class FixtureParseError(FixtureError):
    """A fixture file could not be read or does not match a known fixture form."""


class FixtureLoadError(FixtureError):
    """A fixture row could not be inserted."""
