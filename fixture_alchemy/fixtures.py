"""Fixture file discovery and decoding.

A fixture file holds seed rows in one of two forms:

* **single table** - a list of row objects. The target table is named after the file:
  the text before the first ``.`` with one trailing ``s`` removed, so ``users.json``
  loads into ``user``. CSV files are always of this form.
* **multi table** - a flat list alternating a table name and a row object,
  ``["user", {"id": 1}, "job", {"id": 7, "user_id": 1}]``.

The form is decided once, when the file is decoded, by the rule in :func:`parse_fixture`.
"""

import csv
import gzip
import io
import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from msgspec import DecodeError
from typing_extensions import TypeAlias

from fixture_alchemy._serialization import decode_json
from fixture_alchemy.exceptions import FixtureParseError
from fixture_alchemy.utils.text import singularize

__all__ = (
    "SUPPORTED_SUFFIXES",
    "Fixture",
    "MultiTableFixture",
    "SingleTableFixture",
    "discover_fixtures",
    "display_path",
    "fixture_base_name",
    "fixture_table_name",
    "load_fixture",
    "parse_fixture",
    "read_fixture",
)

SUPPORTED_SUFFIXES = (".json", ".json.gz", ".json.zip", ".csv", ".csv.gz", ".csv.zip")
"""File name endings recognised as fixtures, matched case-insensitively."""


@dataclass(frozen=True)
class SingleTableFixture:
    """All rows of a file target the table named after the file."""

    path: Path
    table: str
    rows: "list[dict[str, Any]]" = field(default_factory=list)

    @property
    def tables(self) -> "list[str]":
        return [self.table]


@dataclass(frozen=True)
class MultiTableFixture:
    """Ordered ``(table, row)`` pairs, each inserted on its own."""

    path: Path
    entries: "list[tuple[str, dict[str, Any]]]" = field(default_factory=list)

    @property
    def tables(self) -> "list[str]":
        """Distinct table names in order of first appearance."""
        return list(dict.fromkeys(table for table, _ in self.entries))


Fixture: TypeAlias = Union[SingleTableFixture, MultiTableFixture]


def display_path(path: "Union[str, os.PathLike[str]]") -> str:
    """Render ``path`` relative to the current working directory where possible."""
    try:
        return os.path.relpath(path)
    except ValueError:
        # different drive on Windows
        return str(path)


def _fixture_format(path: Path) -> "Optional[tuple[str, str]]":
    name = path.name.lower()
    for suffix in SUPPORTED_SUFFIXES:
        if name.endswith(suffix):
            kind, _, compression = suffix[1:].partition(".")
            return kind, compression or "plain"
    return None


def fixture_base_name(path: Path) -> str:
    """Return the file name up to the first ``.``."""
    return path.name.split(".", 1)[0]


def fixture_table_name(path: Path) -> str:
    """Return the table a single-table fixture file loads into.

    Examples:
        >>> fixture_table_name(Path("fixtures/users.json.gz"))
        'user'
    """
    return singularize(fixture_base_name(path))


def discover_fixtures(fixtures_path: "Union[str, os.PathLike[str]]", fixtures_glob: "Optional[str]" = None) -> "list[Path]":
    """Select fixture files below ``fixtures_path``.

    Paths are joined onto ``fixtures_path``; the working directory is left alone.

    Args:
        fixtures_path: Directory holding the fixture files.
        fixtures_glob: Optional glob, relative to ``fixtures_path``. Without one, every
            file with a supported suffix is selected.

    Returns:
        The selected files in lexical order of their path relative to ``fixtures_path``.
    """
    base_path = Path(fixtures_path)
    if fixtures_glob is None:
        candidates = (path for path in base_path.glob("*") if _fixture_format(path) is not None)
    else:
        candidates = base_path.glob(fixtures_glob)
    return sorted(
        (path for path in candidates if path.is_file()),
        key=lambda path: path.relative_to(base_path).as_posix(),
    )


def _read_zip_member(path: Path, kind: str) -> bytes:
    with zipfile.ZipFile(path, mode="r") as zf:
        members = [name for name in zf.namelist() if name.lower().endswith(f".{kind}")]
        if not members:
            msg = f"No {kind.upper()} files found in zip archive: {display_path(path)}"
            raise FixtureParseError(msg, path=path)

        # prefer the member named after the archive
        expected = path.name[: -len(".zip")]
        member = next((name for name in members if Path(name).name == expected), members[0])
        return zf.read(member)


def read_fixture(path: Path) -> Any:
    """Read and decode a single fixture file.

    Plain, gzipped (``.gz``) and zipped (``.zip``) JSON and CSV files are supported.
    CSV files decode to a list of dictionaries keyed by the header row; their values are
    always strings.

    Args:
        path: The fixture file.

    Raises:
        FixtureParseError: If the file has an unsupported suffix, cannot be read or
            decompressed, or is not valid JSON or CSV.

    Returns:
        Any: The decoded document.
    """
    fixture_format = _fixture_format(path)
    if fixture_format is None:
        msg = f"Unsupported fixture file {display_path(path)}, expected one of {', '.join(SUPPORTED_SUFFIXES)}"
        raise FixtureParseError(msg, path=path)
    kind, compression = fixture_format

    try:
        if compression == "gz":
            raw = gzip.decompress(path.read_bytes())
        elif compression == "zip":
            raw = _read_zip_member(path, kind)
        else:
            raw = path.read_bytes()

        if kind == "json":
            return decode_json(raw)
        reader = csv.DictReader(io.StringIO(raw.decode("utf-8"), newline=""))
        return list(reader)
    except (OSError, EOFError, zipfile.BadZipFile, DecodeError, csv.Error, UnicodeDecodeError) as exc:
        msg = f"Could not read fixture {display_path(path)}: {exc}"
        raise FixtureParseError(msg, path=path) from exc


def parse_fixture(path: Path, data: Any) -> Fixture:
    """Decide the form of a decoded fixture document.

    The rule, applied to the top-level value:

    * an empty list, or a list made only of objects: single table;
    * a list of even length strictly alternating a string and an object: multi table;
    * anything else is rejected.

    Args:
        path: The file the document came from, used for naming and error messages.
        data: The decoded document.

    Raises:
        FixtureParseError: If the document matches neither form.

    Returns:
        The decoded fixture.
    """
    if not isinstance(data, list):
        msg = f"Fixture {display_path(path)} must contain a list, got {type(data).__name__}"
        raise FixtureParseError(msg, path=path)

    if all(isinstance(item, dict) for item in data):
        return SingleTableFixture(path=path, table=fixture_table_name(path), rows=data)

    tables, rows = data[0::2], data[1::2]
    if (
        len(data) % 2 == 0
        and all(isinstance(table, str) and table for table in tables)
        and all(isinstance(row, dict) for row in rows)
    ):
        return MultiTableFixture(path=path, entries=list(zip(tables, rows)))

    msg = (
        f"Fixture {display_path(path)} is neither a list of rows nor a list alternating "
        "table names and rows"
    )
    raise FixtureParseError(msg, path=path)


def load_fixture(path: Path) -> Fixture:
    """Read ``path`` and decode it into a :data:`Fixture`."""
    return parse_fixture(path, read_fixture(path))
