from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch

from fixture_alchemy.config import FixtureConfig
from fixture_alchemy.utils.module_loader import import_string
from fixture_alchemy.utils.text import random_string, singularize


def test_import_string() -> None:
    cls = import_string("fixture_alchemy.config.FixtureConfig")
    assert cls is FixtureConfig
    assert import_string("fixture_alchemy.config:FixtureConfig") is FixtureConfig

    with pytest.raises(ImportError):
        _ = import_string("FixtureConfigNew")
    with pytest.raises(ImportError):
        _ = import_string("imaginary_module_that_doesnt_exist.Config")


def test_import_non_existing_attribute_raises() -> None:
    with pytest.raises(ImportError, match="does not define a 'SuperFixtureConfig'"):
        import_string("fixture_alchemy.config:SuperFixtureConfig")


def test_import_string_cached(tmp_path: Path, monkeypatch: MonkeyPatch) -> None:
    tmp_path.joinpath("testmodule.py").write_text("x = 'foo'")
    monkeypatch.chdir(tmp_path)
    monkeypatch.syspath_prepend(tmp_path)  # pyright: ignore[reportUnknownMemberType]
    assert import_string("testmodule.x") == "foo"
    assert import_string("testmodule:x") == "foo"


def test_random_string() -> None:
    value = random_string()

    assert len(value) == 16
    assert value == value.lower()
    assert value.isalnum()
    assert len(random_string(4)) == 4
    assert random_string() != random_string()


@pytest.mark.parametrize(
    ("name", "expected"),
    [("users", "user"), ("status", "statu"), ("job", "job"), ("s", "s"), ("classes", "classe")],
)
def test_singularize(name: str, expected: str) -> None:
    assert singularize(name) == expected
