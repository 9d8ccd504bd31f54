from fixture_alchemy.cli import get_fixture_group


def run_cli() -> None:  # pragma: no cover
    """Fixture Alchemy CLI"""
    get_fixture_group()()


if __name__ == "__main__":  # pragma: no cover
    run_cli()
