from __future__ import annotations

from typing import TYPE_CHECKING

import click
from rich import get_console
from rich.prompt import Confirm
from rich.table import Table

if TYPE_CHECKING:
    from fixture_alchemy.config import FixtureConfig
    from fixture_alchemy.database import FixtureLoader

__all__ = ("add_fixture_commands", "get_fixture_group")


def get_fixture_group() -> click.Group:
    """Get the Fixture Alchemy CLI group."""

    @click.group(name="fixture-alchemy")
    @click.option(
        "--config",
        help="Dotted path to a FixtureConfig (e.g. 'tests.conftest:fixture_config')",
        required=True,
        type=str,
    )
    @click.pass_context
    def fixture_group(ctx: click.Context, config: str) -> None:
        """Manage test database schemas and fixtures."""
        from fixture_alchemy.config import FixtureConfig
        from fixture_alchemy.utils import module_loader

        console = get_console()
        ctx.ensure_object(dict)
        try:
            config_instance = module_loader.import_string(config)
        except ImportError as e:
            console.print(f"[red]Error loading config: {e}[/]")
            ctx.exit(1)
        if not isinstance(config_instance, FixtureConfig):
            console.print(f"[red]{config} is not a FixtureConfig[/]")
            ctx.exit(1)
        ctx.obj["config"] = config_instance

    return add_fixture_commands(fixture_group)


def _get_loader(ctx: click.Context) -> FixtureLoader:
    from fixture_alchemy.database import FixtureLoader

    config: FixtureConfig = ctx.obj["config"]
    if not config.enabled:
        get_console().print(f"[red]No test database configured, set {config.env_var} or a connection string[/]")
        ctx.exit(1)
    return FixtureLoader(config)


def add_fixture_commands(fixture_group: click.Group) -> click.Group:
    """Add the schema and fixture commands to ``fixture_group``."""
    console = get_console()

    @fixture_group.command(name="create", help="Create a schema, deploy the tables and load fixtures.")
    @click.option("--schema-name", default=None, help="Schema to create. A random name is generated if omitted.")
    @click.option("--drop-schema", is_flag=True, default=False, help="Drop a schema of the same name first.")
    @click.option("--skip-schema", is_flag=True, default=False, help="Use the default schema.")
    @click.option("--skip-fixtures", is_flag=True, default=False, help="Deploy the tables only.")
    @click.option("--fixtures-glob", default=None, help="Glob selecting the fixture files to load.")
    @click.pass_context
    def create_schema(  # pyright: ignore[reportUnusedFunction]
        ctx: click.Context,
        schema_name: str | None,
        drop_schema: bool,
        skip_schema: bool,
        skip_fixtures: bool,
        fixtures_glob: str | None,
    ) -> None:
        """Create a test schema and keep it for inspection."""
        console.rule("[yellow]Creating test database[/]", align="left")
        database = _get_loader(ctx).create(
            skip_schema=skip_schema,
            schema_name=schema_name,
            drop_schema=drop_schema,
            skip_fixtures=skip_fixtures,
            fixtures_glob=fixtures_glob,
        )
        database.close()
        if database.schema_name is None:
            console.print("[green]Deployed into the default schema[/]")
        else:
            console.print(f"[green]Created schema[/] [bold]{database.schema_name}[/]")

    @fixture_group.command(name="load-fixtures", help="Load fixtures into an existing schema.")
    @click.option("--schema-name", default=None, help="Schema to load into. Defaults to the default schema.")
    @click.option("--fixtures-glob", default=None, help="Glob selecting the fixture files to load.")
    @click.pass_context
    def load_fixtures(ctx: click.Context, schema_name: str | None, fixtures_glob: str | None) -> None:  # pyright: ignore[reportUnusedFunction]
        """Load fixtures."""
        console.rule("[yellow]Loading fixtures[/]", align="left")
        loader = _get_loader(ctx)
        database = loader.connect(schema_name)
        try:
            loader.insert_fixtures(database, fixtures_glob)
        finally:
            database.close()
        console.print("[green]Fixtures loaded[/]")

    @fixture_group.command(name="drop-schema", help="Drop a test schema and everything in it.")
    @click.argument("schema_name", type=str)
    @click.option(
        "--no-prompt",
        help="Do not prompt for confirmation before dropping.",
        type=bool,
        default=False,
        required=False,
        show_default=True,
        is_flag=True,
    )
    @click.pass_context
    def drop_schema(ctx: click.Context, schema_name: str, no_prompt: bool) -> None:  # pyright: ignore[reportUnusedFunction]
        """Drop a schema."""
        console.rule("[yellow]Dropping test schema[/]", align="left")
        input_confirmed = (
            True if no_prompt else Confirm.ask(f"[bold]Are you sure you want to drop the `{schema_name}` schema?[/]")
        )
        if input_confirmed:
            _get_loader(ctx).connect(schema_name).disconnect()
            console.print(f"[green]Dropped schema[/] [bold]{schema_name}[/]")

    @fixture_group.command(name="list-fixtures", help="Show the fixture files that would be loaded.")
    @click.option("--fixtures-glob", default=None, help="Glob selecting the fixture files.")
    @click.pass_context
    def list_fixtures(ctx: click.Context, fixtures_glob: str | None) -> None:  # pyright: ignore[reportUnusedFunction]
        """List fixture files, their form and target tables."""
        from fixture_alchemy.fixtures import SingleTableFixture, discover_fixtures, display_path, load_fixture

        config: FixtureConfig = ctx.obj["config"]
        table = Table("File", "Form", "Tables", "Rows")
        for path in discover_fixtures(config.fixtures_path, fixtures_glob or config.fixtures_glob):
            fixture = load_fixture(path)
            if isinstance(fixture, SingleTableFixture):
                table.add_row(display_path(path), "single", fixture.table, str(len(fixture.rows)))
            else:
                table.add_row(display_path(path), "multi", ", ".join(fixture.tables), str(len(fixture.entries)))
        console.print(table)

    return fixture_group
