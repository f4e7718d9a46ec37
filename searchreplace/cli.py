"""
CLI interface for searchreplace.

Provides commands to initialize configuration, preview the resolved table
list, and run a search/replace against the configured database.
"""


import json
from pathlib import Path

import click

from searchreplace import __version__
from searchreplace.errors import ConfigurationError, GatewayError


def _selection_options(func):
    """Shared table selection options for `tables` and `run`."""
    func = click.option("--exclude", "exclude", multiple=True, help="Table to skip (repeatable)")(func)
    func = click.option("--include", "include", multiple=True, help="Table to process (repeatable)")(func)
    func = click.option("--all-tables", is_flag=True, help="Start from every table in the database")(func)
    return func


def _build(ctx, all_tables: bool, include: tuple, exclude: tuple):
    """Create a SearchReplace bound to the configured gateway."""
    from searchreplace.gateway import create_gateway
    from searchreplace.search_replace import SearchReplace

    if "config" not in ctx.obj:
        click.echo(f"✗ Config not loaded: {ctx.obj.get('config_error', 'Unknown error')}", err=True)
        click.echo("Run 'searchreplace init' to create a configuration file.", err=True)
        raise SystemExit(1)

    config = ctx.obj["config"]
    sr = SearchReplace(create_gateway(config.to_gateway_config()))
    sr.set_table_rows_per_batch(config.batch_size)
    if all_tables:
        sr.include_all_tables()
    if include:
        sr.include_tables(list(include))
    if exclude:
        sr.exclude_tables(list(exclude))
    return sr


@click.group()
@click.version_option(version=__version__, prog_name="searchreplace")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.yaml (default: $SEARCHREPLACE_HOME/config.yaml)",
)
@click.pass_context
def main(ctx, config_path):
    """
    searchreplace - Bulk search/replace across database tables.
    """
    from searchreplace.config import load_config
    from searchreplace.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ConfigurationError) as e:
        # init does not need a config; other commands check ctx.obj
        ctx.obj["config_error"] = str(e)
        return

    ctx.obj["config"] = config
    setup_logging(
        log_file=Path(config.log_file).expanduser() if config.log_file else None,
        log_level=config.log_level,
        log_format=config.log_format,
    )


@main.command("init")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool):
    """Initialize searchreplace configuration."""
    from searchreplace.config import PASSWORD_ENV_VAR, get_searchreplace_home
    import yaml

    home = get_searchreplace_home()
    if not home.exists():
        home.mkdir(parents=True)

    cfg_path = home / "config.yaml"
    if cfg_path.exists() and not force:
        click.echo(f"Config already exists at {cfg_path}. Use --force to overwrite.", err=True)
        raise SystemExit(1)

    default_cfg = {
        "backend": "mysql",
        "host": "localhost",
        "port": 3306,
        "username": "root",
        "database": "app",
        "sqlite_path": "",
        "batch_size": 100,
        "log_level": "INFO",
        "log_format": "pretty",
        "log_file": None,
        "env_file": str(home / ".env"),
    }
    cfg_path.write_text(yaml.safe_dump(default_cfg, sort_keys=False))

    env_path = home / ".env"
    if not env_path.exists():
        env_path.write_text(f"# {PASSWORD_ENV_VAR}=...\n")

    click.echo(f"Initialized searchreplace config at {cfg_path}")


@main.command("tables")
@_selection_options
@click.pass_context
def tables(ctx, all_tables: bool, include: tuple, exclude: tuple):
    """
    Print the resolved table list.

    Examples:

        searchreplace tables --all-tables --exclude sessions
    """
    sr = None
    try:
        sr = _build(ctx, all_tables, include, exclude)
        names = sr.get_tables()
    except (ConfigurationError, GatewayError) as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)
    finally:
        if sr is not None and sr.db() is not None:
            sr.db().close()

    if not names:
        click.echo("No tables selected.")
        return
    for name in names:
        click.echo(name)


@main.command("run")
@click.option("--search", "search_term", required=True, help="Text (or pattern) to find")
@click.option("--replace", "replace_term", required=True, help="Replacement text (or template)")
@click.option("--regex", is_flag=True, help="Treat --search as a regular expression")
@click.option("--replace-regex", is_flag=True, help="Allow group references in --replace")
@_selection_options
@click.option("--table-offset", type=click.IntRange(min=0), default=0, help="Skip the first N resolved tables")
@click.option("--table-limit", type=click.IntRange(min=0), default=None, help="Process at most N tables")
@click.option("--row-offset", type=click.IntRange(min=0), default=0, help="Start each table at row N")
@click.option("--row-limit", type=click.IntRange(min=0), default=None, help="Process at most N rows per table")
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Rows fetched per round-trip")
@click.option("--dry-run", is_flag=True, help="Count changes without writing")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
@click.pass_context
def run(
    ctx,
    search_term: str,
    replace_term: str,
    regex: bool,
    replace_regex: bool,
    all_tables: bool,
    include: tuple,
    exclude: tuple,
    table_offset: int,
    table_limit,
    row_offset: int,
    row_limit,
    batch_size,
    dry_run: bool,
    as_json: bool,
):
    """
    Run a search/replace.

    Examples:

        searchreplace run --search http://old --replace https://new --all-tables

        searchreplace run --search 'v(\\d+)' --regex --replace 'version-\\1' --replace-regex --include posts

        searchreplace run --search foo --replace bar --all-tables --row-offset 5000 --row-limit 5000 --dry-run
    """
    from searchreplace.utils import print_report

    sr = None
    try:
        sr = _build(ctx, all_tables, include, exclude)
        sr.search(search_term, regex=regex).replace(replace_term, regex=replace_regex)
        sr.set_table_range(table_offset, table_limit)
        sr.set_table_row_range(row_offset, row_limit)
        if batch_size is not None:
            sr.set_table_rows_per_batch(batch_size)
        report = sr.execute(dry_run=dry_run)
    except ConfigurationError as e:
        click.echo(f"✗ {e}", err=True)
        raise SystemExit(1)
    finally:
        if sr is not None and sr.db() is not None:
            sr.db().close()

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)

    if not report.success:
        raise SystemExit(1)
