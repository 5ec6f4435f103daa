"""sqlift - Main entry point."""

import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .codegen import FunctionStyle, OutputMode, emit, get_generator_class, plan_schema
from .config import Settings, load_settings
from .database import Schema, TableFilter, get_introspector_class
from .errors import SqliftError
from .output import flat_output_path, write_generated

app = typer.Typer(
    name="sqlift",
    help="Generate typed CRUD data access code from a live database schema",
    add_completion=False,
)

console = Console()
logger = logging.getLogger("sqlift")

DEFAULT_OUTPUT = "generated"


def _configure_logging(verbose: int):
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _split_names(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _table_filter(tables: Optional[str], exclude: Optional[str]) -> TableFilter:
    return TableFilter(include=_split_names(tables), exclude=_split_names(exclude))


def _introspect(database: str, settings: Settings, schema: str, table_filter: TableFilter) -> Schema:
    """Connect with the configured settings and introspect one schema."""
    introspector_class = get_introspector_class(database)
    with introspector_class(dsn=settings.postgres_dsn()) as introspector:
        return introspector.introspect(schema, table_filter)


def _fail(error: SqliftError):
    logger.debug("Error details: %s", error.to_dict())
    console.print(f"[red]Error: {escape(error.message)}[/red]")
    raise typer.Exit(1)


@app.command()
def generate(
    database: str = typer.Argument(..., help="Database kind to introspect (postgres)"),
    language: str = typer.Argument(..., help="Target language (python)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output package directory, or module file with --mode flat"),
    mode: OutputMode = typer.Option(OutputMode.LIBRARY, "--mode", "-m", help="library: one module per table; flat: a single module"),
    style: FunctionStyle = typer.Option(FunctionStyle.STANDALONE, "--style", help="standalone functions or per-table repository classes"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Database schema (or SQLIFT_SCHEMA env, default: public)"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Path to a .env file with DB_* settings"),
    tables: Optional[str] = typer.Option(None, "--tables", "-t", help="Comma-separated tables to include"),
    exclude: Optional[str] = typer.Option(None, "--exclude", "-x", help="Comma-separated tables to skip"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Generate code but don't write any files"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output (-v, -vv)"),
):
    """
    Introspect a database schema and generate typed CRUD code.

    Every table gets a record type plus get_all and insert; tables with a
    primary key also get get_by_<key>, update, delete and (unless the key is
    database generated) upsert.
    """
    _configure_logging(verbose)
    try:
        # Unknown target languages fail before any connection is made
        get_generator_class(language)
        settings = load_settings(env_file)
        schema_name = schema or settings.sqlift_schema

        with console.status(f"Introspecting schema '{schema_name}'..."):
            db_schema = _introspect(database, settings, schema_name, _table_filter(tables, exclude))
        if not db_schema.tables:
            console.print(f"[yellow]No tables found in schema '{schema_name}'[/yellow]")
            raise typer.Exit()

        generated = emit(db_schema, plan_schema(db_schema), mode, style, language)
        target = output or DEFAULT_OUTPUT
        written = [] if dry_run else write_generated(generated, target)
    except SqliftError as e:
        _fail(e)

    file_table = Table(title="Generated Files")
    file_table.add_column("File", style="cyan")
    file_table.add_column("Lines", style="magenta")
    if generated.is_flat:
        file_table.add_row(flat_output_path(target).name, str((generated.source or "").count("\n")))
    else:
        for filename, source in sorted(generated.files.items()):
            file_table.add_row(filename, str(source.count("\n")))
    console.print(file_table)

    if dry_run:
        console.print("\n[yellow]Dry run - no files written[/yellow]")
    else:
        console.print(f"\n[green]Wrote {len(written)} file(s) for {len(db_schema.tables)} table(s) to {target}[/green]")


@app.command()
def plan(
    database: str = typer.Argument(..., help="Database kind to introspect (postgres)"),
    schema: Optional[str] = typer.Option(None, "--schema", "-s", help="Database schema (or SQLIFT_SCHEMA env, default: public)"),
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Path to a .env file with DB_* settings"),
    tables: Optional[str] = typer.Option(None, "--tables", "-t", help="Comma-separated tables to include"),
    exclude: Optional[str] = typer.Option(None, "--exclude", "-x", help="Comma-separated tables to skip"),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Increase log output (-v, -vv)"),
):
    """Show the functions each table would get, without generating code."""
    _configure_logging(verbose)
    try:
        settings = load_settings(env_file)
        schema_name = schema or settings.sqlift_schema
        db_schema = _introspect(database, settings, schema_name, _table_filter(tables, exclude))
        function_sets = plan_schema(db_schema)
    except SqliftError as e:
        _fail(e)

    plan_table = Table(title=f"Planned Functions for '{db_schema.name}'")
    plan_table.add_column("Table", style="cyan")
    plan_table.add_column("Primary Key", style="green")
    plan_table.add_column("Functions", style="yellow")
    plan_table.add_column("Insert Columns", style="magenta")
    for table_name, function_set in function_sets.items():
        table = function_set.table
        pk = ", ".join(table.primary_key.columns) if table.has_primary_key else "-"
        insert_columns = ", ".join(p.column.name for p in function_set.insert.params) or "(defaults)"
        plan_table.add_row(
            table_name,
            pk,
            ", ".join(fn.name for fn in function_set.functions()),
            insert_columns,
        )
    console.print(plan_table)

    if db_schema.enums:
        console.print(f"\n[bold]Enums:[/bold] {', '.join(db_schema.enums)}")


@app.command()
def config(
    env_file: Optional[str] = typer.Option(None, "--env-file", help="Path to a .env file with DB_* settings"),
):
    """Show current configuration."""
    try:
        settings = load_settings(env_file)
    except SqliftError as e:
        _fail(e)

    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Host: {settings.db_host}")
    console.print(f"  Port: {settings.db_port}")
    console.print(f"  Database: {settings.db_name or 'Not set'}")
    console.print(f"  User: {settings.db_user or 'Not set'}")
    console.print(f"  Password: {'Configured' if settings.db_password else 'Not set'}")
    console.print(f"  Default Schema: {settings.sqlift_schema}")
    console.print(f"  Connection: {settings.redacted_dsn()}")


@app.command()
def version():
    """Show the sqlift version."""
    console.print(f"sqlift {__version__}")


@app.callback()
def main():
    """
    sqlift - Generate typed CRUD data access code from a live database schema.

    Connection settings come from DB_HOST, DB_PORT, DB_NAME, DB_USER and
    DB_PASSWORD in the environment or a .env file.

    Examples:

        sqlift generate postgres python -o myapp/db

        sqlift generate postgres python --mode flat --style class -o db.py

        sqlift plan postgres --schema billing

        sqlift config
    """
    pass


if __name__ == "__main__":
    app()
