"""CLI module for comparing application schemas against live databases.

Provides commands for comparing SQLAlchemy metadata with a PostgreSQL
database and for listing the connection profiles in the config file.

Usage:
    schema-compare compare --metadata myapp.models:Base --profile dev
    schema-compare compare --metadata myapp.models:Base --url postgresql://localhost/app
    schema-compare compare --metadata app.orders:Base --metadata app.billing:Base \\
        --profile dev --schema public --schema billing --always-run-stage2
    schema-compare profiles

Commands:
    compare   - Compare logical schemas with a database and list differences
    profiles  - List available profiles
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path

import psycopg
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from schema_compare.compare.log import list_all_errors
from schema_compare.config.loader import CONFIG_FILE_NAME, load_config
from schema_compare.config.models import ToolConfig
from schema_compare.errors import CompareUsageError
from schema_compare.factory import compare_with_database
from schema_compare.schema.metadata import load_logical_schema
from schema_compare.schema.models import LogicalSchema

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _load_metadata(reference: str, dialect: str) -> LogicalSchema:
    """Import ``package.module:attribute`` and read it as a logical schema.

    The attribute may be dotted (``models:Base.metadata``). The logical
    schema is named after the module path.

    Raises:
        CompareUsageError: If the reference is malformed or cannot be imported.
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise CompareUsageError(
            f"Invalid --metadata '{reference}': expected 'package.module:attribute'"
        )
    try:
        target = importlib.import_module(module_name)
        for part in attribute.split("."):
            target = getattr(target, part)
    except (ImportError, AttributeError) as e:
        raise CompareUsageError(f"Cannot load --metadata '{reference}': {e}") from e

    return load_logical_schema(target, name=module_name, dialect=dialect)


def _load_tool_config(config_path: str | None) -> ToolConfig:
    """Explicit ``--config`` must exist; the default file is optional."""
    if config_path is not None:
        return load_config(Path(config_path))
    default_path = Path.cwd() / CONFIG_FILE_NAME
    if default_path.exists():
        return load_config(default_path)
    return ToolConfig()


# ============================================================================
# Command implementations
# ============================================================================


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare logical schemas with a database.

    Args:
        args: Parsed arguments with metadata, url/profile, config, schema
            and always_run_stage2.

    Returns:
        0 if no differences, 1 on differences or failure.
    """
    try:
        config = _load_tool_config(args.config)
        if args.always_run_stage2:
            config.compare.always_run_stage2 = True
        if args.profile and args.profile not in config.profiles:
            available = ", ".join(config.profiles) or "none"
            console.print(
                f"[red]Error: Profile '{args.profile}' not found. Available: {available}[/red]"
            )
            return 1

        logical_schemas = [
            _load_metadata(reference, config.compare.dialect) for reference in args.metadata
        ]
        target = args.profile or args.url
        console.print(f"Comparing {len(logical_schemas)} logical schema(s)...", style="dim")
        comparer = compare_with_database(target, logical_schemas, config, args.schema)
    except (CompareUsageError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1
    except psycopg.Error as e:
        console.print(f"[red]Error: Failed to connect to database: {escape(str(e))}[/red]")
        return 1

    errors = list_all_errors(comparer.logs)
    console.print()
    if not errors:
        console.print("[bold green]v[/bold green] Database matches the logical schema")
        return 0

    console.print(f"[bold red]x[/bold red] {len(errors)} difference(s) found")
    for line in errors:
        console.print(f"  {escape(line)}", highlight=False)
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from schema-compare.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if the config file is missing or invalid.
    """
    try:
        config = load_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, CompareUsageError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    if not config.profiles:
        console.print("[yellow]No profiles configured.[/yellow]")
        return 0

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(f"[bold cyan]{name}[/bold cyan]", profile.description or "")

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors or differences).
    """
    parser = argparse.ArgumentParser(
        prog="schema-compare",
        description="Compare application schemas with live databases",
    )
    parser.add_argument(
        "--config",
        default=None,
        help=f"Path to config file (default: ./{CONFIG_FILE_NAME})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log comparison progress",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # compare command
    p_compare = subparsers.add_parser(
        "compare",
        help="Compare logical schemas with a database",
    )
    p_compare.add_argument(
        "--metadata",
        "-m",
        action="append",
        required=True,
        help="SQLAlchemy MetaData or declarative base as package.module:attribute (repeatable)",
    )
    target = p_compare.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", help="PostgreSQL connection URL")
    target.add_argument("--profile", "-p", help="Profile name from the config file")
    p_compare.add_argument(
        "--schema",
        "-s",
        action="append",
        default=None,
        help="Database schema to introspect (repeatable, default: public)",
    )
    p_compare.add_argument(
        "--always-run-stage2",
        action="store_true",
        help="Run the semantic comparison even when the structural one found errors",
    )
    p_compare.set_defaults(func=cmd_compare)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
