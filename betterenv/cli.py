"""Command-line interface for betterenv."""

import argparse
import json
import logging
import sys
from typing import Dict

from rich.console import Console
from rich.table import Table

from .core import load_compiled, parse_env_file
from .providers import FileProvider, InfisicalProvider
from .resolver import Env
from .runtime import Registry
from ._types import EnvFileNotFound, InvalidEnvFile, MissingRequiredVars, ProviderError

logger = logging.getLogger(__name__)

def setup_logging(verbose: bool = False, quiet: bool = False):
    """Setup logging configuration."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def print_table(data: dict, title: str = "Environment Variables"):
    """Print data in a table format."""
    console = Console()
    table = Table(title=title)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    for key, value in sorted(data.items()):
        table.add_row(key, str(value))

    console.print(table)

def print_json(data: dict):
    """Print data in JSON format."""
    print(json.dumps(data, indent=2, sort_keys=True))

def print_env(data: dict):
    """Print data in environment file format."""
    for key, value in sorted(data.items()):
        if '"' in value or '\n' in value:
            value = f"'{value}'"
        else:
            value = f'"{value}"'
        print(f"{key}={value}")

def build_env(args) -> Env:
    """Assemble an Env from the compiled files and providers named on the command line."""
    if args.file:
        compiled: Dict[str, str] = {}
        for path in args.file:
            compiled.update(parse_env_file(path))
    else:
        compiled = dict(load_compiled())

    registry = Registry()
    for path in args.provider_file or []:
        registry.add_provider(FileProvider(path))
    if args.infisical:
        registry.add_provider(InfisicalProvider.from_settings())

    return Env(compiled, registry)

def cmd_print(args):
    """Handle the print subcommand."""
    try:
        env_data = build_env(args).get_all(include_os=args.all)

        if args.format == "table":
            print_table(env_data, "Environment Variables")
        elif args.format == "json":
            print_json(env_data)
        else:  # env format
            print_env(env_data)

        return 0

    except (EnvFileNotFound, InvalidEnvFile) as e:
        print(f"✗ {e}")
        return 5
    except ProviderError as e:
        print(f"✗ Provider error: {e}")
        return 6
    except Exception as e:
        print(f"✗ Error during print: {e}")
        return 1

def cmd_get(args):
    """Handle the get subcommand."""
    try:
        print(build_env(args).require(args.key))
        return 0

    except MissingRequiredVars as e:
        print(f"✗ Not found: {', '.join(e.missing_vars)}", file=sys.stderr)
        return 3
    except (EnvFileNotFound, InvalidEnvFile) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 5
    except ProviderError as e:
        print(f"✗ Provider error: {e}", file=sys.stderr)
        return 6
    except Exception as e:
        print(f"✗ Error during get: {e}", file=sys.stderr)
        return 1

def cmd_check(args):
    """Handle the check subcommand."""
    try:
        env = build_env(args)
        required = args.require or []
        env.require_all(required)

        print(f"✓ Environment check passed")
        print(f"  {len(env.compiled)} compiled variable(s), {len(env.registry)} provider(s)")

        if required:
            print(f"  All required variables present: {', '.join(required)}")

        return 0

    except MissingRequiredVars as e:
        print(f"✗ Missing required variables: {', '.join(e.missing_vars)}")
        return 3
    except (EnvFileNotFound, InvalidEnvFile) as e:
        print(f"✗ {e}")
        return 5
    except ProviderError as e:
        print(f"✗ Provider error: {e}")
        return 6
    except Exception as e:
        print(f"✗ Error during environment check: {e}")
        return 1

def _add_source_arguments(parser):
    parser.add_argument(
        "--file", "-f",
        action="append",
        help="Compiled .env file(s) to load (can be specified multiple times, "
             "defaults to .env, .env.local, .env.development, .env.production)"
    )
    parser.add_argument(
        "--provider-file", "-p",
        action="append",
        help="Register a runtime file provider (can be specified multiple times, first has highest priority)"
    )
    parser.add_argument(
        "--infisical",
        action="store_true",
        help="Register an Infisical provider configured from INFISICAL_* variables"
    )

def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="betterenv",
        description="Layered environment variable resolution with runtime providers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  betterenv print --file .env --provider-file overrides.env --format json
  betterenv get DATABASE_URL --infisical
  betterenv check --require DB_HOST --require DB_PORT
        """
    )

    # Global options
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress all output except errors"
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Print command
    print_parser = subparsers.add_parser(
        "print",
        help="Print resolved environment variables"
    )
    _add_source_arguments(print_parser)
    print_parser.add_argument(
        "--format",
        choices=["table", "json", "env"],
        default="table",
        help="Output format (default: table)"
    )
    print_parser.add_argument(
        "--all",
        action="store_true",
        help="Include the OS environment"
    )

    # Get command
    get_parser = subparsers.add_parser(
        "get",
        help="Print a single resolved value"
    )
    get_parser.add_argument("key", help="Variable name")
    _add_source_arguments(get_parser)

    # Check command
    check_parser = subparsers.add_parser(
        "check",
        help="Check that required variables resolve"
    )
    _add_source_arguments(check_parser)
    check_parser.add_argument(
        "--require", "-r",
        action="append",
        help="Required environment variable (can be specified multiple times)"
    )

    # Parse arguments
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose, args.quiet)

    # Handle no command case
    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    try:
        if args.command == "print":
            return cmd_print(args)
        elif args.command == "get":
            return cmd_get(args)
        elif args.command == "check":
            return cmd_check(args)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

if __name__ == "__main__":
    sys.exit(main())
