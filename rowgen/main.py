"""Command-line entry point for rowgen."""

import argparse
import sys

from . import __version__
from .codegen.cli_integration import create_generate_subparser, create_stages_subparser
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="rowgen",
        description="Generate table-model classes from entity specs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Console log level (default: WARNING)",
    )
    parser.add_argument("--log-file", metavar="FILE", help="Also log to FILE at DEBUG level")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    create_generate_subparser(subparsers)
    create_stages_subparser(subparsers)
    return parser


def main(argv=None) -> int:
    """Run the CLI and return its exit code."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)
    logger.debug("Arguments: %s", vars(args))

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
