"""
CLI integration for model generation.

Provides the ``generate`` and ``stages`` subcommands.
"""

import argparse
from pathlib import Path
from typing import Any, Dict

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.syntax import Syntax
from rich.table import Table

from ..logging_config import get_logger
from ..utils import SpecLoaderError, load_spec, load_spec_from_stream
from .core.config import ConfigError, GeneratorConfig, load_config
from .core.errors import GeneratorError
from .core.generator import GenerationResult, generate_from_document, write_results
from .core.schema import EntitySpecError
from .registry import list_all_stage_info

logger = get_logger(__name__)


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


# Initialize rich console
console = Console()


def create_generate_subparser(subparsers) -> argparse.ArgumentParser:
    """
    Create the ``generate`` subcommand parser.

    Args:
        subparsers: Subparser group from main parser

    Returns:
        Configured subparser for the generate command
    """
    parser = subparsers.add_parser(
        "generate",
        help="Generate model classes from an entity spec",
        description="Generate table-model classes from an entity-spec document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rowgen generate entities.json
  rowgen generate entities.json -o models/
  rowgen generate --url https://example.com/entities.json --no-comments
  rowgen generate --stdin -o models/ < entities.json
        """.strip(),
    )

    # Input options (mutually exclusive)
    input_group = parser.add_mutually_exclusive_group(required=True)
    input_group.add_argument("file", nargs="?", help="Entity-spec JSON file")
    input_group.add_argument("--url", help="URL to fetch the entity spec from")
    input_group.add_argument(
        "--stdin", action="store_true", help="Read the entity spec from standard input"
    )

    parser.add_argument(
        "--output",
        "-o",
        metavar="DIR",
        help="Directory for generated modules (default: print to stdout)",
    )
    parser.add_argument("--config", metavar="FILE", help="Configuration file path (JSON)")
    parser.add_argument(
        "--runtime-module",
        metavar="MODULE",
        help="Module generated code imports the runtime from (default: rowgen.runtime)",
    )
    parser.add_argument(
        "--no-comments",
        action="store_true",
        help="Don't add docstrings to generated code",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show generation result metadata",
    )

    parser.set_defaults(func=handle_generate_command)
    return parser


def create_stages_subparser(subparsers) -> argparse.ArgumentParser:
    """Create the ``stages`` subcommand parser."""
    parser = subparsers.add_parser(
        "stages",
        help="List registered emission stages",
        description="List the emission stages in pipeline order",
    )
    parser.set_defaults(func=handle_stages_command)
    return parser


def handle_generate_command(args: argparse.Namespace) -> int:
    """
    Handle the generate subcommand.

    Returns:
        Exit code (0 for success, 1 if any entity failed)
    """
    try:
        document = _load_input(args)
        config = _build_config(args)
        return _generate_and_output(document, config, args)

    except CLIError as e:
        console.print(f"[red]✗ Error:[/red] {e}")
        return 1
    except (EntitySpecError, GeneratorError) as e:
        logger.debug("Generation aborted", exc_info=True)
        console.print(f"[red]✗ Code generation failed:[/red] {e}")
        return 1


def handle_stages_command(args: argparse.Namespace) -> int:
    """List registered stages with details."""
    stage_info = list_all_stage_info()

    if not stage_info:
        console.print("[yellow]⚠️ No emission stages registered[/yellow]")
        return 0

    table = Table(title="📋 Emission Stages", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("Order", style="cyan", justify="right")
    table.add_column("Stage", style="bold green", no_wrap=True)
    table.add_column("Class", style="dim")
    table.add_column("Description")

    for info in stage_info:
        table.add_row(str(info["order"]), info["name"], info["class"], info["description"])

    console.print()
    console.print(table)
    console.print()
    console.print(
        Panel(
            "[bold]Usage:[/bold] rowgen generate [dim]entities.json[/dim] -o [cyan]DIR[/cyan]",
            title="💡 Quick Start",
            border_style="blue",
        )
    )
    return 0


def _load_input(args: argparse.Namespace) -> Any:
    """Load the entity-spec document from the selected source."""
    try:
        if args.stdin:
            return load_spec_from_stream()[1]
        if args.url:
            return load_spec(url=args.url)[1]
        if args.file:
            return load_spec(file_path=args.file)[1]
        raise CLIError("Input source required (file, --url, or --stdin)")
    except (SpecLoaderError, FileNotFoundError) as e:
        raise CLIError(f"Failed to load input: {e}") from e


def _build_config(args: argparse.Namespace) -> GeneratorConfig:
    """Build configuration from the config file and CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.runtime_module:
        overrides["runtime_module"] = args.runtime_module

    if args.no_comments:
        overrides["add_comments"] = False

    if args.output:
        overrides["output_dir"] = args.output

    try:
        return load_config(custom_config=overrides, config_file=args.config)
    except ConfigError as e:
        raise CLIError(f"Configuration error: {e}") from e


def _generate_and_output(
    document: Any, config: GeneratorConfig, args: argparse.Namespace
) -> int:
    """Generate every entity and handle output with rich formatting."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[green]Generating models...", total=None)
        results = generate_from_document(document, config)
        progress.remove_task(task)

    failed = {name: r for name, r in results.items() if not r.success}
    for name, result in failed.items():
        console.print(f"[red]✗ {name}:[/red] {result.error_message}")

    succeeded = {name: r for name, r in results.items() if r.success}

    if config.output_dir:
        written = write_results(succeeded, config.output_dir)
        for path in written:
            console.print(f"[green]✓[/green] Generated [cyan]{Path(path)}[/cyan]")
    else:
        for name, result in succeeded.items():
            _print_code(name, result)

    for name, result in succeeded.items():
        if args.verbose and result.metadata:
            _print_metadata(name, result)
        if result.warnings:
            console.print(f"\n[yellow]⚠️  Warnings for {name}:[/yellow]")
            for warning in result.warnings:
                console.print(f"  [yellow]•[/yellow] {warning}")

    if failed:
        console.print(
            f"\n[red]{len(failed)} of {len(results)} model(s) failed:[/red] "
            f"{', '.join(failed)}"
        )
        return 1
    return 0


def _print_code(name: str, result: GenerationResult):
    border = "═" * 20
    console.print(f"[green]{border} 📄 {name} {border}[/green]")
    console.print(Syntax(result.code, "python", theme="monokai"))


def _print_metadata(name: str, result: GenerationResult):
    metadata_table = Table(
        title=f"📊 {name}",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold cyan",
    )
    metadata_table.add_column("Property", style="bold")
    metadata_table.add_column("Value", style="green")

    for key, value in result.metadata.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        metadata_table.add_row(key.replace("_", " ").title(), str(value))

    console.print()
    console.print(metadata_table)
