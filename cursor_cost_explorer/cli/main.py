"""
CLI interface for Cursor Cost Explorer.

Analyzes a Cursor usage export and prints or saves the report.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.markup import escape

from cursor_cost_explorer import __version__
from cursor_cost_explorer.config.loader import load_analysis_config
from cursor_cost_explorer.core.engine import analyze as run_analysis
from cursor_cost_explorer.core.engine import export_json
from cursor_cost_explorer.core.errors import CostExplorerError
from cursor_cost_explorer.core.registry import ModelRegistry
from cursor_cost_explorer.demo.sample_data import build_demo_events
from cursor_cost_explorer.formatters.text import render_text
from cursor_cost_explorer.ingest.csv_parser import parse_csv_file
from cursor_cost_explorer.ingest.models import UsageEvent

app = typer.Typer(help="Analyze Cursor usage exports and find savings.")
console = Console()
err_console = Console(stderr=True, soft_wrap=True)

logger = logging.getLogger(__name__)

EXIT_CODE_SUCCESS = 0
EXIT_CODE_FAILURE = 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def _version_callback(value: bool):
    if value:
        console.print(f"cursor-cost-explorer {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show the version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Cursor Cost Explorer CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Cursor Cost Explorer - Use --help to see available commands")


def _load_registry(config_path: Optional[str]) -> Optional[ModelRegistry]:
    if config_path is None:
        return None
    return load_analysis_config(config_path).build_registry()


def _report_dropped_rows(errors: List[str]) -> None:
    if not errors:
        return
    err_console.print(f"[yellow]Warning:[/] skipped {len(errors)} row(s)")
    for message in errors:
        err_console.print(f"  {message}", markup=False)


def _emit(result: Dict[str, Any], as_json: bool, show_graphs: bool, output: Optional[str]) -> None:
    """Print the report, or write it to ``output``."""
    text = export_json(result, pretty=True) if as_json else render_text(result, show_graphs)
    if output is None:
        typer.echo(text)
        return

    Path(output).write_text(text, encoding="utf-8")
    err_console.print(f"Output saved to: {output}", markup=False)


def _run(
    events: List[UsageEvent],
    registry: Optional[ModelRegistry],
    as_json: bool,
    show_graphs: bool,
    output: Optional[str],
) -> None:
    result = run_analysis(events, registry)
    _emit(result, as_json, show_graphs, output)


@app.command()
def analyze(
    csv_file: str = typer.Argument(..., help="Cursor usage export (CSV)"),
    show_graphs: bool = typer.Option(
        False,
        "--show-graphs",
        "-g",
        help="Include ASCII charts in the text report"
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to a file instead of stdout"
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Emit the full result as JSON"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML file with extra model definitions"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log progress to stderr"
    ),
):
    """
    Analyze a Cursor usage export.

    Export your usage from the Cursor dashboard (Settings > Usage > Export)
    and pass the CSV file here.
    """
    _configure_logging(verbose)
    try:
        registry = _load_registry(config)
        parsed = parse_csv_file(csv_file)
        _report_dropped_rows(parsed.errors)

        if not parsed.events:
            err_console.print("[red]Error:[/] No valid usage records found in the export")
            sys.exit(EXIT_CODE_FAILURE)

        logger.info("Parsed %d of %d rows", parsed.valid_rows, parsed.total_rows)
        _run(parsed.events, registry, as_json, show_graphs, output)
        sys.exit(EXIT_CODE_SUCCESS)

    except FileNotFoundError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAILURE)
    except yaml.YAMLError as e:
        err_console.print(f"[red]Invalid config:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAILURE)
    except CostExplorerError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAILURE)
    except OSError as e:
        err_console.print(f"[red]Error writing output:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAILURE)


@app.command()
def demo(
    show_graphs: bool = typer.Option(
        False,
        "--show-graphs",
        "-g",
        help="Include ASCII charts in the text report"
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Emit the full result as JSON"
    ),
):
    """Analyze a generated month of sample usage."""
    _configure_logging(False)
    try:
        _run(build_demo_events(), None, as_json, show_graphs, None)
        sys.exit(EXIT_CODE_SUCCESS)
    except CostExplorerError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        sys.exit(EXIT_CODE_FAILURE)


if __name__ == "__main__":
    app()
