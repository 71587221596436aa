"""
uciforms - scenario runner for model-driven forms.
Main entry point for the application.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from uciforms import __version__
from uciforms.browser.driver import PlaywrightDriver
from uciforms.config.settings import get_settings
from uciforms.forms.session import FormSession
from uciforms.monitoring.logger import get_logger, setup_logging
from uciforms.runner import Scenario, StepReport, run_scenario

console = Console()
logger = get_logger("main")


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="uciforms",
        description=f"uciforms - form scenario runner v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run a scenario against the URL it names
  python -m uciforms.main scenarios/new_case.json

  # Override the start URL and watch the browser
  python -m uciforms.main scenarios/new_case.json --url https://org.crm6.dynamics.com --headed

  # Reuse a saved sign-in
  python -m uciforms.main scenarios/new_case.json --storage-state auth.json
        """,
    )
    parser.add_argument(
        "scenario",
        type=Path,
        nargs="?",
        help="Path to scenario JSON file",
    )
    parser.add_argument(
        "-u", "--url",
        help="Start URL (overrides the scenario's url)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )
    parser.add_argument(
        "--storage-state",
        type=Path,
        help="Saved browser session to start from",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to settings)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log records",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information",
    )
    return parser


def load_scenario(scenario_path: Path) -> Scenario:
    """Load and validate a scenario from a JSON file."""
    try:
        with open(scenario_path, "r") as f:
            data = json.load(f)
        return Scenario.model_validate(data)
    except FileNotFoundError:
        console.print(f"[red]Error: Scenario file not found: {scenario_path}[/red]")
        sys.exit(1)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid JSON in scenario file: {e}[/red]")
        sys.exit(1)
    except ValidationError as e:
        console.print(f"[red]Error: Invalid scenario: {e}[/red]")
        sys.exit(1)


def render_reports(scenario: Scenario, reports: List[StepReport]) -> Table:
    """Build the results table."""
    table = Table(title=scenario.name)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("Target")
    table.add_column("Result")
    table.add_column("Detail")
    table.add_column("ms", justify="right", style="dim")

    for report in reports:
        table.add_row(
            str(report.index),
            report.action,
            report.target,
            "[green]passed[/green]" if report.passed else "[red]failed[/red]",
            report.detail,
            f"{report.elapsed_ms:.0f}",
        )

    for step in scenario.steps[len(reports):]:
        table.add_row("", step.action, step.describe(), "[yellow]skipped[/yellow]", "", "")
    return table


async def async_main(args: Optional[List[str]] = None) -> int:
    """Async entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        console.print(f"uciforms v{__version__}")
        return 0
    if parsed.scenario is None:
        parser.print_help()
        return 1

    settings = get_settings()
    setup_logging(
        log_level=parsed.log_level or settings.log_level,
        log_format="json" if parsed.json_logs else settings.log_format,
        log_file=settings.log_file,
    )

    scenario = load_scenario(parsed.scenario)
    if parsed.url:
        scenario.url = parsed.url
    elif not scenario.url:
        scenario.url = settings.app_url

    console.print(f"[cyan]Running scenario:[/cyan] {scenario.name}")
    driver = PlaywrightDriver(
        headless=False if parsed.headed else None,
        storage_state_path=parsed.storage_state,
    )
    async with driver:
        reports = await run_scenario(FormSession(driver), scenario)

    console.print(render_reports(scenario, reports))
    logger.info("Scenario finished", extra={"steps_run": len(reports)})
    passed = all(report.passed for report in reports) and len(reports) == len(scenario.steps)
    return 0 if passed else 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for uciforms.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
