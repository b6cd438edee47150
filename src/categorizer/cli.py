"""Command-line interface for the email categorizer.

Usage:
    python -m categorizer classify email.txt
    cat email.txt | python -m categorizer classify --api-key KEY
    python -m categorizer classify --sample
    python -m categorizer sample
    python -m categorizer validate-config --config config/config.yaml
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

import click
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.panel import Panel

from categorizer.classifier.prompts import SAMPLE_EMAIL
from categorizer.config import validate_config_file
from categorizer.core.logging import configure_from_config, configure_logging

if TYPE_CHECKING:
    from categorizer.config_schema import AppConfig
    from categorizer.engine.orchestrator import ClassificationResult, Orchestrator

console = Console()

# Badge colors per category; anything else renders in the unknown style
CATEGORY_STYLES: dict[str, str] = {
    "primary": "blue",
    "promotions": "green",
    "social": "yellow",
    "updates": "magenta",
    "forums": "cyan",
    "spam": "red",
}
UNKNOWN_CATEGORY_STYLE = "bright_black"


def category_style(category: str) -> str:
    """Rich color for a category badge (case-insensitive)."""
    return CATEGORY_STYLES.get(category.lower(), UNKNOWN_CATEGORY_STYLE)


def _render_result(result: ClassificationResult) -> None:
    if result.error is not None:
        console.print(f"[red]Error:[/red] {result.error.message}")
        return

    category = result.category or ""
    label = category if category else "Unknown"
    style = category_style(category)
    console.print(
        Panel(
            f"[bold]{label}[/bold]",
            title="Email Category",
            title_align="left",
            border_style=style,
            style=style,
            expand=False,
        )
    )
    if not result.is_known_category:
        console.print("[yellow]The model answered with a label outside the six categories.[/yellow]")


def _build_orchestrator(config: AppConfig) -> Orchestrator:
    from categorizer.engine.orchestrator import Orchestrator

    return Orchestrator.from_config(config)


async def _run_classify(config: AppConfig, api_key: str, email_text: str) -> ClassificationResult:
    from categorizer.engine.orchestrator import ClassificationRequest

    orchestrator = _build_orchestrator(config)
    try:
        with console.status("Categorizing..."):
            return await orchestrator.classify(ClassificationRequest(api_key, email_text))
    finally:
        await orchestrator.aclose()


@click.group()
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Email Categorizer - sort an email into Gmail-style categories with Gemini."""
    # Runs before subcommand options are parsed, so .env can supply GOOGLE_API_KEY
    load_dotenv(find_dotenv(usecwd=True))

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    configure_logging(log_level="DEBUG" if debug else "WARNING")


@cli.command("classify")
@click.argument("email_file", type=click.File("r", encoding="utf-8"), required=False)
@click.option(
    "--api-key",
    envvar="GOOGLE_API_KEY",
    default="",
    help="Google AI API key (default: $GOOGLE_API_KEY)",
)
@click.option("--sample", is_flag=True, default=False, help="Classify the built-in sample email")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)
@click.pass_context
def classify(
    ctx: click.Context,
    email_file: TextIO | None,
    api_key: str,
    sample: bool,
    config_path: Path | None,
) -> None:
    """Classify an email read from EMAIL_FILE (or stdin)."""
    from categorizer.config import get_config
    from categorizer.core.errors import ConfigLoadError, ConfigValidationError

    try:
        config = get_config(config_path)
    except (ConfigLoadError, ConfigValidationError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        sys.exit(1)

    configure_from_config(config.logging, debug=ctx.obj.get("debug", False))

    if sample:
        email_text = SAMPLE_EMAIL
    elif email_file is not None:
        email_text = email_file.read()
    else:
        email_text = click.get_text_stream("stdin").read()

    try:
        result = asyncio.run(_run_classify(config, api_key, email_text))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(130)

    _render_result(result)
    sys.exit(0 if result.ok else 1)


@cli.command("sample")
def sample() -> None:
    """Print the built-in sample email."""
    click.echo(SAMPLE_EMAIL)


@cli.command("validate-config")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Path to config file (default: config/config.yaml)",
)
def validate_config(config_path: Path | None) -> None:
    """Validate the configuration file."""
    if config_path:
        console.print(f"Validating config: [cyan]{config_path}[/cyan]")
    else:
        console.print("Validating config: [cyan]config/config.yaml[/cyan]")

    is_valid, message = validate_config_file(config_path)

    if is_valid:
        console.print(f"\n[green]✓[/green] {message}")
        sys.exit(0)
    else:
        console.print(f"\n[red]✗[/red] {message}")
        sys.exit(1)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
