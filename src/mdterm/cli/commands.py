"""CLI command implementations"""

import logging
import sys
from typing import Annotated, Optional

import typer
from pygments.styles import get_all_styles

from mdterm.config import Settings, load_config
from mdterm.core.pipeline import run_render
from mdterm.core.terminal import detect_profile, terminal_columns


LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _fail(msg: str) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))


def _configure_logging(verbose: bool) -> None:
    """Send diagnostics to stderr so they never mix with rendered output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def render_cmd(
    paths: Annotated[Optional[list[str]], typer.Argument(help="Markdown files to render; '-' reads stdin")] = None,
    local: Annotated[bool, typer.Option("--local", help="Only show local images, never fetch remote ones")] = False,
    theme: Annotated[Optional[str], typer.Option("--theme", help="Pygments style for code blocks")] = None,
    colour: Annotated[Optional[bool], typer.Option("--colour/--no-colour", help="Force styled or plain output")] = None,
    columns: Annotated[Optional[int], typer.Option("--columns", help="Output width used for rules")] = None,
    parser: Annotated[Optional[str], typer.Option("--parser-config", help="MarkdownIt preset name")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug diagnostics to stderr")] = False,
    ):
    """Render markdown documents for the current terminal."""
    _configure_logging(verbose)
    settings = _settings(overrides={
        "local_only": local or None, "theme": theme, "colour": colour,
        "columns": columns, "parser_config": parser,
    })
    profile = detect_profile(colour=settings.colour, local_only=settings.local_only)
    width = settings.columns or terminal_columns()

    try:
        run_render(paths or ["-"], settings, profile, sys.stdout, columns=width)
    except (ValueError, RuntimeError) as e:
        _fail(str(e))


def detect_cmd(
    colour: Annotated[Optional[bool], typer.Option("--colour/--no-colour", help="Force styled or plain output")] = None,
    ):
    """Show the capability profile detected for this terminal."""
    settings = _settings(overrides={"colour": colour})
    profile = detect_profile(colour=settings.colour, local_only=settings.local_only)
    typer.echo(f"terminal: {profile.terminal.value}")
    for name in ("ansi", "colors_256", "true_color", "inline_images", "hyperlinks",
                 "jump_marks", "svg_needs_conversion", "local_only"):
        typer.echo(f"  {name}: {'yes' if getattr(profile, name) else 'no'}")
    width = settings.columns or terminal_columns()
    typer.echo(f"columns: {width if width else 'unknown'}")


def themes_cmd():
    """List the highlight themes accepted by --theme."""
    for name in sorted(get_all_styles()):
        typer.echo(name)
