"""interpo CLI.

Usage:
    interpo render "Hello <% name %>" --set name=world
    interpo render "<% rows | join,' ' %>" -s session.yaml
    interpo run script.yaml -s session.yaml --set region=EU
    interpo -v run script.yaml           # INFO logging
    INTERPO_DEBUG=1 interpo run ...      # DEBUG logging
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from interpo._version import __version__
from interpo.actions import ActionContext, run_actions
from interpo.config import load_script, load_session, parse_assignments
from interpo.engine import Engine
from interpo.errors import InterpoError
from interpo.values import to_text

console = Console(stderr=True)

typer_app = typer.Typer(
    help="String interpolation with filter chains and lock-step array iteration.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the interpo CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level - shows each action as it runs
    - Debug (INTERPO_DEBUG=1): DEBUG level - shows cursor movement too
    """
    debug = bool(os.environ.get("INTERPO_DEBUG"))
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("interpo")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False


def exit_with_error(message: str, exit_code: int = 1) -> NoReturn:
    """Exit the program with an error message."""
    typer.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def handle_error(error: Exception) -> NoReturn:
    """Handle and exit on interpo errors."""
    if isinstance(error, InterpoError):
        exit_with_error(error.message, error.exit_code)
    elif isinstance(error, (FileNotFoundError, ValidationError)):
        exit_with_error(str(error))
    else:
        # Unexpected error
        typer.echo(f"Unexpected error: {error}", err=True)
        sys.exit(1)


def echo_line(line: str, channel: Optional[str] = None) -> None:
    """Output sink for actions; the 'stderr' channel goes to stderr."""
    typer.echo(line, err=channel == "stderr")


def build_session(
    session_file: Optional[Path], assignments: Optional[List[str]]
) -> dict:
    session: dict = {}
    if session_file is not None:
        session.update(load_session(session_file))
    session.update(parse_assignments(list(assignments or [])))
    return session


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"interpo {__version__}")
        raise typer.Exit()


@typer_app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging."),
) -> None:
    setup_logging(verbose)


@typer_app.command()
def render(
    template: str = typer.Argument(..., help="Template text to interpolate."),
    session_file: Optional[Path] = typer.Option(
        None, "-s", "--session", help="YAML or JSON file with session values."
    ),
    assignments: Optional[List[str]] = typer.Option(
        None, "--set", help="Session value as key=value (repeatable)."
    ),
    raw: bool = typer.Option(
        False, "--raw", help="Resolve raw and print the native value as JSON."
    ),
) -> None:
    """Interpolate a single template against a session."""
    try:
        session = build_session(session_file, assignments)
        engine = Engine()
        if raw:
            result = engine.interpolate_raw(template, session)
            typer.echo(json.dumps(result, default=to_text))
        else:
            typer.echo(to_text(engine.interpolate(template, session)))
    except (InterpoError, FileNotFoundError, ValidationError) as e:
        handle_error(e)


@typer_app.command()
def run(
    script: Path = typer.Argument(..., help="Script YAML file with actions."),
    session_file: Optional[Path] = typer.Option(
        None, "-s", "--session", help="YAML or JSON file with session values."
    ),
    assignments: Optional[List[str]] = typer.Option(
        None, "--set", help="Session value as key=value (repeatable)."
    ),
) -> None:
    """Run the actions of a script in order."""
    try:
        config = load_script(script)
        session = dict(config.session)
        session.update(build_session(session_file, assignments))

        context = ActionContext(session=session, engine=Engine(), emit=echo_line)
        run_actions(config.actions, context)
    except (InterpoError, FileNotFoundError, ValidationError) as e:
        handle_error(e)


def app(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    typer_app(args=argv)


if __name__ == "__main__":
    app()
