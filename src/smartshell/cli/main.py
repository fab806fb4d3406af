"""smartshell command line entry point.

Subprocess boundary for line-editor frontends: the result goes to stdout and
the outcome is carried by the exit code (see core/protocol.py).
"""

from __future__ import annotations

import asyncio
import sys
from importlib import resources

import click

from .. import __version__
from ..core.protocol import EXIT_FAILURE, Encoded, encode, encode_aborted


def _backend_options(f):
    f = click.option("--shell", type=str, help="Target shell dialect (default: zsh or SMSH_SHELL)")(f)
    f = click.option("--model", "-m", type=str, help="Model override for the selected provider")(f)
    f = click.option(
        "--provider", "-P", type=click.Choice(["openai", "claude"]),
        help="Provider override (default: SMSH_LLM_PROVIDER or openai)",
    )(f)
    return f


def _emit(encoded: Encoded) -> None:
    click.echo(encoded.output)
    sys.exit(encoded.exit_code)


async def _run_interactive(request, settings):
    from ..core.executor import ExecutionController, cancel_on_sigint, terminal_progress
    from ..core.orchestrator import run_request

    cancel_event = asyncio.Event()
    with terminal_progress() as progress, cancel_on_sigint(cancel_event):
        return await run_request(
            request,
            settings,
            controller=ExecutionController(progress),
            cancel_event=cancel_event,
        )


def _execute(request, provider: str | None, model: str | None, shell: str | None) -> None:
    from ..core.config import load_settings
    from ..core.errors import InputMissing
    from ..core.logging import configure_logging
    from ..utils.sanitize import sanitize_error

    try:
        settings = load_settings(
            provider_override=provider, model_override=model, shell_override=shell
        )
        configure_logging(settings.log)
    except ValueError as e:
        _emit(Encoded(sanitize_error(str(e)), EXIT_FAILURE))
        return

    try:
        result = asyncio.run(_run_interactive(request, settings))
    except InputMissing as e:
        _emit(encode_aborted(str(e)))
        return
    _emit(encode(result, request.mode))


@click.group()
@click.version_option(__version__, prog_name="smartshell")
def cli() -> None:
    """smartshell - LLM-powered shell command helper."""


@cli.command()
@click.option("--query", "-q", type=str, help="What the command should do")
@click.option("--buffer", "-b", type=str, help="Current command line to modify")
@_backend_options
def complete(
    query: str | None,
    buffer: str | None,
    provider: str | None,
    model: str | None,
    shell: str | None,
) -> None:
    """Generate a shell command from a query, or rewrite the buffer to match it.

    Exit codes: 0 command printed, 1 error, 2 the model refused, 130 cancelled.
    """
    from ..models.request import Mode, Request

    if query is None:
        try:
            query = click.prompt("> Query", default="", show_default=False, err=True)
        except click.Abort:
            # EOF at the prompt reads as an empty query.
            query = ""

    _execute(Request(mode=Mode.COMPLETE, query=query, buffer=buffer), provider, model, shell)


@cli.command()
@click.option("--buffer", "-b", type=str, help="Command line to explain")
@_backend_options
def explain(
    buffer: str | None,
    provider: str | None,
    model: str | None,
    shell: str | None,
) -> None:
    """Explain a shell command in one line."""
    from ..models.request import Mode, Request

    _execute(Request(mode=Mode.EXPLAIN, buffer=buffer), provider, model, shell)


@cli.command()
@click.option("--current", type=str, envvar="SMSH_LLM_PROVIDER", default="openai",
              help="Currently selected provider (default: SMSH_LLM_PROVIDER)")
def toggle(current: str) -> None:
    """Print the provider that follows CURRENT."""
    from ..core.config import load_settings

    try:
        settings = load_settings(environ={}, provider_override=current)
    except ValueError as e:
        click.echo(f"{e}; resetting to openai", err=True)
        click.echo("openai")
        return
    click.echo(settings.toggle_provider().provider.value)


@cli.command()
@click.argument("shell", type=click.Choice(["zsh"]))
def init(shell: str) -> None:
    """Print the line-editor integration for SHELL.

    Example: eval "$(smartshell init zsh)"
    """
    script = resources.files("smartshell").joinpath("shell", f"smartshell.{shell}")
    click.echo(script.read_text(encoding="utf-8"), nl=False)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
