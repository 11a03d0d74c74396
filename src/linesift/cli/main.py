"""
LineSift CLI

Command-line interface for running and post-processing searches.

Usage::

    linesift search 'msr -rp src -f "\\.py$" -t "\\bParser\\b"' --word Parser
    linesift parse saved-output.txt --word Parser --format json
    linesift mcp                    # Start the MCP server
"""

import logging
import sys
import time

import click

from linesift.core.config import SiftConfig
from linesift.core.engine import RerunDecision, SearchKind
from linesift.core.search import ResultFormatter, SearchOutcome
from linesift.exceptions import ConfigError, LineSiftError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: SiftConfig, verbose: bool) -> None:
    """Set up logging for the CLI session (log lines go to stderr)."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.log_format, stream=sys.stderr)


def _load_config() -> SiftConfig:
    config = SiftConfig.from_env()
    try:
        config.validate()
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    return config


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

def _search_options(func):
    options = [
        click.option("-w", "--word", required=True, help="The searched word (locates columns, drives ranking)."),
        click.option("--kind", type=click.Choice([k.value for k in SearchKind]),
                     default=SearchKind.DEFINITION.value, help="Search kind."),
        click.option("--source-file", default="", help="File the search started from."),
        click.option("--member", is_flag=True, help="The word is a member access (obj.word)."),
        click.option("--one-file", is_flag=True, help="The command searches one file or folder."),
        click.option("--no-sort", is_flag=True, help="Keep discovery order; skip ranking and filtering."),
        click.option("-f", "--format", "fmt", type=click.Choice(["console", "json", "ide"]),
                     default="console", help="Output format."),
        click.option("-v", "--verbose", is_flag=True, help="Enable debug logging."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _echo_outcome(outcome: SearchOutcome, fmt: str, elapsed: float) -> None:
    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(outcome))
        return
    if fmt == "ide":
        click.echo(formatter.format_ide(outcome))
    else:
        click.echo(formatter.format_console(outcome))
    timing_str = f"{elapsed:.3f}".replace(',', '.')
    click.echo(f"  {len(outcome.locations)} locations in {timing_str} seconds", err=True)
    if outcome.decision != RerunDecision.NONE:
        click.echo(f"  Suggested {outcome.decision.value}: {outcome.rerun_command}", err=True)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="linesift")
@click.pass_context
def cli(ctx: click.Context):
    """LineSift — ranked locations from line-oriented search tool output."""
    ctx.ensure_object(dict)


# ---------------------------------------------------------------------------
# linesift search
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("command")
@click.option("--cwd", type=click.Path(exists=True, file_okay=False), default=".",
              help="Working directory for the search process.")
@_search_options
def search(command: str, cwd: str, word: str, kind: str, source_file: str,
           member: bool, one_file: bool, no_sort: bool, fmt: str, verbose: bool):
    """Run the search COMMAND and print ranked results for WORD."""
    config = _load_config()
    _configure_logging(config, verbose)
    t0 = time.perf_counter()

    from linesift.client import LineSift

    client = LineSift(config=config)
    try:
        outcome = client.search(
            command,
            word=word,
            cwd=cwd,
            kind=SearchKind(kind),
            source_path=source_file,
            member=member,
            one_file=one_file,
            sort=not no_sort,
        )
    except LineSiftError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    _echo_outcome(outcome, fmt, time.perf_counter() - t0)


# ---------------------------------------------------------------------------
# linesift parse
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("output", type=click.File("r", encoding="utf-8", errors="replace"))
@_search_options
def parse(output, word: str, kind: str, source_file: str, member: bool,
          one_file: bool, no_sort: bool, fmt: str, verbose: bool):
    """Rank saved search tool OUTPUT (a file, or '-' for stdin)."""
    config = _load_config()
    _configure_logging(config, verbose)
    t0 = time.perf_counter()

    from linesift.client import LineSift

    client = LineSift(config=config)
    outcome = client.parse_output(
        output.read(),
        word=word,
        kind=SearchKind(kind),
        source_path=source_file,
        member=member,
        one_file=one_file,
        sort=not no_sort,
    )
    _echo_outcome(outcome, fmt, time.perf_counter() - t0)


# ---------------------------------------------------------------------------
# linesift mcp
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--transport", type=click.Choice(["stdio", "streamable-http", "sse"]),
              default="stdio", help="MCP transport (default: stdio).")
@click.option("-v", "--verbose", is_flag=True)
def mcp(transport: str, verbose: bool):
    """Start the LineSift MCP server for agent integration."""
    config = _load_config()
    _configure_logging(config, verbose)
    try:
        from linesift.mcp.server import create_server  # noqa: E402
    except ImportError:
        click.echo(
            "Error: MCP dependencies not installed.\n"
            "Install with:  pip install 'linesift[mcp]'",
            err=True,
        )
        raise SystemExit(1)

    server = create_server(config)
    server.run(transport=transport)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
