"""
LineSift — ranked results from an external line-oriented search tool.

The ``linesift`` package runs a search command (``msr``-style output:
``path:line:content`` plus a trailing summary), turns the output into
ranked, navigable locations, and decides when a search is worth re-running
more broadly or in an interactive terminal.

Quick start (programmatic API)::

    from linesift import LineSift

    client = LineSift()
    outcome = client.search('msr -rp src -f "\\.py$" -t "\\bParser\\b"', word="Parser")

Quick start (CLI)::

    linesift search 'msr -rp src -f "\\.py$" -t "\\bParser\\b"' --word Parser
    linesift parse saved-output.txt --word Parser
"""

__version__ = "1.0.0"

# Primary public API: the LineSift facade
from linesift.client import LineSift

# Configuration
from linesift.core.config import SiftConfig

# Core data types that callers interact with
from linesift.core.engine import Location, RerunDecision, SearchKind, SearchRequest, Summary
from linesift.core.search import SearchOutcome

# Exception hierarchy
from linesift.exceptions import (
    ConfigError,
    LineSiftError,
    ParseError,
    SearchError,
    ToolNotFoundError,
)


def health(config: SiftConfig | None = None) -> dict:
    """
    Return a small status dict for agents or health checks (no process is started).

    When *config* is None, uses :meth:`SiftConfig.from_env()` for the snapshot.
    """
    cfg = config or SiftConfig.from_env()
    return {
        "version": __version__,
        "tool": cfg.tool_name,
        "sort_results": cfg.need_sort_results,
    }


__all__ = [
    "__version__",
    # Facade
    "LineSift",
    # Config
    "SiftConfig",
    # Data types
    "Location",
    "RerunDecision",
    "SearchKind",
    "SearchRequest",
    "SearchOutcome",
    "Summary",
    # Exceptions
    "LineSiftError",
    "ConfigError",
    "SearchError",
    "ToolNotFoundError",
    "ParseError",
    # Status
    "health",
]
