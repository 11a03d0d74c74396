"""
LineSift Exception Hierarchy

Structured exceptions for clear error handling across CLI, API, and MCP
consumers.  Only a handful of failure modes ever escape a search: the
pipeline contains parse and scoring problems per line and returns a
best-effort result set instead.

Usage::

    from linesift.exceptions import LineSiftError, ToolNotFoundError

    try:
        outcome = client.search(request, word="Foo")
    except ToolNotFoundError:
        print("Install msr or put it on PATH.")
    except LineSiftError as exc:
        print(f"LineSift error: {exc}")
"""


class LineSiftError(Exception):
    """Base exception for all LineSift errors."""


class ConfigError(LineSiftError, ValueError):
    """Configuration is invalid (e.g. a remove factor outside 0..1).

    Inherits from ``ValueError`` so callers validating plain settings can
    keep catching ``ValueError``.
    """


class SearchError(LineSiftError):
    """Error while launching or supervising a search process."""


class ToolNotFoundError(SearchError, FileNotFoundError):
    """The search executable (or its working directory) could not be used.

    Inherits from ``FileNotFoundError`` for intuitive exception handling.
    """


class ParseError(LineSiftError):
    """Saved tool output could not be read."""
