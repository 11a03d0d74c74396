"""
LineSift MCP Server

Exposes the search pipeline as tools that AI agents can invoke via the
Model Context Protocol.

Start with::

    linesift mcp                              # stdio transport
    linesift mcp --transport streamable-http  # HTTP transport
    linesift mcp --transport sse              # SSE transport

Or programmatically::

    from linesift.mcp.server import create_server
    server = create_server()
    server.run()
"""

from __future__ import annotations

import json
import logging
from typing import Annotated

from pydantic import Field  # type: ignore[import-untyped]

from linesift.core.config import SiftConfig
from linesift.core.engine import SearchKind

logger = logging.getLogger(__name__)


def create_server(config: SiftConfig | None = None):
    """
    Build and return a configured FastMCP server instance.

    All tool calls share one :class:`~linesift.client.LineSift` client, so
    the live-process set, timing baselines and the rerun flag persist for
    the lifetime of the server process.

    Raises ``ImportError`` if ``fastmcp`` is not installed (install via
    ``pip install 'linesift[mcp]'``).
    """
    from fastmcp import FastMCP  # type: ignore[import-untyped]

    from linesift.client import LineSift

    client = LineSift(config=config or SiftConfig.from_env())
    mcp = FastMCP("linesift")

    def _kind(value: str) -> SearchKind:
        try:
            return SearchKind(value.strip().lower())
        except ValueError:
            return SearchKind.DEFINITION

    # ==================================================================
    # Tool: search_lines
    # ==================================================================

    @mcp.tool()
    async def search_lines(
        command: Annotated[
            str,
            Field(description="Ready-to-run search command line (e.g. msr -rp src -f \"\\.py$\" -t \"\\bParser\\b\").")
        ],
        word: Annotated[
            str,
            Field(description="The searched word; used to locate the column and rank each matched line.")
        ],
        cwd: Annotated[
            str,
            Field(default=".", description="Working directory for the search process.")
        ] = ".",
        kind: Annotated[
            str,
            Field(default="definition", description="'definition' or 'reference'. Low-score filtering only applies to definition searches.")
        ] = "definition",
        source_path: Annotated[
            str,
            Field(default="", description="File the search started from; matches nearby rank higher.")
        ] = "",
        member: Annotated[
            bool,
            Field(default=False, description="The word is a member access (obj.word); type declarations are dropped when members match.")
        ] = False,
    ) -> str:
        """Run a search command and return ranked locations as JSON.

        Returns:
            JSON object with ``locations`` (file, line, column), the parsed
            ``summary``, aggregate ``stats`` and any suggested rerun.
        """
        try:
            outcome = await client.asearch(
                command, word=word, cwd=cwd, kind=_kind(kind),
                source_path=source_path, member=member,
            )
            return json.dumps(outcome.to_dict(), allow_nan=False)
        except Exception as e:
            return json.dumps({"error": str(e), "locations": []}, allow_nan=False)

    # ==================================================================
    # Tool: parse_search_output
    # ==================================================================

    @mcp.tool()
    def parse_search_output(
        output: Annotated[
            str,
            Field(description="Captured search tool output: path:line:content lines, optionally followed by the summary line.")
        ],
        word: Annotated[
            str,
            Field(description="The searched word.")
        ],
        kind: Annotated[
            str,
            Field(default="definition", description="'definition' or 'reference'.")
        ] = "definition",
    ) -> str:
        """Rank already-captured search output without starting a process."""
        try:
            outcome = client.parse_output(output, word=word, kind=_kind(kind))
            return json.dumps(outcome.to_dict(), allow_nan=False)
        except Exception as e:
            return json.dumps({"error": str(e), "locations": []}, allow_nan=False)

    # ==================================================================
    # Tool: stop_searches
    # ==================================================================

    @mcp.tool()
    def stop_searches() -> str:
        """Kill every search process still running for this server."""
        return json.dumps({"stopped": client.stop_all()})

    logger.debug("LineSift MCP server created")
    return mcp
