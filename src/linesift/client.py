"""
LineSift Client Facade

Single entry point for programmatic use.  Wraps request construction,
the default ranker, and the search pipeline behind an instance-based API
with both async and sync variants.

Usage::

    from linesift import LineSift

    client = LineSift()
    outcome = client.search(
        'msr -rp src -f "\\.py$" -t "\\bclass\\s+Parser\\b"',
        word="Parser",
        cwd="./myproject",
    )
    for loc in outcome.locations:
        print(f"{loc.file_path}:{loc.line}:{loc.column}")

    # From async code (editor plugins, servers)
    outcome = await client.asearch(cmd, word="Parser")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Pattern

from linesift.core.config import SiftConfig
from linesift.core.engine import SearchKind, SearchRequest, build_word_pattern
from linesift.core.ranker import CategoryRanker, Ranker
from linesift.core.runner import CancellationToken, SearchEngineState
from linesift.core.search import LineSearcher, RerunHandler, SearchOutcome
from linesift.exceptions import ParseError

logger = logging.getLogger(__name__)


class LineSift:
    """
    High-level LineSift client.

    Each instance carries its own :class:`SiftConfig` and its own
    :class:`SearchEngineState`, so the live-process set, timing baselines
    and the one-shot rerun flag are scoped to the client's lifetime.

    Args:
        config: Explicit configuration object.  When *None*, a config is
            built from environment variables or keyword overrides.
        validate_on_init: Call :meth:`SiftConfig.validate` right away.
        **kwargs: Forwarded to :class:`SiftConfig` when *config* is ``None``
            (e.g. ``keep_high_score_count=5``).
    """

    def __init__(
        self,
        config: SiftConfig | None = None,
        *,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            base = SiftConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = SiftConfig(**merged)
        else:
            self._config = SiftConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._state = SearchEngineState()
        self._searcher = LineSearcher(self._state, self._config)

    # ── Properties ────────────────────────────────────────────────

    @property
    def config(self) -> SiftConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def state(self) -> SearchEngineState:
        return self._state

    # ── Request helpers ───────────────────────────────────────────

    def make_request(
        self,
        command_text: str,
        *,
        cwd: str | Path = ".",
        kind: SearchKind = SearchKind.DEFINITION,
        source_path: str = "",
        sort: bool = True,
        name: str = "",
    ) -> SearchRequest:
        """Build a :class:`SearchRequest` for *command_text*.

        Depth and timeout limits are only attached when the command runs
        the configured search tool; other commands are passed through as is.
        """
        limited = self.invokes_tool(command_text)
        return SearchRequest(
            command_text=command_text,
            working_directory=str(cwd),
            max_result_depth=self._config.max_search_depth if limited else 0,
            timeout_seconds=self._config.search_timeout_seconds if limited else 0,
            sorting_enabled=sort,
            kind=kind,
            source_path=source_path,
            name=name,
        )

    def invokes_tool(self, command_text: str) -> bool:
        """True when the first word of *command_text* is the configured tool."""
        parts = command_text.strip().split(None, 1)
        if not parts:
            return False
        exe = Path(parts[0].strip("\"'")).name.lower()
        if exe.endswith(".exe"):
            exe = exe[:-4]
        return exe == self._config.tool_name.lower()

    def make_ranker(
        self,
        word: str,
        *,
        source_path: str = "",
        member: bool = False,
        one_file: bool = False,
    ) -> CategoryRanker:
        return CategoryRanker(
            word,
            self._config.ranking_weights,
            source_path=source_path,
            is_member_search=member,
            is_one_file_or_folder=one_file,
        )

    # ── Search ────────────────────────────────────────────────────

    async def asearch(
        self,
        command_text: str,
        *,
        word: str,
        cwd: str | Path = ".",
        kind: SearchKind = SearchKind.DEFINITION,
        source_path: str = "",
        member: bool = False,
        one_file: bool = False,
        sort: bool = True,
        ranker: Ranker | None = None,
        word_pattern: Pattern[str] | None = None,
        token: CancellationToken | None = None,
        rerun_handler: RerunHandler | None = None,
    ) -> SearchOutcome:
        """
        Run *command_text* and return ranked locations for *word*.

        Args:
            command_text: Ready-to-run search command line.
            word: The searched word, used to locate columns and rank lines.
            cwd: Working directory for the process.
            kind: Definition or reference search.
            source_path: File the search started from.
            member: The word was clicked as a member access.
            one_file: The command searches a single file or folder.
            sort: Rank and filter results (False keeps discovery order).
            ranker: Custom ranking policy (default :class:`CategoryRanker`).
            word_pattern: Custom column locator regex.
            token: Cancellation token for this request.
            rerun_handler: Receives a rerun decision when one is made.

        Raises:
            ToolNotFoundError: If the search process cannot be started.
        """
        request = self.make_request(
            command_text, cwd=cwd, kind=kind, source_path=source_path, sort=sort,
        )
        ranker = ranker or self.make_ranker(
            word, source_path=source_path, member=member, one_file=one_file,
        )
        pattern = word_pattern or build_word_pattern(word)
        return await self._searcher.search(
            request, ranker, pattern, token=token, rerun_handler=rerun_handler,
        )

    def search(self, command_text: str, **kwargs) -> SearchOutcome:
        """Sync variant of :meth:`asearch`. Must not be called from a running event loop."""
        return asyncio.run(self.asearch(command_text, **kwargs))

    def parse_output(
        self,
        output: str,
        *,
        word: str,
        kind: SearchKind = SearchKind.DEFINITION,
        source_path: str = "",
        member: bool = False,
        one_file: bool = False,
        sort: bool = True,
        stderr: str = "",
        command_text: str = "",
    ) -> SearchOutcome:
        """Run the parse/score/aggregate/observe pipeline on captured output."""
        request = SearchRequest(
            command_text=command_text,
            sorting_enabled=sort,
            kind=kind,
            source_path=source_path,
        )
        ranker = self.make_ranker(word, source_path=source_path, member=member, one_file=one_file)
        return self._searcher.process_output(
            output, request, ranker, build_word_pattern(word), stderr=stderr,
        )

    def parse_file(self, path: str | Path, **kwargs) -> SearchOutcome:
        """Like :meth:`parse_output` for output saved to *path*."""
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ParseError(f"Cannot read search output from {path}: {exc}") from exc
        return self.parse_output(text, **kwargs)

    # ── Process control ───────────────────────────────────────────

    def stop_all(self) -> int:
        """Kill every search process this client still has running."""
        return self._state.stop_all()

    # ── Health ────────────────────────────────────────────────────

    def health(self) -> Dict[str, object]:
        """Return a small status dict for agents or status endpoints."""
        from linesift import __version__

        return {
            "version": __version__,
            "tool": self._config.tool_name,
            "live_searches": len(self._state.live_pids()),
            "has_rerun": self._state.has_rerun,
        }
