"""
LineSift Search Pipeline

Ties the stages together for one request:

    run process -> parse output -> score -> aggregate -> observe summary

Parsing, scoring, aggregation and observation run synchronously, in that
order, once the process has exited.  Results that the tool printed but the
pipeline could not parse are logged and kept out of the location list.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Pattern

from linesift.core.aggregator import AggregateStats, aggregate
from linesift.core.config import SiftConfig
from linesift.core.engine import (
    Location,
    OutputParser,
    RerunDecision,
    SearchKind,
    SearchRequest,
    Summary,
    has_summary,
    log_tool_diagnostics,
    parse_summary,
)
from linesift.core.heuristics import (
    SummaryHeuristicEngine,
    search_paths_in_command,
    to_terminal_command,
)
from linesift.core.ranker import Ranker, score_candidates
from linesift.core.runner import CancellationToken, ProcessRunner, SearchEngineState

logger = logging.getLogger(__name__)

RerunHandler = Callable[[RerunDecision, str, List[str]], None]
"""Called as ``handler(decision, command_text, search_paths)``."""


@dataclass
class SearchOutcome:
    """Everything one search produced."""
    locations: List[Location] = field(default_factory=list)
    console_lines: List[str] = field(default_factory=list)
    passthrough_lines: List[str] = field(default_factory=list)
    summary: Optional[Summary] = None
    decision: RerunDecision = RerunDecision.NONE
    rerun_command: str = ""
    stats: AggregateStats = field(default_factory=AggregateStats)
    return_code: Optional[int] = None
    cancelled: bool = False

    def to_dict(self) -> dict:
        return {
            "locations": [loc.to_dict() for loc in self.locations],
            "summary": None if self.summary is None else {
                "matched_count": self.summary.matched_count,
                "read_line_count": self.summary.read_line_count,
                "elapsed_seconds": self.summary.elapsed_seconds,
            },
            "decision": self.decision.value,
            "rerun_command": self.rerun_command,
            "stats": self.stats.to_dict(),
            "cancelled": self.cancelled,
        }


def _ranker_flag(ranker: Ranker, name: str, default: bool) -> bool:
    return bool(getattr(ranker, name, default))


class LineSearcher:
    """
    Run searches against one shared :class:`SearchEngineState`.

    Args:
        state: Live-process set, baselines and the rerun flag.
        config: Policy knobs.  Defaults to :meth:`SiftConfig.from_env`.
    """

    def __init__(self, state: SearchEngineState | None = None, config: SiftConfig | None = None):
        self.state = state or SearchEngineState()
        self._config = config or SiftConfig.from_env()
        self.runner = ProcessRunner(self.state, max_buffer_bytes=self._config.max_buffer_bytes)
        self.heuristics = SummaryHeuristicEngine(self.state)

    @property
    def config(self) -> SiftConfig:
        return self._config

    async def search(
        self,
        request: SearchRequest,
        ranker: Ranker,
        word_pattern: Pattern[str],
        token: CancellationToken | None = None,
        rerun_handler: RerunHandler | None = None,
    ) -> SearchOutcome:
        """Run *request* and return ranked locations plus the rerun decision.

        Raises :class:`~linesift.exceptions.ToolNotFoundError` only when the
        process cannot be started.
        """
        request = request.with_limits()
        logger.info(request.command_text)
        output = await self.runner.run(request, token)

        if output.cancelled:
            logger.debug(f"Search cancelled: {request.command_text}")
            return SearchOutcome(return_code=output.return_code, cancelled=True)

        if output.return_code and not has_summary(output.stderr) and not output.stdout.strip():
            logger.warning(f"Search exited with {output.return_code}: {output.stderr.strip()}")

        outcome = self.process_output(
            output.stdout,
            request,
            ranker,
            word_pattern,
            stderr=output.stderr,
            rerun_handler=rerun_handler,
        )
        outcome.return_code = output.return_code

        if outcome.locations and self._config.stop_others_on_results:
            self.state.stop_all()
        return outcome

    def process_output(
        self,
        stdout: str,
        request: SearchRequest,
        ranker: Ranker,
        word_pattern: Pattern[str],
        stderr: str = "",
        rerun_handler: RerunHandler | None = None,
    ) -> SearchOutcome:
        """Parse, score, aggregate and observe already-captured output."""
        is_definition = request.kind == SearchKind.DEFINITION
        one_file = _ranker_flag(ranker, "is_one_file_or_folder", False)
        result_policy = self._config.result_policy(
            is_definition_search=is_definition,
            is_one_file_or_folder=one_file,
            is_member_search=_ranker_flag(ranker, "is_member_search", False),
            sort_enabled=request.sorting_enabled and self._config.need_sort_results,
        )

        parsed = OutputParser(word_pattern, self._config.column_shift).parse(stdout)
        candidates = parsed.candidates
        if result_policy.sort_enabled:
            candidates = score_candidates(candidates, ranker)
        result = aggregate(candidates, result_policy)

        log_tool_diagnostics(stderr)
        summary = parsed.summary or parse_summary(stderr)

        rerun_policy = self._config.rerun_policy(
            is_one_file_or_folder=one_file,
            can_rerun_when_no_result=_ranker_flag(ranker, "can_rerun_when_no_result", True),
            can_rerun_in_terminal=_ranker_flag(ranker, "can_rerun_when_many_results", True),
        )
        decision = self.heuristics.observe(
            summary, request.kind, len(result.candidates), rerun_policy, raw_text=stderr,
        )

        outcome = SearchOutcome(
            locations=result.locations,
            console_lines=result.console_lines,
            passthrough_lines=parsed.passthrough_lines,
            summary=summary,
            decision=decision,
            stats=result.stats,
        )
        if decision == RerunDecision.RERUN_IN_TERMINAL:
            outcome.rerun_command = to_terminal_command(request.command_text)
        elif decision == RerunDecision.RERUN_BROADER:
            outcome.rerun_command = request.command_text

        if decision != RerunDecision.NONE and rerun_handler is not None:
            rerun_handler(decision, outcome.rerun_command, search_paths_in_command(request.command_text))
        return outcome


# =============================================================================
# Result Formatting
# =============================================================================

class ResultFormatter:
    """Format search outcomes for different output modes."""

    @staticmethod
    def format_console(outcome: SearchOutcome, show_passthrough: bool = True) -> str:
        """grep-like ``path:line:col:content`` lines, then display-only lines."""
        lines: List[str] = list(outcome.console_lines)
        if show_passthrough:
            lines.extend(outcome.passthrough_lines)
        if not lines:
            return "No results found."
        return "\n".join(lines)

    @staticmethod
    def _sanitize_for_json(s: str) -> str:
        """Normalise path separators and strip control characters."""
        if not s:
            return s
        s = s.replace("\\", "/")
        return "".join(c for c in s if (ord(c) >= 32 and ord(c) != 127) or c in "\n\r\t")

    @staticmethod
    def format_json(outcome: SearchOutcome) -> str:
        data = outcome.to_dict()
        for loc in data["locations"]:
            loc["file"] = ResultFormatter._sanitize_for_json(loc["file"])
        return json.dumps(data, indent=2, allow_nan=False)

    @staticmethod
    def format_ide(outcome: SearchOutcome) -> str:
        """``file(line,col)`` lines for click-to-jump navigation."""
        if not outcome.locations:
            return "No results found."
        return "\n".join(
            f"{loc.file_path}({loc.line},{loc.column + 1})" for loc in outcome.locations
        )
