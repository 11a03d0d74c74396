"""
LineSift Summary Heuristics

Reads the tool's trailing summary after each search, keeps a rolling timing
baseline per search kind, and decides whether one opportunistic rerun is
worth scheduling:

- zero matches: a broader fallback search (when enabled);
- many fast matches: the same command again in an interactive terminal,
  where results are colorized and clickable.

At most one rerun is ever scheduled per :class:`SearchEngineState`.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from linesift.core.engine import RerunDecision, SearchKind, Summary
from linesift.core.runner import SearchEngineState

logger = logging.getLogger(__name__)

EXPECTED_MIN_LINES_PER_SECOND = 16 * 10000
EXPECTED_MAX_TIME_COST_SECONDS = 3.0
FIRST_SAMPLE_CAP_SECONDS = 3.0
MIN_SAMPLES_BEFORE_WARNING = 3

# The tool prints this when it cannot operate at all (e.g. bad directory).
FATAL_ERROR_SIGNATURE = "Please check your command with directory"

_COMMAND_INFO_REGEX = re.compile(r" ; Directory = .*")
_SEARCH_PATH_REGEX = re.compile(r"""\s-r?p\s+("[^"]+"|'[^']+'|\S+)""")
_JUMP_OUT_REGEX = re.compile(r"\s+-J\b")
_HEAD_COUNT_REGEX = re.compile(r"\s+(?:-H|--head)\s+-?\d+")


@dataclass(frozen=True)
class RerunPolicy:
    """Rerun thresholds and permissions for one search."""
    fallback_when_empty: bool = False
    can_rerun_when_no_result: bool = True
    can_rerun_in_terminal: bool = True
    rerun_if_results_more_than: int = 1
    rerun_if_cost_less_than: float = 3.3
    is_one_file_or_folder: bool = False


class SummaryHeuristicEngine:
    """Observe finished searches and schedule at most one rerun."""

    def __init__(self, state: SearchEngineState):
        self.state = state

    def observe(
        self,
        summary: Optional[Summary],
        kind: SearchKind,
        candidate_count: int,
        policy: RerunPolicy,
        raw_text: str = "",
    ) -> RerunDecision:
        """Update the baseline from *summary* and return a rerun decision.

        Args:
            summary: Parsed summary, or None when the tool never printed one.
            kind: Search kind, used as the baseline key.
            candidate_count: Candidates left after filtering.
            policy: Rerun thresholds for this search.
            raw_text: Tool stderr / raw output, checked for fatal errors.
        """
        if raw_text and FATAL_ERROR_SIGNATURE in raw_text:
            logger.error(raw_text.strip())

        if summary is None:
            if not policy.is_one_file_or_folder:
                logger.debug("Failed to get time cost in summary.")
            return RerunDecision.NONE

        summary_text = _COMMAND_INFO_REGEX.sub("", summary.text)
        if summary.matched_count > 0:
            logger.info(summary_text)
        else:
            logger.debug(summary_text)
        logger.debug(
            f"Got matched count = {summary.matched_count} and time cost = "
            f"{summary.elapsed_seconds} from summary"
        )

        self.record_timing(kind, summary.elapsed_seconds, summary.read_line_count)

        if summary.matched_count < 1 and policy.fallback_when_empty:
            if (not self.state.has_rerun and not policy.is_one_file_or_folder
                    and policy.can_rerun_when_no_result):
                self.state.mark_rerun()
                logger.info("Will run a broader search since no results were found.")
                return RerunDecision.RERUN_BROADER
            return RerunDecision.NONE

        if (not self.state.has_rerun
                and candidate_count > 1
                and policy.can_rerun_in_terminal
                and summary.matched_count > policy.rerun_if_results_more_than
                and summary.elapsed_seconds <= policy.rerun_if_cost_less_than):
            self.state.mark_rerun()
            logger.info("Will re-run in terminal to show clickable and colorful results.")
            return RerunDecision.RERUN_IN_TERMINAL

        return RerunDecision.NONE

    def record_timing(self, kind: SearchKind, elapsed_seconds: float, read_line_count: int) -> float:
        """Add one sample to the baseline for *kind*; return lines per second."""
        baseline = self.state.baseline(kind)
        baseline.invocation_count += 1
        total = baseline.cumulative_elapsed_seconds + elapsed_seconds
        if baseline.invocation_count == 1:
            total = min(FIRST_SAMPLE_CAP_SECONDS, total)
        baseline.cumulative_elapsed_seconds = total

        speed = read_line_count / elapsed_seconds if elapsed_seconds > 0 else float("inf")
        average = baseline.average_seconds
        message = (
            f"Search-{kind.value} cost {elapsed_seconds:.3f} s for {read_line_count} lines, "
            f"speed = {speed:.0f} lines/s."
        )
        if (baseline.invocation_count > MIN_SAMPLES_BEFORE_WARNING
                and average > EXPECTED_MAX_TIME_COST_SECONDS
                and speed < EXPECTED_MIN_LINES_PER_SECOND):
            logger.warning(message + " If CPU and disk are not busy, check antivirus exclusions for the search tool.")
        else:
            logger.debug(message)
        return speed


# =============================================================================
# Rerun command helpers
# =============================================================================

def search_paths_in_command(command_text: str) -> List[str]:
    """Return the ``-p`` / ``-rp`` path list of a search command."""
    m = _SEARCH_PATH_REGEX.search(command_text)
    if not m:
        return []
    value = m.group(1).strip("\"'")
    return [p for p in re.split(r"\s*[,;]\s*", value) if p]


def to_terminal_command(command_text: str) -> str:
    """Drop head-limiting switches so a terminal rerun shows every match."""
    cmd = _JUMP_OUT_REGEX.sub(" ", command_text)
    cmd = _HEAD_COUNT_REGEX.sub(" ", cmd)
    return re.sub(r"\s{2,}", " ", cmd).strip()
