"""
LineSift Configuration Module

Centralized configuration for the search engine.  Every knob the core reads
is listed here with an explicit default; nothing is looked up ad hoc from a
key-value store.  The typed policies consumed by the aggregator and the
heuristic engine are built from a config snapshot plus the per-search facts
(kind, scope) that only the caller knows.
"""

import os
from dataclasses import dataclass, field

from linesift.core.aggregator import ResultPolicy
from linesift.core.heuristics import RerunPolicy


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SiftConfig:
    """
    Instance-based configuration for LineSift.

    Each ``SiftConfig`` instance is self-contained and can be passed through
    the call stack, so several engines with different settings can live in
    one process.

    Create from environment variables::

        config = SiftConfig.from_env()

    Or with explicit values::

        config = SiftConfig(remove_low_score_factor=0.5, keep_high_score_count=10)
    """

    # ── Search tool ───────────────────────────────────────────────
    tool_name: str = "msr"
    max_search_depth: int = 16
    search_timeout_seconds: int = 36
    max_buffer_bytes: int = 10240000

    # ── Result ordering / filtering ───────────────────────────────
    need_sort_results: bool = True
    remove_low_score_factor: float = 0.8
    keep_high_score_count: int = -1  # < 1 = keep everything
    descending_for_results: bool = False
    descending_for_console: bool = False
    column_shift: int = 0
    """Subtracted from the located word offset; tune for custom word patterns."""

    # ── Reruns ───────────────────────────────────────────────────
    use_general_finding_when_no_results: bool = False
    rerun_if_results_more_than: int = 1
    rerun_if_cost_less_than: float = 3.3
    stop_others_on_results: bool = True

    # Weights for the bundled CategoryRanker.  Categories dominate; the
    # bonuses only reorder matches inside one category tier.
    ranking_weights: dict = field(default_factory=lambda: {
        "class": 100,
        "interface": 90,
        "enum": 90,
        "method": 80,
        "constant": 60,
        "member": 50,
        "local_variable": 30,
        "none": 10,
        "definition_line": 20,
        "file_name_match": 15,
        "same_folder": 10,
        "same_extension": 5,
        "test_path_penalty": -20,
    })

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "SiftConfig":
        """Build a config snapshot from current environment variables.

        Every variable is optional and prefixed with ``LINESIFT_``, e.g.
        :envvar:`LINESIFT_MAX_SEARCH_DEPTH` or :envvar:`LINESIFT_LOG_LEVEL`.
        """
        return cls(
            tool_name=os.getenv("LINESIFT_TOOL", "msr"),
            max_search_depth=int(os.getenv("LINESIFT_MAX_SEARCH_DEPTH", "16")),
            search_timeout_seconds=int(os.getenv("LINESIFT_TIMEOUT_SECONDS", "36")),
            need_sort_results=_env_bool("LINESIFT_SORT_RESULTS", True),
            remove_low_score_factor=float(os.getenv("LINESIFT_REMOVE_LOW_SCORE_FACTOR", "0.8")),
            keep_high_score_count=int(os.getenv("LINESIFT_KEEP_HIGH_SCORE_COUNT", "-1")),
            descending_for_results=_env_bool("LINESIFT_DESCENDING_RESULTS", False),
            descending_for_console=_env_bool("LINESIFT_DESCENDING_CONSOLE", False),
            use_general_finding_when_no_results=_env_bool("LINESIFT_FALLBACK_WHEN_EMPTY", False),
            rerun_if_results_more_than=int(os.getenv("LINESIFT_RERUN_IF_RESULTS_MORE_THAN", "1")),
            rerun_if_cost_less_than=float(os.getenv("LINESIFT_RERUN_IF_COST_LESS_THAN", "3.3")),
            log_level=os.getenv("LINESIFT_LOG_LEVEL", "INFO"),
        )

    # ── Validation ────────────────────────────────────────────────

    def validate(self) -> bool:
        """
        Check the numeric knobs are in range.

        Raises :class:`~linesift.exceptions.ConfigError` on failure.
        """
        from linesift.exceptions import ConfigError

        if not 0.0 <= self.remove_low_score_factor <= 1.0:
            raise ConfigError(
                f"remove_low_score_factor must be within 0..1, got {self.remove_low_score_factor}.\n"
                "  Set via: export LINESIFT_REMOVE_LOW_SCORE_FACTOR=0.8"
            )
        if self.max_search_depth < 0 or self.search_timeout_seconds < 0:
            raise ConfigError("max_search_depth and search_timeout_seconds must not be negative.")
        if self.rerun_if_cost_less_than < 0:
            raise ConfigError("rerun_if_cost_less_than must not be negative.")
        if not self.tool_name.strip():
            raise ConfigError("tool_name must not be empty.")
        return True

    # ── Policy builders ───────────────────────────────────────────

    def result_policy(
        self,
        *,
        is_definition_search: bool = True,
        is_one_file_or_folder: bool = False,
        is_member_search: bool = False,
        sort_enabled: bool | None = None,
    ) -> ResultPolicy:
        """Return the aggregation policy for one search."""
        return ResultPolicy(
            sort_enabled=self.need_sort_results if sort_enabled is None else sort_enabled,
            remove_low_score_factor=self.remove_low_score_factor,
            keep_high_score_count=self.keep_high_score_count,
            descending_for_results=self.descending_for_results,
            descending_for_console=self.descending_for_console,
            is_definition_search=is_definition_search,
            is_one_file_or_folder=is_one_file_or_folder,
            is_member_search=is_member_search,
        )

    def rerun_policy(
        self,
        *,
        is_one_file_or_folder: bool = False,
        can_rerun_when_no_result: bool = True,
        can_rerun_in_terminal: bool = True,
    ) -> RerunPolicy:
        """Return the rerun heuristics policy for one search."""
        return RerunPolicy(
            fallback_when_empty=self.use_general_finding_when_no_results,
            can_rerun_when_no_result=can_rerun_when_no_result,
            can_rerun_in_terminal=can_rerun_in_terminal,
            rerun_if_results_more_than=self.rerun_if_results_more_than,
            rerun_if_cost_less_than=self.rerun_if_cost_less_than,
            is_one_file_or_folder=is_one_file_or_folder,
        )
