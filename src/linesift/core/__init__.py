"""
LineSift Core — parsing, ranking, aggregation, heuristics, and process control.

Re-exports the primary classes for convenience::

    from linesift.core import OutputParser, aggregate, LineSearcher
"""

from linesift.core.aggregator import AggregateResult, AggregateStats, ResultPolicy, aggregate
from linesift.core.config import SiftConfig
from linesift.core.engine import (
    Candidate,
    Location,
    OutputParser,
    ParsedOutput,
    PerformanceBaseline,
    RerunDecision,
    ResultCategory,
    SearchKind,
    SearchRequest,
    Summary,
    build_word_pattern,
    parse_summary,
)
from linesift.core.heuristics import RerunPolicy, SummaryHeuristicEngine
from linesift.core.ranker import CategoryRanker, Ranker, score_candidates
from linesift.core.runner import CancellationToken, ProcessRunner, SearchEngineState
from linesift.core.search import LineSearcher, ResultFormatter, SearchOutcome

__all__ = [
    "AggregateResult",
    "AggregateStats",
    "ResultPolicy",
    "aggregate",
    "SiftConfig",
    "Candidate",
    "Location",
    "OutputParser",
    "ParsedOutput",
    "PerformanceBaseline",
    "RerunDecision",
    "ResultCategory",
    "SearchKind",
    "SearchRequest",
    "Summary",
    "build_word_pattern",
    "parse_summary",
    "RerunPolicy",
    "SummaryHeuristicEngine",
    "CategoryRanker",
    "Ranker",
    "score_candidates",
    "CancellationToken",
    "ProcessRunner",
    "SearchEngineState",
    "LineSearcher",
    "ResultFormatter",
    "SearchOutcome",
]
