"""
LineSift Result Aggregation

Groups scored candidates by category, picks the highest-value category tier,
orders it by score, and removes low-score / out-of-window entries.  The
result list and the console lines are ordered independently.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from linesift.core.engine import Candidate, Location, ResultCategory

logger = logging.getLogger(__name__)

# Tried in order; the first tier with any candidate wins.
CATEGORY_TIERS: Tuple[Tuple[ResultCategory, ...], ...] = (
    (ResultCategory.CLASS, ResultCategory.ENUM),
    (ResultCategory.INTERFACE,),
    (ResultCategory.METHOD,),
    (ResultCategory.CONSTANT_VALUE,),
    (ResultCategory.MEMBER,),
    (ResultCategory.LOCAL_VARIABLE,),
    (ResultCategory.NONE,),
)

_TYPE_CATEGORIES = (ResultCategory.CLASS, ResultCategory.INTERFACE, ResultCategory.ENUM)


@dataclass(frozen=True)
class ResultPolicy:
    """Filtering and ordering knobs for :func:`aggregate`."""
    sort_enabled: bool = False
    remove_low_score_factor: float = 0.8
    keep_high_score_count: int = -1
    """Keep only this many top-ranked results; ``< 1`` keeps everything."""
    descending_for_results: bool = False
    descending_for_console: bool = False
    is_definition_search: bool = True
    is_one_file_or_folder: bool = False
    is_member_search: bool = False


@dataclass
class AggregateStats:
    count: int = 0
    average_score: float = 0.0
    min_score: int = -1
    max_score: int = -1
    remove_factor: float = 0.0
    threshold: float = 0.0
    removed_count: int = 0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "average_score": round(self.average_score, 2),
            "min_score": self.min_score,
            "max_score": self.max_score,
            "threshold": round(self.threshold, 2),
            "removed_count": self.removed_count,
        }


@dataclass
class AggregateResult:
    candidates: List[Candidate] = field(default_factory=list)
    """Emitted candidates, in result-list order."""
    console_lines: List[str] = field(default_factory=list)
    stats: AggregateStats = field(default_factory=AggregateStats)

    @property
    def locations(self) -> List[Location]:
        return [c.location for c in self.candidates]


def group_by_category(candidates: List[Candidate]) -> Dict[ResultCategory, List[Candidate]]:
    groups: Dict[ResultCategory, List[Candidate]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.category, []).append(candidate)
    return groups


def select_tier(groups: Dict[ResultCategory, List[Candidate]]) -> List[Candidate]:
    """Return the candidates of the first non-empty tier in :data:`CATEGORY_TIERS`."""
    for tier in CATEGORY_TIERS:
        selected = [c for category in tier for c in groups.get(category, [])]
        if selected:
            return selected
    return []


def _keep_window(total: int, keep: int, descending: bool) -> Tuple[int, int]:
    """1-based inclusive ``(begin, end)`` positions that survive the keep count.

    The lowest-ranked entries sit at the front in ascending order and at
    the back in descending order; the window always cuts those.
    """
    if keep < 1:
        return 1, total
    if descending:
        return 1, keep
    return total - keep + 1, total


def aggregate(candidates: List[Candidate], policy: ResultPolicy) -> AggregateResult:
    """Filter, tier, and order *candidates* according to *policy*."""
    candidates = [c for c in candidates if c.score > 0]

    if not policy.sort_enabled or len(candidates) < 2:
        return AggregateResult(
            candidates=list(candidates),
            console_lines=[c.display_text for c in candidates],
            stats=AggregateStats(count=len(candidates), remove_factor=policy.remove_low_score_factor),
        )

    groups = group_by_category(candidates)
    for category, members in groups.items():
        logger.debug(f"{category.name} count = {len(members)}")

    if policy.is_member_search and ResultCategory.MEMBER in groups:
        for category in _TYPE_CATEGORIES:
            dropped = groups.pop(category, [])
            if dropped:
                logger.debug(f"Member search: dropped {len(dropped)} {category.name} results")

    selected = select_tier(groups)

    buckets: "OrderedDict[int, List[Candidate]]" = OrderedDict()
    for candidate in selected:
        buckets.setdefault(candidate.score, []).append(candidate)

    scores = sorted(c.score for c in selected)
    max_score = scores[-1] if scores else -1
    min_score = scores[0] if scores else -1
    average = sum(scores) / max(1, len(scores))
    if policy.is_one_file_or_folder and policy.is_definition_search:
        threshold = average
    else:
        threshold = max_score * policy.remove_low_score_factor

    descending = policy.descending_for_results
    begin, end = _keep_window(len(scores), policy.keep_high_score_count, descending)

    emitted: List[Candidate] = []
    removed = 0
    position = 0
    for score in sorted(buckets, reverse=descending):
        for candidate in buckets[score]:
            position += 1
            if position < begin or position > end:
                removed += 1
                logger.debug(f"Remove non-keep results[{position}]: Score = {score} : {candidate.display_text}")
                continue
            if policy.is_definition_search and score < threshold:
                removed += 1
                logger.debug(f"Remove low score results[{position}]: Score = {score} : {candidate.display_text}")
                continue
            emitted.append(candidate)

    console_lines = [c.display_text for c in emitted]
    if policy.descending_for_console != descending:
        console_lines.reverse()

    stats = AggregateStats(
        count=len(scores),
        average_score=average,
        min_score=min_score,
        max_score=max_score,
        remove_factor=policy.remove_low_score_factor,
        threshold=threshold,
        removed_count=removed,
    )
    ratio = "" if max_score <= 0 else f", min/max = {min_score / max_score:.2f}"
    logger.debug(
        f"Result-Count = {stats.count}, averageScore = {average:.1f}, max = {max_score}, "
        f"min = {min_score}{ratio}, removeFactor = {policy.remove_low_score_factor}, "
        f"threshold = {threshold:.1f}, removedCount = {removed}"
    )
    return AggregateResult(candidates=emitted, console_lines=console_lines, stats=stats)
