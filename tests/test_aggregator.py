"""
Tests for linesift.core.aggregator — tiering, thresholds, keep window, and
independent result/console ordering.
"""

from linesift.core.aggregator import ResultPolicy, aggregate, select_tier, group_by_category
from linesift.core.engine import Candidate, ResultCategory

C = ResultCategory


def _cand(category: ResultCategory, score: int, line: int) -> Candidate:
    return Candidate(
        file_path="src/a.py",
        line=line,
        column=0,
        raw_text=f"src/a.py:{line}:word",
        content="word",
        category=category,
        score=score,
    )


def _lines(result):
    return [c.line for c in result.candidates]


SORTED = ResultPolicy(sort_enabled=True)


# =============================================================================
# Fast path
# =============================================================================

class TestFastPath:

    def test_sort_disabled_keeps_parse_order(self):
        cands = [_cand(C.NONE, 1, n) for n in (5, 3, 9, 1)]
        result = aggregate(cands, ResultPolicy(sort_enabled=False))
        assert _lines(result) == [5, 3, 9, 1]
        assert result.stats.removed_count == 0

    def test_sort_disabled_ignores_categories(self):
        cands = [_cand(C.NONE, 1, 1), _cand(C.CLASS, 50, 2)]
        result = aggregate(cands, ResultPolicy(sort_enabled=False))
        assert _lines(result) == [1, 2]

    def test_single_candidate_not_filtered(self):
        result = aggregate([_cand(C.NONE, 3, 7)], SORTED)
        assert _lines(result) == [7]

    def test_zero_score_never_emitted(self):
        cands = [_cand(C.CLASS, 0, 1), _cand(C.CLASS, 10, 2), _cand(C.CLASS, 0, 3)]
        assert _lines(aggregate(cands, ResultPolicy(sort_enabled=False))) == [2]
        assert _lines(aggregate(cands, SORTED)) == [2]


# =============================================================================
# Tiering
# =============================================================================

class TestTiering:

    def test_member_search_drops_type_results(self):
        cands = [_cand(C.MEMBER, 10, 1), _cand(C.MEMBER, 10, 2), _cand(C.CLASS, 99, 3)]
        policy = ResultPolicy(sort_enabled=True, is_member_search=True)
        assert _lines(aggregate(cands, policy)) == [1, 2]

    def test_non_member_search_prefers_class(self):
        cands = [_cand(C.MEMBER, 10, 1), _cand(C.MEMBER, 10, 2), _cand(C.CLASS, 5, 3)]
        assert _lines(aggregate(cands, SORTED)) == [3]

    def test_member_search_without_members_keeps_types(self):
        cands = [_cand(C.METHOD, 10, 1), _cand(C.CLASS, 10, 2)]
        policy = ResultPolicy(sort_enabled=True, is_member_search=True)
        assert _lines(aggregate(cands, policy)) == [2]

    def test_class_and_enum_share_first_tier(self):
        groups = group_by_category([_cand(C.ENUM, 1, 1), _cand(C.CLASS, 1, 2), _cand(C.METHOD, 9, 3)])
        assert sorted(c.line for c in select_tier(groups)) == [1, 2]

    def test_category_beats_raw_score(self):
        cands = [_cand(C.NONE, 500, 1), _cand(C.METHOD, 2, 2), _cand(C.LOCAL_VARIABLE, 300, 3)]
        assert _lines(aggregate(cands, SORTED)) == [2]

    def test_empty_groups(self):
        assert select_tier({}) == []


# =============================================================================
# Thresholds
# =============================================================================

class TestThreshold:

    def test_definition_search_removes_below_factor(self):
        cands = [_cand(C.METHOD, 100, 1), _cand(C.METHOD, 50, 2), _cand(C.METHOD, 90, 3)]
        result = aggregate(cands, SORTED)
        assert _lines(result) == [3, 1]
        assert result.stats.removed_count == 1
        assert result.stats.threshold == 80

    def test_reference_search_never_removes_low_scores(self):
        cands = [_cand(C.METHOD, 100, 1), _cand(C.METHOD, 5, 2)]
        policy = ResultPolicy(sort_enabled=True, is_definition_search=False)
        result = aggregate(cands, policy)
        assert _lines(result) == [2, 1]
        assert result.stats.removed_count == 0

    def test_one_file_definition_uses_mean(self):
        cands = [_cand(C.METHOD, 10, 1), _cand(C.METHOD, 20, 2), _cand(C.METHOD, 30, 3)]
        policy = ResultPolicy(sort_enabled=True, is_one_file_or_folder=True)
        result = aggregate(cands, policy)
        assert _lines(result) == [2, 3]
        assert result.stats.average_score == 20

    def test_zero_factor_removes_nothing(self):
        cands = [_cand(C.NONE, s, n) for n, s in enumerate((1, 7, 3, 50), start=1)]
        policy = ResultPolicy(sort_enabled=True, remove_low_score_factor=0, keep_high_score_count=-1)
        first = aggregate(cands, policy)
        second = aggregate(cands, policy)
        assert first.stats.removed_count == 0
        assert second.stats.removed_count == 0
        assert len(first.candidates) == 4

    def test_stats(self):
        cands = [_cand(C.NONE, s, n) for n, s in enumerate((4, 8), start=1)]
        stats = aggregate(cands, ResultPolicy(sort_enabled=True, remove_low_score_factor=0)).stats
        assert (stats.count, stats.min_score, stats.max_score) == (2, 4, 8)
        assert stats.average_score == 6


# =============================================================================
# Ordering and keep window
# =============================================================================

class TestOrdering:

    def _cands(self):
        return [_cand(C.NONE, s, n) for n, s in enumerate((10, 30, 20), start=1)]

    def test_ascending_keep_window_keeps_highest(self):
        policy = ResultPolicy(sort_enabled=True, remove_low_score_factor=0, keep_high_score_count=2)
        result = aggregate(self._cands(), policy)
        assert [c.score for c in result.candidates] == [20, 30]
        assert result.stats.removed_count == 1

    def test_descending_keep_window_keeps_highest(self):
        policy = ResultPolicy(sort_enabled=True, remove_low_score_factor=0, keep_high_score_count=2,
                              descending_for_results=True, descending_for_console=True)
        result = aggregate(self._cands(), policy)
        assert [c.score for c in result.candidates] == [30, 20]

    def test_keep_count_larger_than_results(self):
        policy = ResultPolicy(sort_enabled=True, remove_low_score_factor=0, keep_high_score_count=10)
        assert len(aggregate(self._cands(), policy).candidates) == 3

    def test_console_order_independent_of_results(self):
        policy = ResultPolicy(sort_enabled=True, remove_low_score_factor=0,
                              descending_for_results=False, descending_for_console=True)
        result = aggregate(self._cands(), policy)
        assert _lines(result) == [1, 3, 2]
        assert result.console_lines == [
            "src/a.py:2:0:word",
            "src/a.py:3:0:word",
            "src/a.py:1:0:word",
        ]

    def test_same_score_keeps_discovery_order(self):
        cands = [_cand(C.NONE, 5, n) for n in (4, 2, 8)]
        policy = ResultPolicy(sort_enabled=True, descending_for_results=True)
        assert _lines(aggregate(cands, policy)) == [4, 2, 8]

    def test_locations(self):
        result = aggregate([_cand(C.NONE, 1, 3)], SORTED)
        loc = result.locations[0]
        assert (loc.file_path, loc.line, loc.column) == ("src/a.py", 3, 0)
