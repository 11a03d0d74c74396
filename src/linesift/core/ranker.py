"""
LineSift Relevance Ranking

The pipeline only depends on the :class:`Ranker` protocol: any object with a
``score(position, file_path, line_text)`` method can rank candidates.
:class:`CategoryRanker` is the bundled default; it classifies the line around
the searched word with a few declaration regexes and scores it from a plain
weight table.
"""

import logging
import os
import re
from typing import Dict, List, Optional, Protocol, Tuple

from linesift.core.engine import Candidate, ResultCategory

logger = logging.getLogger(__name__)


class Ranker(Protocol):
    """Scoring policy consumed by the pipeline.

    ``position`` is ``(line, column)`` with a 1-based line and 0-based
    column.  Returning a score of 0 excludes the candidate.
    """

    def score(self, position: Tuple[int, int], file_path: str,
              line_text: str) -> Tuple[ResultCategory, int]:
        ...


def score_candidates(candidates: List[Candidate], ranker: Ranker) -> List[Candidate]:
    """Apply *ranker* to each candidate, clamp negatives, drop zero scores."""
    kept: List[Candidate] = []
    for candidate in candidates:
        category, score = ranker.score(
            (candidate.line, candidate.column), candidate.file_path, candidate.content
        )
        score = int(score)
        if score < 0:
            logger.warning(f"Ranker returned negative score {score} for {candidate.raw_text}; using 0")
            score = 0
        if score == 0:
            logger.debug(f"Excluded by ranker: {candidate.raw_text}")
            continue
        candidate.category = category
        candidate.score = score
        kept.append(candidate)
    return kept


# =============================================================================
# Default ranker
# =============================================================================

_MODIFIERS = (
    r"(?:public|private|protected|internal|static|virtual|override|abstract|"
    r"async|final|inline|const|unsafe|extern|sealed|readonly|export|default)"
)
_NOT_A_TYPE = frozenset({
    "return", "new", "await", "throw", "else", "yield", "case", "in", "of",
    "not", "and", "or", "is", "goto", "delete", "typeof", "sizeof",
})

_CLASS_PREFIX = re.compile(r"\b(?:class|struct|record)\s+$")
_INTERFACE_PREFIX = re.compile(r"\b(?:interface|protocol|trait)\s+$")
_ENUM_PREFIX = re.compile(r"\benum\s+(?:class\s+|struct\s+)?$")
_FUNC_KEYWORD_PREFIX = re.compile(r"(?:\b(?:def|func|function|fn|sub)\s+|\bfunc\s*\([^)]*\)\s*)$")
_TYPED_DECL_PREFIX = re.compile(
    r"^\s*(?:" + _MODIFIERS + r"\s+)*(?P<type>[\w<>\[\],.:?]+)[\s*&]+$"
)
_FIELD_DECL_PREFIX = re.compile(
    r"^\s*(?:" + _MODIFIERS + r"\s+)+[\w<>\[\],.?]+\s+$"
)
_CONST_PREFIX = re.compile(r"(?:^\s*#\s*define\s+$|\b(?:const|final|constexpr|readonly)\b)")
_MEMBER_PREFIX = re.compile(r"(?:\b(?:self|this)\.|@)$")
_LOCAL_PREFIX = re.compile(r"\b(?:var|let|auto|val|local|my|dim)\s+$", re.IGNORECASE)
_CALL_SUFFIX = re.compile(r"^\s*(?:<[^>]*>)?\s*\(")
_ASSIGN_SUFFIX = re.compile(r"^\s*(?::[^=]+)?=(?!=)")
_FIELD_SUFFIX = re.compile(r"^\s*[;={]")
_COMMENT_LINE = re.compile(r"^\s*(?://|/\*|\*\s|\*$|#(?!\s*define\b)|--\s)")
_BODY_OPENER = re.compile(r"[{:]\s*$")
_TEST_PATH = re.compile(r"(?:^|[\\/_.-])tests?(?:[\\/_.-]|$)", re.IGNORECASE)

_CATEGORY_WEIGHT_KEYS = {
    ResultCategory.CLASS: "class",
    ResultCategory.INTERFACE: "interface",
    ResultCategory.ENUM: "enum",
    ResultCategory.METHOD: "method",
    ResultCategory.CONSTANT_VALUE: "constant",
    ResultCategory.MEMBER: "member",
    ResultCategory.LOCAL_VARIABLE: "local_variable",
    ResultCategory.NONE: "none",
}


class CategoryRanker:
    """
    Classify a matched line by the syntax around the searched word.

    Args:
        word: The searched word (plain text, not a regex).
        weights: Weight table, normally ``SiftConfig.ranking_weights``.
        source_path: File the search started from; matches in the same
            folder or with the same extension get a small bonus.
        is_member_search: The word was clicked as ``obj.word``.
        is_one_file_or_folder: The search is scoped to one file/folder.
        can_rerun_when_no_result / can_rerun_when_many_results: Whether the
            caller allows the heuristic engine to schedule reruns.
    """

    def __init__(
        self,
        word: str,
        weights: Dict[str, int],
        *,
        source_path: str = "",
        is_member_search: bool = False,
        is_one_file_or_folder: bool = False,
        can_rerun_when_no_result: bool = True,
        can_rerun_when_many_results: bool = True,
        ignore_case: bool = False,
    ):
        self.word = word
        self.weights = weights
        self.source_path = source_path
        self.is_member_search = is_member_search
        self.is_one_file_or_folder = is_one_file_or_folder
        self.can_rerun_when_no_result = can_rerun_when_no_result
        self.can_rerun_when_many_results = can_rerun_when_many_results
        self._ignore_case = ignore_case
        self._word_regex = re.compile(
            r"(?<![\w$])" + re.escape(word) + r"(?![\w$])",
            re.IGNORECASE if ignore_case else 0,
        )
        self._source_dir = os.path.dirname(os.path.abspath(source_path)) if source_path else ""
        self._source_ext = os.path.splitext(source_path)[1].lower()
        self._source_is_test = bool(source_path) and bool(_TEST_PATH.search(source_path))

    def score(self, position: Tuple[int, int], file_path: str,
              line_text: str) -> Tuple[ResultCategory, int]:
        if _COMMENT_LINE.match(line_text):
            return ResultCategory.NONE, 0

        split = self._split_at_word(line_text, position[1])
        if split is None:
            return ResultCategory.NONE, self._weight("none")
        prefix, suffix = split

        category = self.classify(prefix, suffix)
        score = self._weight(_CATEGORY_WEIGHT_KEYS[category])
        if category != ResultCategory.NONE and _BODY_OPENER.search(line_text):
            score += self._weight("definition_line")
        score += self._path_bonus(file_path)
        return category, max(1, score)

    def classify(self, prefix: str, suffix: str) -> ResultCategory:
        """Return the category implied by the text around the word."""
        if _ENUM_PREFIX.search(prefix):
            return ResultCategory.ENUM
        if _CLASS_PREFIX.search(prefix):
            return ResultCategory.CLASS
        if _INTERFACE_PREFIX.search(prefix):
            return ResultCategory.INTERFACE
        if _FUNC_KEYWORD_PREFIX.search(prefix):
            return ResultCategory.METHOD
        typed = _TYPED_DECL_PREFIX.match(prefix)
        if typed and typed.group("type") not in _NOT_A_TYPE and _CALL_SUFFIX.match(suffix):
            return ResultCategory.METHOD
        is_assignment = _ASSIGN_SUFFIX.match(suffix) is not None
        if is_assignment and (_CONST_PREFIX.search(prefix) or (self.word.isupper() and len(self.word) > 1)):
            return ResultCategory.CONSTANT_VALUE
        if prefix.rstrip().endswith("define"):
            return ResultCategory.CONSTANT_VALUE
        if _MEMBER_PREFIX.search(prefix) and is_assignment:
            return ResultCategory.MEMBER
        if _FIELD_DECL_PREFIX.match(prefix) and _FIELD_SUFFIX.match(suffix):
            return ResultCategory.MEMBER
        if _LOCAL_PREFIX.search(prefix):
            return ResultCategory.LOCAL_VARIABLE
        if not prefix.strip() and is_assignment:
            return ResultCategory.LOCAL_VARIABLE
        return ResultCategory.NONE

    # ── Internal helpers ──────────────────────────────────────────

    def _split_at_word(self, line_text: str, column: int) -> Optional[Tuple[str, str]]:
        end = column + len(self.word)
        found = line_text[column:end]
        same = found.lower() == self.word.lower() if self._ignore_case else found == self.word
        if column < 0 or not same:
            m = self._word_regex.search(line_text)
            if m is None:
                return None
            column, end = m.start(), m.end()
        return line_text[:column], line_text[end:]

    def _path_bonus(self, file_path: str) -> int:
        bonus = 0
        stem = os.path.splitext(os.path.basename(file_path))[0]
        if self.word.lower().lstrip("$") in stem.lower():
            bonus += self._weight("file_name_match")
        if self._source_dir and os.path.dirname(os.path.abspath(file_path)) == self._source_dir:
            bonus += self._weight("same_folder")
        if self._source_ext and os.path.splitext(file_path)[1].lower() == self._source_ext:
            bonus += self._weight("same_extension")
        if not self._source_is_test and _TEST_PATH.search(file_path):
            bonus += self._weight("test_path_penalty")
        return bonus

    def _weight(self, key: str) -> int:
        return int(self.weights.get(key, 0))

    @property
    def score_words_text(self) -> str:
        return self.word
