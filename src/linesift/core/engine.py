"""
LineSift Core Engine

Data models shared by every stage of the pipeline, plus the output parser
that turns the search tool's buffered text into match candidates and an
optional trailing summary.

Parsing is pure and synchronous: it never touches a process and can be
exercised with literal multi-line strings.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import List, Optional, Pattern

# Application code (CLI, MCP server) is responsible for configuring logging.
logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================

class SearchKind(str, Enum):
    """What a search is looking for; also the performance-baseline key."""
    DEFINITION = "definition"
    REFERENCE = "reference"


class ResultCategory(IntEnum):
    """Syntactic role of a match, used to rank ahead of the numeric score."""
    CLASS = 0
    INTERFACE = 1
    ENUM = 2
    METHOD = 3
    MEMBER = 4
    CONSTANT_VALUE = 5
    LOCAL_VARIABLE = 6
    NONE = 7


class RerunDecision(str, Enum):
    """Outcome of the summary heuristics for one finished search."""
    NONE = "none"
    RERUN_BROADER = "rerun-broader"
    RERUN_IN_TERMINAL = "rerun-in-terminal"


_MAX_DEPTH_REGEX = re.compile(r"\s+(-k\s*\d+|--max-depth\s+\d+)")
_TIMEOUT_REGEX = re.compile(r"\s+--timeout\s+\d+")


@dataclass(frozen=True)
class SearchRequest:
    """A ready-to-run command line plus the limits the engine may add to it.

    The command text is built elsewhere; the engine never edits its search
    flags.  See :meth:`with_limits`.
    """
    command_text: str
    working_directory: str = "."
    max_result_depth: int = 0
    timeout_seconds: int = 0
    sorting_enabled: bool = True
    kind: SearchKind = SearchKind.DEFINITION
    source_path: str = ""
    """File the search was started from (the word under the cursor)."""
    name: str = ""

    def with_limits(self) -> "SearchRequest":
        """Return a copy whose command carries depth/timeout flags.

        Flags the caller already put on the command line are left alone,
        as are non-positive limits.
        """
        cmd = self.command_text.rstrip()
        if self.max_result_depth > 0 and not _MAX_DEPTH_REGEX.search(cmd):
            cmd += f" -k {self.max_result_depth}"
        if self.timeout_seconds > 0 and not _TIMEOUT_REGEX.search(cmd):
            cmd += f" --timeout {self.timeout_seconds}"
        if cmd == self.command_text:
            return self
        return replace(self, command_text=cmd)


@dataclass(frozen=True)
class RawMatchLine:
    """One ``path:line:content`` line of tool output."""
    text: str
    file_path: str
    line: int
    content: str


@dataclass(frozen=True)
class Location:
    """A navigable position: 1-based line, 0-based column."""
    file_path: str
    line: int
    column: int

    def to_dict(self) -> dict:
        return {"file": self.file_path, "line": self.line, "column": self.column}


@dataclass
class Candidate:
    """A single match extracted from one line of search-tool output."""
    file_path: str
    line: int
    column: int
    raw_text: str
    content: str = ""
    category: ResultCategory = ResultCategory.NONE
    score: int = 1

    def __post_init__(self):
        if self.score < 0:
            self.score = 0

    @property
    def location(self) -> Location:
        return Location(self.file_path, self.line, self.column)

    @property
    def display_text(self) -> str:
        """``path:line:col:content`` for console display."""
        return f"{self.file_path}:{self.line}:{self.column}:{self.content}"


@dataclass(frozen=True)
class Summary:
    """The tool's self-reported trailing statistics."""
    matched_count: int
    read_line_count: int
    elapsed_seconds: float
    text: str = ""


@dataclass
class PerformanceBaseline:
    """Rolling timing totals for one :class:`SearchKind`."""
    invocation_count: int = 0
    cumulative_elapsed_seconds: float = 0.0

    @property
    def average_seconds(self) -> float:
        return self.cumulative_elapsed_seconds / max(1, self.invocation_count)


@dataclass
class ParsedOutput:
    """Result of :meth:`OutputParser.parse`."""
    candidates: List[Candidate] = field(default_factory=list)
    passthrough_lines: List[str] = field(default_factory=list)
    """Lines kept for display only (not shaped like a match, or word not found)."""
    summary: Optional[Summary] = None
    summary_text: str = ""
    """Raw trailing summary line, even when its numbers could not be read."""


# =============================================================================
# Output Parsing
# =============================================================================

_LINE_SPLIT_REGEX = re.compile(r"\r\n|\n\r|\n|\r")
_FILE_LINE_TEXT_REGEX = re.compile(r"^(.+?):(\d+):(.*)")
_SUMMARY_LINE_REGEX = re.compile(r"^(?:Matched|Replaced) (\d+) ", re.MULTILINE)
_SUMMARY_DETAIL_REGEX = re.compile(
    r"^Matched (\d+) lines.*?read (\d+) lines.*?Used (\d+(?:\.\d*)?) s",
    re.MULTILINE,
)
_WARN_ERROR_REGEX = re.compile(r"(?:^|\s|\d+m)(WARN|ERROR)\b")


def split_lines(raw_output: str) -> List[str]:
    """Split on any newline convention (LF, CR, CRLF, LFCR)."""
    text = raw_output.rstrip()
    if not text:
        return []
    return _LINE_SPLIT_REGEX.split(text)


def is_summary_line(line: str) -> bool:
    return _SUMMARY_LINE_REGEX.match(line) is not None


def parse_summary(text: str) -> Optional[Summary]:
    """Read ``Matched N lines ... read M lines ... Used S s`` from *text*.

    Returns None when no summary is present or its numbers cannot be read.
    """
    if not text:
        return None
    m = _SUMMARY_DETAIL_REGEX.search(text)
    if not m:
        return None
    line_end = text.find("\n", m.start())
    summary_line = text[m.start():] if line_end < 0 else text[m.start():line_end]
    return Summary(
        matched_count=int(m.group(1)),
        read_line_count=int(m.group(2)),
        elapsed_seconds=float(m.group(3)),
        text=summary_line.strip(),
    )


def has_summary(text: str) -> bool:
    """True when *text* contains a summary-shaped line (even an unreadable one)."""
    return bool(text) and _SUMMARY_LINE_REGEX.search(text) is not None


def split_match_line(line: str) -> Optional[RawMatchLine]:
    m = _FILE_LINE_TEXT_REGEX.match(line)
    if not m:
        return None
    return RawMatchLine(text=line, file_path=m.group(1), line=int(m.group(2)), content=m.group(3))


def build_word_pattern(word: str, ignore_case: bool = False) -> Pattern[str]:
    """Default word locator: *word* not glued to other identifier characters."""
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(r"(?<![\w$])(?P<word>" + re.escape(word) + r")(?![\w$])", flags)


def locate_word(pattern: Pattern[str], content: str, column_shift: int = 0) -> Optional[int]:
    """Return the 0-based column of the word in *content*, or None.

    Uses the ``word`` group when the pattern defines one, so patterns that
    consume a leading boundary character still report the word itself.
    """
    m = pattern.search(content)
    if m is None:
        return None
    start = m.start("word") if "word" in pattern.groupindex else m.start()
    return max(0, start - column_shift)


def log_tool_diagnostics(text: str) -> None:
    """Log tool lines that carry WARN / ERROR tokens at matching severity."""
    if not text:
        return
    for line in split_lines(text):
        m = _WARN_ERROR_REGEX.search(line)
        if not m:
            continue
        if m.group(1) == "WARN":
            logger.warning(f"Search tool: {line.strip()}")
        else:
            logger.error(f"Search tool: {line.strip()}")


class OutputParser:
    """
    Convert raw tool output into unscored candidates plus a summary.

    Args:
        word_pattern: Compiled regex locating the searched word inside the
            matched content (see :func:`build_word_pattern`).
        column_shift: Subtracted from the located offset.
    """

    def __init__(self, word_pattern: Pattern[str], column_shift: int = 0):
        self.word_pattern = word_pattern
        self.column_shift = column_shift

    def parse(self, raw_output: str) -> ParsedOutput:
        lines = split_lines(raw_output)
        parsed = ParsedOutput()
        if lines and is_summary_line(lines[-1]):
            parsed.summary_text = lines.pop()
            parsed.summary = parse_summary(parsed.summary_text)

        for line in lines:
            candidate = self.parse_line(line)
            if candidate is None:
                parsed.passthrough_lines.append(line)
            else:
                parsed.candidates.append(candidate)
        return parsed

    def parse_line(self, line: str) -> Optional[Candidate]:
        """Return an unscored candidate, or None for a display-only line."""
        raw = split_match_line(line)
        if raw is None:
            if line.strip():
                logger.error(
                    f"Failed to match {_FILE_LINE_TEXT_REGEX.pattern!r} from matched result: {line}"
                )
            return None

        column = locate_word(self.word_pattern, raw.content, self.column_shift)
        if column is None:
            logger.error(
                f"Failed to match words by regex {self.word_pattern.pattern!r} "
                f"from matched result: {raw.content}"
            )
            return None

        return Candidate(
            file_path=raw.file_path,
            line=raw.line,
            column=column,
            raw_text=line,
            content=raw.content,
        )
