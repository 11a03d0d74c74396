"""
Shared fixtures for the LineSift test suite.
"""

import sys
import textwrap
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# linesift.core.* can be imported without an editable install.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from linesift.core.config import SiftConfig  # noqa: E402
from linesift.core.runner import SearchEngineState  # noqa: E402


# =============================================================================
# Fixtures: configuration and state
# =============================================================================

@pytest.fixture
def config() -> SiftConfig:
    """Default config, independent of the caller's environment."""
    return SiftConfig()


@pytest.fixture
def state() -> SearchEngineState:
    return SearchEngineState()


# =============================================================================
# Fixtures: sample tool output
# =============================================================================

@pytest.fixture
def definition_output() -> str:
    """msr-style output for a definition search of ``Parser``."""
    return (
        "src/parser.py:12:class Parser:\n"
        "src/cli.py:40:    parser = Parser()\n"
        "src/util.py:8:def make(Parser):\n"
        "src/old.py:3:# Parser was here\n"
        "Matched 4 lines(0.01%) in 4 files(1.2%), read 900 lines in 4 files, Used 0.05 s"
    )


@pytest.fixture
def fake_tool(tmp_path: Path):
    """
    Write a tiny script that behaves like the search tool: it prints the
    given stdout lines, then the summary on stderr, and exits with *code*.

    Returns a factory building the full shell command for the script.
    """
    def _make(stdout_lines, summary: str = "", code: int = 0) -> str:
        script = tmp_path / "fake_tool.py"
        script.write_text(
            textwrap.dedent(
                f"""
                import sys
                for line in {list(stdout_lines)!r}:
                    print(line)
                if {summary!r}:
                    sys.stderr.write({summary!r} + "\\n")
                sys.exit({code})
                """
            ),
            encoding="utf-8",
        )
        return f'"{sys.executable}" "{script}"'

    return _make
