"""
Tests for the LineSift client API (linesift.client.LineSift).

Covers the public facade: config construction, request and ranker
helpers, parse_output()/parse_file(), sync and async search, stop_all()
and health().
"""

import pytest

from linesift import LineSift, SiftConfig
from linesift.core.engine import SearchKind
from linesift.exceptions import ConfigError, ParseError


# =============================================================================
# Fixtures: client
# =============================================================================

@pytest.fixture
def client(config):
    """LineSift client with explicit default config."""
    return LineSift(config=config)


# =============================================================================
# Construction
# =============================================================================

class TestClientInit:

    def test_explicit_config_is_used(self, config):
        assert LineSift(config=config).config is config

    def test_kwargs_override_environment(self, monkeypatch):
        monkeypatch.setenv("LINESIFT_MAX_SEARCH_DEPTH", "4")
        client = LineSift(keep_high_score_count=5)
        assert client.config.keep_high_score_count == 5
        assert client.config.max_search_depth == 4

    def test_validate_on_init(self):
        with pytest.raises(ConfigError):
            LineSift(remove_low_score_factor=3.0, validate_on_init=True)

    def test_clients_do_not_share_state(self, config):
        first, second = LineSift(config=config), LineSift(config=config)
        first.state.mark_rerun()
        assert not second.state.has_rerun


# =============================================================================
# Request helpers
# =============================================================================

class TestRequests:

    @pytest.mark.parametrize("command,expected", [
        ("msr -rp . -t foo", True),
        ("/usr/local/bin/msr -rp . -t foo", True),
        ("msr.exe -rp . -t foo", True),
        ("grep -rn foo .", False),
        ("msrx -rp .", False),
        ("", False),
    ])
    def test_invokes_tool(self, client, command, expected):
        assert client.invokes_tool(command) is expected

    def test_tool_command_gets_limits(self, client):
        request = client.make_request("msr -rp . -t foo").with_limits()
        assert request.command_text == "msr -rp . -t foo -k 16 --timeout 36"

    def test_other_command_passes_through(self, client):
        request = client.make_request("grep -rn foo .").with_limits()
        assert request.command_text == "grep -rn foo ."

    def test_request_fields(self, client, tmp_path):
        request = client.make_request("msr", cwd=tmp_path, kind=SearchKind.REFERENCE,
                                      source_path="a.py", sort=False)
        assert request.working_directory == str(tmp_path)
        assert request.kind == SearchKind.REFERENCE
        assert request.source_path == "a.py"
        assert not request.sorting_enabled

    def test_make_ranker_uses_config_weights(self, client):
        ranker = client.make_ranker("Parser", member=True, one_file=True)
        assert ranker.weights is client.config.ranking_weights
        assert ranker.is_member_search
        assert ranker.is_one_file_or_folder


# =============================================================================
# Parsing captured output
# =============================================================================

class TestParse:

    def test_parse_output(self, client, definition_output):
        outcome = client.parse_output(definition_output, word="Parser")
        assert [(loc.file_path, loc.line) for loc in outcome.locations] == [("src/parser.py", 12)]
        assert outcome.summary.matched_count == 4

    def test_parse_output_unsorted(self, client, definition_output):
        outcome = client.parse_output(definition_output, word="Parser", sort=False)
        assert len(outcome.locations) == 4

    def test_parse_file(self, client, definition_output, tmp_path):
        path = tmp_path / "out.txt"
        path.write_text(definition_output, encoding="utf-8")
        outcome = client.parse_file(path, word="Parser")
        assert len(outcome.locations) == 1

    def test_parse_file_missing(self, client, tmp_path):
        with pytest.raises(ParseError):
            client.parse_file(tmp_path / "missing.txt", word="Parser")


# =============================================================================
# Searching
# =============================================================================

class TestSearch:

    def test_sync_search(self, client, fake_tool, definition_output, tmp_path):
        *match_lines, summary = definition_output.splitlines()
        outcome = client.search(fake_tool(match_lines, summary=summary), word="Parser", cwd=tmp_path)
        assert [loc.file_path for loc in outcome.locations] == ["src/parser.py"]
        assert client.state.baseline(SearchKind.DEFINITION).invocation_count == 1

    @pytest.mark.asyncio
    async def test_async_search(self, client, fake_tool, tmp_path):
        cmd = fake_tool(["a.py:3:def Parser(x):", "b.py:9:    Parser(1)"])
        outcome = await client.asearch(cmd, word="Parser", cwd=tmp_path)
        assert [(loc.file_path, loc.line) for loc in outcome.locations] == [("a.py", 3)]
        assert outcome.summary is None

    @pytest.mark.asyncio
    async def test_custom_ranker(self, client, fake_tool, tmp_path):
        class _LastLineWins:
            def score(self, position, file_path, line_text):
                from linesift.core.engine import ResultCategory

                return ResultCategory.NONE, position[0]

        cmd = fake_tool(["a.py:3:Parser", "b.py:9:Parser"])
        outcome = await client.asearch(cmd, word="Parser", cwd=tmp_path, ranker=_LastLineWins())
        assert [loc.line for loc in outcome.locations] == [9]

    def test_stop_all_without_searches(self, client):
        assert client.stop_all() == 0


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_health_keys(self, client):
        info = client.health()
        assert info["tool"] == "msr"
        assert info["live_searches"] == 0
        assert info["has_rerun"] is False
        assert info["version"]

    def test_top_level_health(self):
        from linesift import health

        info = health(SiftConfig(tool_name="rg"))
        assert info["tool"] == "rg"
