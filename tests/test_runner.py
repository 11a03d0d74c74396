"""
Tests for linesift.core.runner — batched kill, cancellation, and the
asyncio process runner.
"""

import asyncio
import sys

import pytest
from linesift.core import runner
from linesift.core.engine import SearchRequest
from linesift.core.runner import (
    CancellationToken,
    ProcessRunner,
    RunningSearch,
    kill_command,
)
from linesift.exceptions import ToolNotFoundError


# =============================================================================
# Batched kill
# =============================================================================

class TestKillCommand:

    def test_posix(self, monkeypatch):
        monkeypatch.setattr(runner, "IS_WINDOWS", False)
        assert kill_command([11, 22]) == ["kill", "-9", "11", "22"]

    def test_windows(self, monkeypatch):
        monkeypatch.setattr(runner, "IS_WINDOWS", True)
        assert kill_command([11, 22]) == ["taskkill", "/F", "/T", "/PID", "11", "/PID", "22"]


class TestStopAll:

    def test_one_kill_for_all_pids(self, state, monkeypatch):
        calls = []
        monkeypatch.setattr(runner, "IS_WINDOWS", False)
        monkeypatch.setattr(runner.subprocess, "run", lambda cmd, **kw: calls.append(cmd))
        state.track(11)
        state.track(22)

        assert state.stop_all() == 2
        assert calls == [["kill", "-9", "11", "22"]]
        assert state.live_pids() == []

    def test_empty_set_is_noop(self, state, monkeypatch):
        calls = []
        monkeypatch.setattr(runner.subprocess, "run", lambda cmd, **kw: calls.append(cmd))
        assert state.stop_all() == 0
        assert calls == []

    def test_kill_failure_not_raised(self, state, monkeypatch):
        def _fail(cmd, **kw):
            raise OSError("no kill here")

        monkeypatch.setattr(runner.subprocess, "run", _fail)
        state.track(11)
        assert state.stop_all() == 1
        assert state.live_pids() == []

    def test_untrack(self, state):
        state.track(5)
        state.untrack(5)
        state.untrack(6)
        assert state.live_pids() == []


# =============================================================================
# Cancellation primitives
# =============================================================================

class TestCancellationToken:

    def test_callbacks_run_once(self):
        token = CancellationToken()
        hits = []
        token.on_cancel(lambda: hits.append(1))
        token.cancel()
        token.cancel()
        assert hits == [1]
        assert token.is_cancelled

    def test_late_registration_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        hits = []
        token.on_cancel(lambda: hits.append(1))
        assert hits == [1]


class _FakeProcess:
    def __init__(self, error=None):
        self.killed = 0
        self._error = error

    def kill(self):
        self.killed += 1
        if self._error:
            raise self._error


class TestRunningSearch:

    def test_stop_completed_is_noop(self):
        proc = _FakeProcess()
        running = RunningSearch(process=proc, pid=1, command_text="msr", is_completed=True)
        running.stop()
        assert proc.killed == 0
        assert not running.cancelled

    def test_stop_kills_and_marks_cancelled(self):
        proc = _FakeProcess()
        running = RunningSearch(process=proc, pid=1, command_text="msr")
        running.stop("test")
        assert proc.killed == 1
        assert running.cancelled

    def test_stop_after_exit_race(self):
        running = RunningSearch(process=_FakeProcess(ProcessLookupError()), pid=1, command_text="msr")
        running.stop()
        assert running.cancelled


# =============================================================================
# ProcessRunner
# =============================================================================

class TestProcessRunner:

    @pytest.mark.asyncio
    async def test_collects_stdout_and_stderr(self, state, fake_tool, tmp_path):
        cmd = fake_tool(["a.py:1:foo"], summary="Matched 1 lines, read 5 lines, Used 0.01 s")
        output = await ProcessRunner(state).run(SearchRequest(cmd, working_directory=str(tmp_path)))
        assert output.stdout.strip() == "a.py:1:foo"
        assert output.stderr.startswith("Matched 1 lines")
        assert output.return_code == 0
        assert not output.cancelled
        assert state.live_pids() == []

    @pytest.mark.asyncio
    async def test_non_zero_exit_returned(self, state, fake_tool, tmp_path):
        cmd = fake_tool(["a.py:1:foo"], code=1)
        output = await ProcessRunner(state).run(SearchRequest(cmd, working_directory=str(tmp_path)))
        assert output.return_code == 1
        assert "a.py:1:foo" in output.stdout

    @pytest.mark.asyncio
    async def test_output_truncated_at_buffer_limit(self, state, fake_tool, tmp_path):
        cmd = fake_tool(["abcdefghij"])
        output = await ProcessRunner(state, max_buffer_bytes=5).run(
            SearchRequest(cmd, working_directory=str(tmp_path))
        )
        assert output.stdout == "abcde"

    @pytest.mark.asyncio
    async def test_cancel_via_token(self, state, tmp_path):
        cmd = f'"{sys.executable}" -c "import time; time.sleep(3)"'
        token = CancellationToken()
        task = asyncio.ensure_future(
            ProcessRunner(state).run(SearchRequest(cmd, working_directory=str(tmp_path)), token)
        )
        for _ in range(200):
            if state.live_pids():
                break
            await asyncio.sleep(0.01)
        assert state.live_pids()

        token.cancel()
        output = await task
        assert output.cancelled
        assert state.live_pids() == []

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX shell exit code")
    async def test_missing_tool(self, state, tmp_path):
        request = SearchRequest("linesift-no-such-tool-xyz -t foo", working_directory=str(tmp_path))
        with pytest.raises(ToolNotFoundError):
            await ProcessRunner(state).run(request)

    @pytest.mark.asyncio
    async def test_bad_working_directory(self, state, tmp_path):
        request = SearchRequest("echo hi", working_directory=str(tmp_path / "missing"))
        with pytest.raises(ToolNotFoundError):
            await ProcessRunner(state).run(request)
        assert state.live_pids() == []
