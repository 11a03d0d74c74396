"""
LineSift Process Runner

Runs one search-tool process per request on the asyncio event loop, keeps
the process-wide set of live search pids, and supports bulk termination
when a better result set makes earlier in-flight searches redundant.

Output is buffered and only handed to the parser once the process exits.
"""

import asyncio
import logging
import os
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from linesift.core.engine import PerformanceBaseline, SearchKind, SearchRequest
from linesift.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform.startswith("win")

# Shell exit codes for "command not found" (POSIX sh, cmd.exe).
_COMMAND_NOT_FOUND_CODES = (127, 9009)


# =============================================================================
# Shared state
# =============================================================================

class SearchEngineState:
    """
    Process-wide mutable state shared by every search.

    Holds the live pid set used by :meth:`stop_all`, the per-kind
    performance baselines, and the one-shot rerun flag.  Nothing here is
    reset implicitly; create one instance per application session.
    """

    def __init__(self):
        self._live: Dict[int, object] = {}
        self._baselines: Dict[SearchKind, PerformanceBaseline] = {}
        self.has_rerun = False

    # ── Live processes ────────────────────────────────────────────

    def track(self, pid: int, process: object = None) -> None:
        self._live[pid] = process

    def untrack(self, pid: int) -> None:
        self._live.pop(pid, None)

    def live_pids(self) -> List[int]:
        return list(self._live)

    def stop_all(self) -> int:
        """Kill every tracked process with one batched kill command.

        Returns the number of pids the kill was issued for.
        """
        if not self._live:
            return 0

        pids = list(self._live)
        self._live.clear()
        command = kill_command(pids)
        message = f"{len(pids)} processes by command: {' '.join(command)}"
        logger.debug(f"Will kill {message}")
        try:
            subprocess.run(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False)
        except OSError as exc:
            logger.debug(f"Failed to kill {message}, error = {exc}")
        return len(pids)

    # ── Rerun guard ───────────────────────────────────────────────

    def mark_rerun(self) -> bool:
        """Claim the one opportunistic rerun.  False if already claimed."""
        if self.has_rerun:
            return False
        self.has_rerun = True
        return True

    def set_rerun_mark(self, has_already_rerun: bool) -> None:
        """Explicitly set or clear the rerun flag (e.g. on a new user action)."""
        self.has_rerun = has_already_rerun

    # ── Performance baselines ─────────────────────────────────────

    def baseline(self, kind: SearchKind) -> PerformanceBaseline:
        if kind not in self._baselines:
            self._baselines[kind] = PerformanceBaseline()
        return self._baselines[kind]


def kill_command(pids: List[int]) -> List[str]:
    """Return the single OS command that force-kills all *pids*."""
    if IS_WINDOWS:
        command = ["taskkill", "/F", "/T"]
        for pid in pids:
            command += ["/PID", str(pid)]
        return command
    return ["kill", "-9"] + [str(pid) for pid in pids]


# =============================================================================
# Cancellation
# =============================================================================

class CancellationToken:
    """Caller-owned cancellation signal bound to one request."""

    def __init__(self):
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register *callback*; runs immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


# =============================================================================
# Running processes
# =============================================================================

@dataclass
class RunningSearch:
    """One in-flight search process."""
    process: Optional[asyncio.subprocess.Process]
    pid: int
    command_text: str
    source_path: str = ""
    name: str = ""
    is_completed: bool = False
    cancelled: bool = False

    def stop(self, reason: str = "") -> None:
        """Kill the process unless it already exited."""
        if self.is_completed or self.process is None:
            return
        self.cancelled = True
        logger.debug(f"Kill process {self.pid} {reason}".rstrip())
        try:
            self.process.kill()
        except ProcessLookupError:
            logger.debug(f"Process {self.pid} already gone")
        except OSError as exc:
            logger.error(f"Failed to kill process {self.pid} {reason}, error = {exc}")

    def __str__(self) -> str:
        return f"Name = {self.name}, pid = {self.pid}, SourcePath = {self.source_path}, Command = {self.command_text}"


@dataclass
class ProcessOutput:
    stdout: str
    stderr: str
    return_code: Optional[int]
    cancelled: bool = False


class ProcessRunner:
    """
    Spawn the search tool and collect its buffered output.

    Args:
        state: Shared :class:`SearchEngineState` receiving the pids.
        max_buffer_bytes: Output beyond this size is truncated.
    """

    def __init__(self, state: SearchEngineState, max_buffer_bytes: int = 10240000):
        self.state = state
        self.max_buffer_bytes = max_buffer_bytes

    async def run(self, request: SearchRequest,
                  token: Optional[CancellationToken] = None) -> ProcessOutput:
        """Run *request* to completion (or cancellation).

        Non-zero exit codes are returned, not raised: the tool uses them
        for "no matches" and warnings.  Raises :class:`ToolNotFoundError`
        when the process cannot be started.
        """
        cwd = request.working_directory or None
        try:
            process = await asyncio.create_subprocess_shell(
                request.command_text,
                cwd=cwd,
                env=os.environ.copy(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ToolNotFoundError(
                f"Cannot start search command in {cwd!r}: {exc}"
            ) from exc

        running = RunningSearch(
            process=process,
            pid=process.pid,
            command_text=request.command_text,
            source_path=request.source_path,
            name=request.name,
        )
        self.state.track(running.pid, process)
        if token is not None:
            token.on_cancel(lambda: running.stop("Canceled searcher " + str(running)))

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            running.stop("Task cancelled: " + str(running))
            raise
        finally:
            running.is_completed = True
            self.state.untrack(running.pid)
            logger.debug(f"Completed searcher: {running}")

        output = ProcessOutput(
            stdout=self._decode(stdout),
            stderr=self._decode(stderr),
            return_code=process.returncode,
            cancelled=running.cancelled,
        )
        if (process.returncode in _COMMAND_NOT_FOUND_CODES and not output.stdout
                and not running.cancelled):
            raise ToolNotFoundError(
                f"Search tool not found (exit {process.returncode}): {output.stderr.strip()}"
            )
        return output

    def _decode(self, data: Optional[bytes]) -> str:
        if not data:
            return ""
        if len(data) > self.max_buffer_bytes:
            logger.warning(f"Search output truncated to {self.max_buffer_bytes} bytes")
            data = data[:self.max_buffer_bytes]
        return data.decode("utf-8", errors="replace")
