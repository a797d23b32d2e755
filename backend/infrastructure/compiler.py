"""Execution of the external ``compactc`` toolchain.

The orchestrator only talks to the :class:`CompilerInvoker` protocol, so tests
can install an in-process fake. :class:`SubprocessCompilerInvoker` is the
production implementation: it runs the compiler in its own process group so a
timeout or a cancelled request can kill the compiler together with anything it
spawned.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from pathlib import Path
from typing import Protocol

from backend.domain import InvocationOutcome, InvocationStatus

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT_BYTES = 1024 * 1024
PROBE_TIMEOUT = 10.0
DRAIN_GRACE = 1.0
TRUNCATION_MARKER = "\n[output truncated]"
_READ_CHUNK = 64 * 1024
_EXIT_POLL = 0.05


class CompilerInvoker(Protocol):
    """Contract for anything able to run a compiler against a workspace."""

    async def invoke(
        self,
        executable: Path,
        source_path: Path,
        output_dir: Path,
        cwd: Path,
        timeout: float,
    ) -> InvocationOutcome:
        """Compile ``source_path`` into ``output_dir``."""

    async def probe_version(self, executable: str) -> str | None:
        """Return the ``--version`` banner of ``executable`` or ``None``."""


class _CappedReader:
    """Drains one pipe keeping at most ``limit`` bytes."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._kept = bytearray()
        self._truncated = False

    async def drain(self, stream: asyncio.StreamReader | None) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(_READ_CHUNK)
            if not chunk:
                return
            room = self._limit - len(self._kept)
            if room > 0:
                self._kept.extend(chunk[:room])
            if len(chunk) > room:
                # keep draining so the child never blocks on a full pipe
                self._truncated = True

    def text(self) -> str:
        text = bytes(self._kept).decode("utf-8", errors="replace")
        return text + TRUNCATION_MARKER if self._truncated else text


async def _finish_draining(tasks: list[asyncio.Task], grace: float) -> None:
    """Give the pipe readers ``grace`` seconds, then abandon them."""

    done, pending = await asyncio.wait(tasks, timeout=grace)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    for task in done:
        task.result()


async def _wait_for_exit(process: asyncio.subprocess.Process) -> int:
    """Return once the process itself has exited.

    ``Process.wait()`` may also wait for its pipes to close, which a background
    descendant can hold open long after the compiler is done.
    """

    while process.returncode is None:
        await asyncio.sleep(_EXIT_POLL)
    return process.returncode


def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except PermissionError:  # pragma: no cover - group already reassigned
        if process.returncode is None:
            process.kill()


class SubprocessCompilerInvoker:
    """Runs the compiler as a child process with a hard wall-clock limit.

    The limit applies to the compiler process itself. Once it exits, anything
    it left behind in its process group is killed and the pipes get a short
    grace period to reach EOF.
    """

    def __init__(self, *, max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES, drain_grace: float = DRAIN_GRACE) -> None:
        self._max_output_bytes = max_output_bytes
        self._drain_grace = drain_grace

    async def _run(
        self,
        argv: list[str],
        cwd: Path | None,
        timeout: float,
    ) -> tuple[InvocationStatus, int | None, str, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd) if cwd else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as exc:
            return InvocationStatus.EXECUTABLE_NOT_FOUND, None, "", str(exc)

        stdout = _CappedReader(self._max_output_bytes)
        stderr = _CappedReader(self._max_output_bytes)
        readers = [
            asyncio.create_task(stdout.drain(process.stdout)),
            asyncio.create_task(stderr.drain(process.stderr)),
        ]
        try:
            exit_code = await asyncio.wait_for(_wait_for_exit(process), timeout=timeout)
        except asyncio.TimeoutError:
            _kill_process_group(process)
            await _wait_for_exit(process)
            await _finish_draining(readers, self._drain_grace)
            return InvocationStatus.TIMEOUT, None, "", f"Compilation timed out after {timeout:g}s"
        except asyncio.CancelledError:
            _kill_process_group(process)
            await asyncio.shield(_wait_for_exit(process))
            for task in readers:
                task.cancel()
            await asyncio.shield(asyncio.gather(*readers, return_exceptions=True))
            raise

        # the group outlives its leader while background descendants run
        _kill_process_group(process)
        await _finish_draining(readers, self._drain_grace)
        status = InvocationStatus.SUCCESS if exit_code == 0 else InvocationStatus.COMPILER_ERROR
        return status, exit_code, stdout.text(), stderr.text()

    async def invoke(
        self,
        executable: Path,
        source_path: Path,
        output_dir: Path,
        cwd: Path,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> InvocationOutcome:
        if not executable.is_file() or not os.access(executable, os.X_OK):
            return InvocationOutcome(
                status=InvocationStatus.EXECUTABLE_NOT_FOUND,
                stderr=f"{executable} is not an executable file",
            )

        started = time.monotonic()
        status, exit_code, stdout, stderr = await self._run(
            [str(executable), str(source_path), str(output_dir)], cwd, timeout
        )
        duration = time.monotonic() - started

        if status is InvocationStatus.SUCCESS and not output_dir.is_dir():
            status = InvocationStatus.COMPILER_ERROR
        logger.info(
            "compiler %s finished with %s (exit=%s) in %.2fs",
            executable,
            status.value,
            exit_code,
            duration,
        )
        return InvocationOutcome(
            status=status,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
        )

    async def probe_version(self, executable: str) -> str | None:
        status, _, stdout, stderr = await self._run([executable, "--version"], None, PROBE_TIMEOUT)
        if status is not InvocationStatus.SUCCESS:
            logger.debug("version probe for %s failed: %s", executable, stderr.strip())
            return None
        return stdout.strip() or stderr.strip()
