"""
Process lifecycle management for robust-lsp.

Handles:
- Version probing of the installed binary
- Starting the language server and draining its stderr into the log
- Restarting it after crashes for the rest of the editor session
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from robust_lsp_client._core.version import VERSION_FLAG, VersionTag
from robust_lsp_client.errors import LaunchError, VersionProbeFailedError

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0
STOP_TIMEOUT = 5.0
STDERR_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class ProbeResult:
    """Structured result of a completed subprocess call."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def first_line(self) -> str:
        lines = self.stdout.strip().splitlines()
        return lines[0].strip() if lines else ""


async def run_command(
    argv: Sequence[str],
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> ProbeResult:
    """
    Run a short-lived command and collect its output.

    Args:
        argv: Command and arguments
        timeout: Seconds to wait before killing the process

    Returns:
        ProbeResult with exit code and decoded output

    Raises:
        OSError: If the command cannot be spawned
        asyncio.TimeoutError: If it does not finish in time
    """
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    return ProbeResult(
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


async def probe_version(
    binary_path: Path,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> VersionTag:
    """
    Ask the installed binary which version it is.

    Runs ``<binary> --version`` and parses the first line of stdout. Only a
    zero exit code counts as success, whatever the output.

    Args:
        binary_path: Path to the binary
        timeout: Seconds to wait for the process

    Returns:
        The reported VersionTag

    Raises:
        VersionProbeFailedError: On spawn failure, timeout, non-zero exit
            or empty output
    """
    try:
        result = await run_command([str(binary_path), VERSION_FLAG], timeout=timeout)
    except asyncio.TimeoutError as e:
        raise VersionProbeFailedError(
            f"{binary_path} {VERSION_FLAG} did not finish within {timeout}s"
        ) from e
    except OSError as e:
        raise VersionProbeFailedError(f"Failed to run {binary_path}: {e}") from e

    if not result.ok:
        raise VersionProbeFailedError(
            f"{binary_path} {VERSION_FLAG} exited with code {result.exit_code}",
            exit_code=result.exit_code,
            stderr=result.stderr,
        )

    if not result.first_line:
        raise VersionProbeFailedError(
            f"{binary_path} {VERSION_FLAG} printed no version",
            exit_code=result.exit_code,
            stderr=result.stderr,
        )

    version = VersionTag.parse(result.first_line)
    logger.debug(f"Installed robust-lsp reports {result.first_line!r} -> {version}")
    return version



async def start_server_process(
    argv: Sequence[str],
    env: Optional[Dict[str, str]] = None,
    pipe_stdio: bool = True,
) -> asyncio.subprocess.Process:
    """
    Start the language server.

    stderr is always piped and must be drained with ``forward_stderr``; the
    server logs there continuously and blocks once the pipe is full.

    Args:
        argv: Binary path followed by arguments
        env: Full process environment
        pipe_stdio: Pipe stdin/stdout for a protocol client to attach to,
            instead of inheriting ours

    Returns:
        The subprocess.Process object

    Raises:
        LaunchError: If process fails to start
    """
    stdio = asyncio.subprocess.PIPE if pipe_stdio else None
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=stdio,
            stdout=stdio,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except OSError as e:
        raise LaunchError(f"Failed to start robust-lsp: {e}") from e

    logger.debug(f"Started robust-lsp process (PID: {process.pid})")
    return process


async def forward_stderr(stream: asyncio.StreamReader, pid: Optional[int] = None) -> None:
    """Log everything the server writes to stderr, line by line, until EOF."""
    prefix = f"[robust-lsp {pid}]" if pid is not None else "[robust-lsp]"
    pending = b""
    while True:
        chunk = await stream.read(STDERR_CHUNK_SIZE)
        if not chunk:
            break
        *lines, pending = (pending + chunk).split(b"\n")
        if len(pending) > STDERR_CHUNK_SIZE:
            lines.append(pending)
            pending = b""
        for line in lines:
            logger.debug(f"{prefix} {line.decode('utf-8', errors='replace').rstrip()}")
    if pending:
        logger.debug(f"{prefix} {pending.decode('utf-8', errors='replace').rstrip()}")


class ServerProcessSupervisor:
    """
    Keeps the language server alive for one editor session.

    A zero exit code ends the session; the server exits that way after the
    client's shutdown request. Any other exit is a crash and the server is
    started again after ``restart_delay``, at most ``max_restarts`` times.
    When it cannot be kept alive, supervision ends and ``failure`` holds the
    LaunchError describing why. Nothing is raised out of ``wait()`` for that.
    """

    def __init__(
        self,
        argv: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        max_restarts: int = 3,
        restart_delay: float = 1.0,
        pipe_stdio: bool = True,
    ):
        self.argv: List[str] = list(argv)
        self.env = env
        self.max_restarts = max_restarts
        self.restart_delay = restart_delay
        self.pipe_stdio = pipe_stdio

        self.restarts = 0
        self.failure: Optional[LaunchError] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def process(self) -> Optional[asyncio.subprocess.Process]:
        return self._process

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """
        Start the server and begin watching it.

        Raises:
            LaunchError: If the first start fails
        """
        self._stopping = False
        self.restarts = 0
        self.failure = None
        await self._spawn()
        self._watch_task = asyncio.create_task(self._watch())

    async def wait(self) -> None:
        """Block until the session is over: clean exit, failure or stop()."""
        task = self._watch_task
        if task is None:
            return
        await asyncio.wait({task})
        if not task.cancelled():
            task.result()

    async def stop(self) -> None:
        """Terminate the server and stop watching it. Safe to call twice."""
        self._stopping = True

        if self._watch_task is not None:
            self._watch_task.cancel()
            await asyncio.wait({self._watch_task})
            self._watch_task = None

        process, self._process = self._process, None
        if process is not None and process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=STOP_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning(f"robust-lsp did not exit within {STOP_TIMEOUT}s, killing it")
                process.kill()
                await process.wait()

        await self._cancel_stderr()

    async def _spawn(self) -> None:
        await self._cancel_stderr()
        self._process = await start_server_process(self.argv, self.env, self.pipe_stdio)
        if self._process.stderr is not None:
            self._stderr_task = asyncio.create_task(
                forward_stderr(self._process.stderr, self._process.pid)
            )

    async def _cancel_stderr(self) -> None:
        task, self._stderr_task = self._stderr_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Reading robust-lsp stderr failed: {task.exception()}")

    async def _watch(self) -> None:
        while self._process is not None:
            exit_code = await self._process.wait()
            if self._stopping:
                return
            if exit_code == 0:
                logger.info("robust-lsp exited normally")
                return

            if self.restarts >= self.max_restarts:
                self.failure = LaunchError(
                    f"robust-lsp exited with code {exit_code} "
                    f"after {self.restarts} restart(s), giving up"
                )
                logger.error(str(self.failure))
                return

            self.restarts += 1
            logger.warning(
                f"robust-lsp exited with code {exit_code}, "
                f"restart {self.restarts}/{self.max_restarts} in {self.restart_delay}s"
            )
            await asyncio.sleep(self.restart_delay)
            try:
                await self._spawn()
            except LaunchError as e:
                logger.error(f"Could not restart robust-lsp: {e}")
                self.failure = e
                self._process = None
                return
