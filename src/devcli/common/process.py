"""Async management of one long-running child process per tunnel."""

import asyncio
from collections import deque

from .exceptions import ProcessError
from .logging import get_logger

logger = get_logger(__name__)


class ChildProcess:
    """Runs a single command and keeps the tail of its stderr.

    The child is started in its own session so that a terminal Ctrl+C
    reaches devcli only; devcli then decides how to stop the child.
    """

    def __init__(
        self,
        argv: list[str],
        env: dict[str, str] | None = None,
        name: str | None = None,
        stderr_tail_lines: int = 20,
    ):
        if not argv:
            raise ValueError("Command cannot be empty")
        self.argv = list(argv)
        self.env = env
        self.name = name or argv[0]
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_tail: deque[str] = deque(maxlen=stderr_tail_lines)
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int | None:
        """Get process ID if started"""
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    @property
    def stderr(self) -> str:
        """Last lines the child wrote to stderr"""
        return "\n".join(self._stderr_tail)

    def is_running(self) -> bool:
        """Check if process is currently running"""
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Spawn the child process.

        Raises:
            ProcessError: If the executable cannot be started
        """
        if self.is_running():
            logger.debug("Process already running", name=self.name, pid=self.pid)
            return

        try:
            process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                start_new_session=True,
            )
        except OSError as e:
            logger.error("Failed to start process", name=self.name, command=self.argv[0], error=str(e))
            raise ProcessError(f"Failed to start {self.argv[0]} for {self.name}: {e}") from e

        self._process = process
        if process.stderr is not None:
            self._drain_task = asyncio.create_task(self._drain_stderr(process.stderr))
        logger.debug("Process started", name=self.name, pid=process.pid)

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        async for raw in stream:
            line = raw.decode(errors="replace").rstrip()
            if line:
                self._stderr_tail.append(line)
                logger.debug("Process stderr", name=self.name, line=line)

    async def wait(self) -> int:
        """Wait for the child to exit and for its stderr to be fully read.

        Returns:
            The process exit code
        """
        if self._process is None:
            raise ProcessError(f"Process for {self.name} was never started")
        returncode = await self._process.wait()
        if self._drain_task is not None:
            await self._drain_task
        return returncode

    async def stop(self, timeout: float = 5.0) -> None:
        """Terminate the child, escalating to SIGKILL after ``timeout``."""
        process = self._process
        if process is None or process.returncode is not None:
            return

        logger.debug("Stopping process", name=self.name, pid=self.pid)
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Process did not terminate gracefully, force killing",
                name=self.name,
                pid=self.pid,
            )
            self.kill()
            await process.wait()

    def kill(self) -> None:
        """Send SIGKILL without waiting. Safe to call from a signal handler."""
        if self._process is None or self._process.returncode is not None:
            return
        try:
            self._process.kill()
        except ProcessLookupError:
            pass

