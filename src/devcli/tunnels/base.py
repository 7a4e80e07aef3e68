"""Common lifecycle of a tunnel backed by one forwarding process."""

import asyncio
from abc import ABC, abstractmethod

from ..common.exceptions import ProcessError, TunnelError, TunnelFailed
from ..common.logging import get_logger
from ..common.process import ChildProcess
from ..common.runtime_config import RuntimeConfig
from .models import TunnelKind, TunnelOutcome, TunnelResult

logger = get_logger(__name__)


class BaseTunnel(ABC):
    """One forwarding channel from a local port, supervised until it ends.

    Subclasses provide the forwarding command and may override ``prepare``
    to resolve their remote endpoint first. ``run`` never raises for
    failures local to the tunnel; they end up in the returned result.
    """

    kind: TunnelKind

    def __init__(
        self,
        local_port: int,
        env: dict[str, str] | None = None,
        runtime: RuntimeConfig | None = None,
    ):
        self.local_port = local_port
        self.env = env
        self.runtime = runtime or RuntimeConfig()
        self.outcome = TunnelOutcome.PENDING
        self.error: TunnelError | ProcessError | None = None
        self.returncode: int | None = None
        self._process: ChildProcess | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable name used in logs and results."""

    @abstractmethod
    def build_command(self) -> list[str]:
        """Command line of the forwarding process."""

    async def prepare(self) -> None:
        """Resolve anything the command needs. Runs before the process starts."""

    @property
    def process(self) -> ChildProcess | None:
        return self._process

    def result(self) -> TunnelResult:
        return TunnelResult(
            name=self.name,
            kind=self.kind,
            local_port=self.local_port,
            outcome=self.outcome,
            error=str(self.error) if self.error else None,
            returncode=self.returncode,
        )

    def kill(self) -> None:
        """Hard-kill the forwarding process without waiting for it."""
        if self._process is not None:
            self._process.kill()

    async def run(self, cancel: asyncio.Event) -> TunnelResult:
        """Bring the tunnel up and supervise it until exit or cancellation."""
        log = logger.bind(tunnel=self.name, port=self.local_port)
        try:
            if not await self._prepare_unless_canceled(cancel):
                self.outcome = TunnelOutcome.CANCELED
                return self.result()

            self._process = ChildProcess(
                self.build_command(),
                env=self.env,
                name=self.name,
                stderr_tail_lines=self.runtime.stderr_tail_lines,
            )
            await self._process.start()
            self.outcome = TunnelOutcome.RUNNING
            log.info("Tunnel running", pid=self._process.pid)

            await self._supervise(self._process, cancel)
        except (TunnelError, ProcessError) as e:
            if cancel.is_set():
                # errors after cancellation are never reported as failures
                self.outcome = TunnelOutcome.CANCELED
                log.debug("Error after cancellation", error=str(e))
            else:
                self.error = e
                self.outcome = TunnelOutcome.FAILED
                log.error("Tunnel failed", error=str(e))
        finally:
            if self._process is not None and self._process.is_running():
                await self._process.stop(self.runtime.graceful_shutdown_timeout)

        if self.outcome is TunnelOutcome.CANCELED:
            log.info("Tunnel canceled")
        elif self.outcome is TunnelOutcome.SUCCEEDED:
            log.info("Tunnel exited")
        return self.result()

    async def _prepare_unless_canceled(self, cancel: asyncio.Event) -> bool:
        """Run ``prepare`` raced against cancellation. False if cancellation won."""
        preparing = asyncio.create_task(self.prepare())
        canceled = asyncio.create_task(cancel.wait())
        try:
            await asyncio.wait({preparing, canceled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            canceled.cancel()
            if not preparing.done():
                preparing.cancel()
                await asyncio.gather(preparing, return_exceptions=True)

        if preparing.cancelled():
            return False
        preparing.result()
        return not cancel.is_set()

    async def _supervise(self, process: ChildProcess, cancel: asyncio.Event) -> None:
        exited = asyncio.create_task(process.wait())
        canceled = asyncio.create_task(cancel.wait())
        try:
            await asyncio.wait({exited, canceled}, return_when=asyncio.FIRST_COMPLETED)
            if not exited.done():
                await process.stop(self.runtime.graceful_shutdown_timeout)
            self.returncode = await exited
        finally:
            canceled.cancel()
            if not exited.done():
                exited.cancel()

        if cancel.is_set():
            self.outcome = TunnelOutcome.CANCELED
        elif self.returncode == 0:
            self.outcome = TunnelOutcome.SUCCEEDED
        else:
            raise TunnelFailed(self.name, self.returncode, process.stderr)
