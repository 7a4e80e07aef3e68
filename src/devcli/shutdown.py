"""Two-stage shutdown driven by operator interrupts."""

import asyncio
import os
import signal
from collections.abc import Callable
from enum import Enum
from typing import Any

from .common.logging import get_logger
from .tunnels.models import TunnelResult
from .tunnels.orchestrator import TunnelOrchestrator

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGQUIT)
FORCED_EXIT_CODE = 1


class ShutdownState(str, Enum):
    """Shutdown controller state enumeration."""

    RUNNING = "running"
    GRACEFUL = "graceful_shutdown_requested"
    FORCED = "forced_shutdown"


class ShutdownController:
    """Governs a run of the orchestrator against interrupt signals.

    The first interrupt cancels every tunnel and lets the orchestrator
    finish its join. A second interrupt before that join completes kills
    the forwarding processes and exits the interpreter immediately.
    """

    def __init__(
        self,
        orchestrator: TunnelOrchestrator,
        exit_func: Callable[[int], Any] = os._exit,
        signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
    ):
        self.orchestrator = orchestrator
        self.state = ShutdownState.RUNNING
        self._exit = exit_func
        self._signals = signals
        self._installed: list[signal.Signals] = []
        self._previous_handlers: dict[signal.Signals, Any] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def interrupted(self) -> bool:
        return self.state is not ShutdownState.RUNNING

    def handle_signal(self, signum: int | None = None) -> None:
        """Advance the state machine by one interrupt."""
        sig_name = signal.Signals(signum).name if signum else "interrupt"
        if self.state is ShutdownState.RUNNING:
            self.state = ShutdownState.GRACEFUL
            logger.warning("Interrupted. Exiting gracefully...", signal=sig_name)
            self.orchestrator.cancel()
        elif self.state is ShutdownState.GRACEFUL:
            self.state = ShutdownState.FORCED
            logger.warning("Interrupted again. Force exiting immediately...", signal=sig_name)
            self.orchestrator.kill_all()
            self._exit(FORCED_EXIT_CODE)

    def install(self) -> None:
        """Route shutdown signals to ``handle_signal`` on the running loop."""
        self._loop = asyncio.get_running_loop()
        for sig in self._signals:
            try:
                self._loop.add_signal_handler(sig, self.handle_signal, sig)
            except NotImplementedError:
                self._previous_handlers[sig] = signal.signal(
                    sig, lambda signum, _frame: self._loop.call_soon_threadsafe(self.handle_signal, signum)
                )
            self._installed.append(sig)

    def uninstall(self) -> None:
        for sig in self._installed:
            if sig in self._previous_handlers:
                signal.signal(sig, self._previous_handlers.pop(sig))
            elif self._loop is not None:
                self._loop.remove_signal_handler(sig)
        self._installed.clear()

    async def run(self) -> list[TunnelResult]:
        """Run the orchestrator to its join under signal supervision."""
        self.install()
        try:
            return await self.orchestrator.run()
        finally:
            self.uninstall()
