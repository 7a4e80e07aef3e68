"""Resolution of local ports already held by other processes."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

import click

from ..common.exceptions import RunAborted
from ..common.logging import get_logger
from .registry import PortAllocation, PortRegistry

logger = get_logger(__name__)


class ConflictAction(str, Enum):
    """Operator choices for an occupied port, keyed by their prompt letter"""

    RECLAIM_ALL = "a"
    RECLAIM_ONE = "y"
    SKIP = "n"
    ABORT = "e"


class PortReclaimer(Protocol):
    def kill_port_owner(self, port: int, timeout: float = ...) -> list[int]:
        ...


PROMPT_HELP = """\
Do you want to kill the process using this port?
Warning: If you kill this process, you will not be able to access the application running on this port.
a - kill all processes if an existing process is using ports in the configuration file
y - kill the process using this port
n - do not kill the process using this port
e - exit the program"""


def parse_action(answer: str) -> ConflictAction | None:
    """Map a typed answer to an action, None if it is not one of a/y/n/e."""
    try:
        return ConflictAction(answer.strip().lower())
    except ValueError:
        return None


class InteractivePrompt:
    """Asks the operator what to do with an occupied port."""

    def __init__(
        self,
        read: Callable[[], str] | None = None,
        echo: Callable[[str], None] = click.echo,
    ):
        self._read = read or self._read_terminal
        self._echo = echo

    @staticmethod
    def _read_terminal() -> str:
        return click.prompt(
            "Please choose one of the action: (a/y/n/e)",
            default="",
            show_default=False,
            prompt_suffix=" ",
        )

    def __call__(self, port: int) -> ConflictAction:
        self._echo(f"Error: port {port} is being used by another process.")
        self._echo(PROMPT_HELP)
        while True:
            try:
                answer = self._read()
            except (click.Abort, EOFError):
                return ConflictAction.ABORT
            action = parse_action(answer)
            if action is not None:
                return action
            self._echo("Invalid input. retry...")


@dataclass
class ConflictReport:
    """What the resolver did with each occupied port."""

    reclaimed: dict[int, list[int]] = field(default_factory=dict)
    skipped: list[int] = field(default_factory=list)


class ConflictResolver:
    """Clears host-level port conflicts before any tunnel starts.

    Each occupied port starts undetermined and gets an action from the
    prompt. Choosing reclaim-all makes every later occupied port in the run
    reclaimed without asking.
    """

    def __init__(
        self,
        registry: PortRegistry,
        reclaimer: PortReclaimer,
        prompt: Callable[[int], ConflictAction] | None = None,
        reclaim_timeout: float = 3.0,
    ):
        self.registry = registry
        self.reclaimer = reclaimer
        self.prompt = prompt or InteractivePrompt()
        self.reclaim_timeout = reclaim_timeout
        self._reclaim_all = False

    @property
    def reclaim_all(self) -> bool:
        return self._reclaim_all

    def decide(self, port: int) -> ConflictAction:
        if self._reclaim_all:
            return ConflictAction.RECLAIM_ALL
        action = self.prompt(port)
        if action is ConflictAction.RECLAIM_ALL:
            self._reclaim_all = True
        return action

    def resolve(self, allocation: PortAllocation) -> ConflictReport:
        """Walk the allocation in declaration order and act on occupied ports.

        Raises:
            RunAborted: If the operator chooses to exit
            PortReclaimError: If an occupying process cannot be killed
        """
        report = ConflictReport()
        for port in self.registry.occupied_ports(allocation):
            logger.warning("Port is being used by another process", port=port)
            action = self.decide(port)

            if action is ConflictAction.ABORT:
                logger.error("Exiting at operator request", port=port)
                raise RunAborted(port)
            if action is ConflictAction.SKIP:
                logger.warning("Leaving occupied port untouched, its tunnel will likely fail", port=port)
                report.skipped.append(port)
                continue

            report.reclaimed[port] = self.reclaimer.kill_port_owner(port, timeout=self.reclaim_timeout)
        return report
