"""Tunnel outcome models using Pydantic."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TunnelKind(str, Enum):
    """Tunnel kind enumeration."""

    WORKLOAD = "workload"
    BASTION = "bastion"


class TunnelOutcome(str, Enum):
    """Tunnel lifecycle state enumeration."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (TunnelOutcome.SUCCEEDED, TunnelOutcome.FAILED, TunnelOutcome.CANCELED)


class TunnelResult(BaseModel):
    """Final report of one tunnel, read by the orchestrator after the join."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, description="Human readable tunnel name")
    kind: TunnelKind
    local_port: int = Field(ge=1, le=65535)
    outcome: TunnelOutcome
    error: str | None = Field(default=None, description="Failure message, only for failed tunnels")
    returncode: int | None = Field(default=None, description="Exit code of the forwarding process")
    finished_at: datetime = Field(default_factory=datetime.now)


def summarize(results: list[TunnelResult]) -> dict[TunnelOutcome, int]:
    """Count results per outcome, every outcome present."""
    counts = {outcome: 0 for outcome in TunnelOutcome}
    for result in results:
        counts[result.outcome] += 1
    return counts
