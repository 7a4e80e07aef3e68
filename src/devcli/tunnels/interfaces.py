"""Protocol interfaces for tunnel collaborators."""

from __future__ import annotations

from typing import Protocol


class InstanceDiscovery(Protocol):
    """Protocol for locating running instances of a workload."""

    async def running_instances(self, namespace: str, app: str) -> list[str]:
        """Names of running instances labelled app=<app>, in query order."""
        ...
