"""Local port allocation for a proxy profile."""

from types import MappingProxyType
from typing import Protocol

from ..common.exceptions import DuplicateLocalPort
from ..common.logging import get_logger
from ..config.models import Connection, ProxyProfile, Workload

logger = get_logger(__name__)

PortOwner = Workload | Connection


class PortInspector(Protocol):
    """Host capability the registry probes ports with."""

    def is_port_in_use(self, port: int) -> bool:
        """Check whether a local process is bound to the port."""
        ...


class PortAllocation:
    """Read-only mapping of local port to the workload or connection owning it.

    Iteration follows declaration order: workloads first, then bastion
    connections.
    """

    def __init__(self, owners: dict[int, PortOwner]):
        self._owners = MappingProxyType(dict(owners))

    @property
    def ports(self) -> frozenset[int]:
        return frozenset(self._owners)

    def owner(self, port: int) -> PortOwner:
        return self._owners[port]

    def __iter__(self):
        return iter(self._owners)

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, port: object) -> bool:
        return port in self._owners


def allocate_ports(profile: ProxyProfile) -> PortAllocation:
    """Claim every local port of the profile, failing on the first duplicate.

    Raises:
        DuplicateLocalPort: On the first port claimed twice, scanning
            workloads before connections, each in declaration order
    """
    owners: dict[int, PortOwner] = {}
    claimants: list[PortOwner] = [*profile.workloads, *profile.connections]
    for claimant in claimants:
        if claimant.local_port in owners:
            logger.error(
                "Duplicate local port in the configuration file",
                port=claimant.local_port,
                first_owner=owners[claimant.local_port].label,
                second_owner=claimant.label,
            )
            raise DuplicateLocalPort(claimant.local_port)
        owners[claimant.local_port] = claimant
    return PortAllocation(owners)


class PortRegistry:
    """Validates a profile's local ports and probes the host for each."""

    def __init__(self, inspector: PortInspector):
        self.inspector = inspector

    def register(self, profile: ProxyProfile) -> PortAllocation:
        allocation = allocate_ports(profile)
        logger.debug("Local ports registered", ports=sorted(allocation.ports))
        return allocation

    def is_port_free(self, port: int) -> bool:
        return not self.inspector.is_port_in_use(port)

    def occupied_ports(self, allocation: PortAllocation) -> list[int]:
        """Ports of the allocation currently bound on the host, in declaration order."""
        return [port for port in allocation if not self.is_port_free(port)]
