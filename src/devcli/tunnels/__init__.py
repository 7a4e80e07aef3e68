"""Tunnel variants and their orchestration."""

from .base import BaseTunnel
from .bastion import BastionTunnel
from .interfaces import InstanceDiscovery
from .models import TunnelKind, TunnelOutcome, TunnelResult, summarize
from .orchestrator import TunnelOrchestrator
from .workload import KubectlInstanceDiscovery, WorkloadTunnel

__all__ = [
    "BaseTunnel",
    "BastionTunnel",
    "InstanceDiscovery",
    "KubectlInstanceDiscovery",
    "TunnelKind",
    "TunnelOrchestrator",
    "TunnelOutcome",
    "TunnelResult",
    "WorkloadTunnel",
    "summarize",
]
