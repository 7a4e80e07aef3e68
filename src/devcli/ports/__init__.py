"""Local port registration and conflict resolution."""

from .conflicts import (
    ConflictAction,
    ConflictReport,
    ConflictResolver,
    InteractivePrompt,
    parse_action,
)
from .host import HostPortInspector
from .registry import PortAllocation, PortRegistry, allocate_ports

__all__ = [
    "ConflictAction",
    "ConflictReport",
    "ConflictResolver",
    "HostPortInspector",
    "InteractivePrompt",
    "PortAllocation",
    "PortRegistry",
    "allocate_ports",
    "parse_action",
]
