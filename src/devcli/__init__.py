"""devcli - concurrent development tunnels into cluster workloads and bastion hosts."""

from .common.exceptions import (
    ConfigurationError,
    DevcliError,
    DuplicateLocalPort,
    NoRunningInstance,
    PortReclaimError,
    RunAborted,
    TunnelFailed,
)
from .common.logging import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DevcliError",
    "DuplicateLocalPort",
    "NoRunningInstance",
    "PortReclaimError",
    "RunAborted",
    "TunnelFailed",
    "get_logger",
    "setup_logging",
    "__version__",
]
