"""Common utilities and shared functionality."""

from .exceptions import (
    CloudCommandError,
    ConfigurationError,
    DevcliError,
    DuplicateLocalPort,
    InstanceDiscoveryError,
    NoRunningInstance,
    PortError,
    PortReclaimError,
    ProcessError,
    ProfileNotFoundError,
    RunAborted,
    ToolNotFoundError,
    TunnelError,
    TunnelFailed,
)
from .logging import get_logger, setup_logging
from .process import ChildProcess
from .runtime_config import RuntimeConfig
from .utils import (
    MAX_PORT,
    MIN_PORT,
    expand_path,
    first_line,
    validate_non_empty_string,
    validate_port,
)

__all__ = [
    # Process management
    "ChildProcess",
    "RuntimeConfig",
    # Exceptions
    "DevcliError",
    "ConfigurationError",
    "ProfileNotFoundError",
    "ToolNotFoundError",
    "CloudCommandError",
    "ProcessError",
    "PortError",
    "DuplicateLocalPort",
    "PortReclaimError",
    "RunAborted",
    "TunnelError",
    "InstanceDiscoveryError",
    "NoRunningInstance",
    "TunnelFailed",
    # Logging
    "get_logger",
    "setup_logging",
    # Utils
    "validate_port",
    "validate_non_empty_string",
    "first_line",
    "expand_path",
    "MIN_PORT",
    "MAX_PORT",
]
