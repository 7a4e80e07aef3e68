"""Custom exceptions for devcli."""


class DevcliError(Exception):
    """Base exception for all devcli errors."""
    pass


class ConfigurationError(DevcliError):
    """Raised when the configuration document or a profile is invalid."""
    pass


class ProfileNotFoundError(ConfigurationError):
    """Raised when no proxy profile matches the requested environment."""

    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(f"Proxy configuration for environment '{environment}' is not found")


class ToolNotFoundError(DevcliError):
    """Raised when a required executable is missing or not working."""

    def __init__(self, tool: str):
        self.tool = tool
        super().__init__(f"{tool} is not installed or not in the system's PATH")


class CloudCommandError(DevcliError):
    """Raised when a cloud bootstrap command exits with an error."""

    def __init__(self, command: list[str], returncode: int | None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"Command '{' '.join(command)}' failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class ProcessError(DevcliError):
    """Raised when a child process cannot be spawned."""
    pass


class PortError(DevcliError):
    """Base exception for local port problems."""

    def __init__(self, port: int, message: str):
        self.port = port
        super().__init__(message)


class DuplicateLocalPort(PortError):
    """Raised when two owners in one profile claim the same local port."""

    def __init__(self, port: int):
        super().__init__(port, f"Duplicate local port {port} in the configuration file")


class PortReclaimError(PortError):
    """Raised when the process bound to a local port cannot be terminated."""

    def __init__(self, port: int, reason: str):
        self.reason = reason
        super().__init__(port, f"Could not reclaim local port {port}: {reason}")


class RunAborted(DevcliError):
    """Raised when the operator aborts the run at a port conflict."""

    def __init__(self, port: int):
        self.port = port
        super().__init__(f"Run aborted by operator at occupied port {port}")


class TunnelError(DevcliError):
    """Base exception for failures local to one tunnel."""
    pass


class InstanceDiscoveryError(TunnelError):
    """Raised when the running-instance query itself fails."""

    def __init__(self, namespace: str, app: str, stderr: str = ""):
        self.namespace = namespace
        self.app = app
        self.stderr = stderr.strip()
        message = f"Error getting pod name for app {app} in namespace {namespace}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class NoRunningInstance(TunnelError):
    """Raised when a workload has no instance in the running phase."""

    def __init__(self, namespace: str, app: str):
        self.namespace = namespace
        self.app = app
        super().__init__(
            f"No running pod found for app {app} in namespace {namespace} "
            f"with label app={app}"
        )


class TunnelFailed(TunnelError):
    """Raised when a forwarding process exits non-zero without cancellation."""

    def __init__(self, name: str, returncode: int | None, stderr: str = ""):
        self.name = name
        self.returncode = returncode
        self.stderr = stderr.strip()
        message = f"Tunnel {name} exited with code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)
