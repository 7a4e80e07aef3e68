"""Utility functions for devcli."""

import os
from pathlib import Path

# Port range constants
MIN_PORT = 1
MAX_PORT = 65535


def validate_port(port: int, port_name: str = "Port") -> None:
    """Validate port number range.

    Args:
        port: Port number to validate
        port_name: Name of the port for error messages

    Raises:
        ValueError: If port is not in valid range (1-65535)
    """
    if not isinstance(port, int) or isinstance(port, bool) or not (MIN_PORT <= port <= MAX_PORT):
        raise ValueError(f"{port_name} must be between {MIN_PORT} and {MAX_PORT}")


def validate_non_empty_string(value: str, field_name: str) -> str:
    """Validate that a string is not empty or only whitespace.

    Args:
        value: String value to validate
        field_name: Name of the field for error messages

    Returns:
        Stripped string value

    Raises:
        ValueError: If string is empty or only whitespace
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def first_line(output: str) -> str:
    """Return the first non-blank line of command output, stripped."""
    for line in output.splitlines():
        if line.strip():
            return line.strip()
    return ""


def expand_path(path: str | os.PathLike[str]) -> Path:
    """Expand ``~`` and environment variables in a user supplied path."""
    return Path(os.path.expandvars(os.path.expanduser(str(path))))
