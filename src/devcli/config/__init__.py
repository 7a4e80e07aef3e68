"""Configuration document, profiles and credential paths."""

from .loader import default_config_path, load_config, resolve_config_path, select_profile
from .models import (
    Bastion,
    CloudConfig,
    Connection,
    CredentialPaths,
    DevConfig,
    ProxyProfile,
    Workload,
)

__all__ = [
    "Bastion",
    "CloudConfig",
    "Connection",
    "CredentialPaths",
    "DevConfig",
    "ProxyProfile",
    "Workload",
    "default_config_path",
    "load_config",
    "resolve_config_path",
    "select_profile",
]
