"""Configuration models using Pydantic for type safety and validation."""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..common.exceptions import ConfigurationError
from ..common.utils import expand_path


class Connection(BaseModel):
    """One endpoint relayed through the bastion host."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    local_port: int = Field(ge=1, le=65535, description="Local port to bind")
    remote_host: str = Field(min_length=1, description="Host reachable from the bastion")
    remote_port: int = Field(ge=1, le=65535, description="Port on the remote host")

    @property
    def label(self) -> str:
        return f"{self.remote_host}:{self.remote_port}"


class Bastion(BaseModel):
    """Intermediary host used for raw network tunnels.

    The zone is discovered at runtime and assigned exactly once through
    ``with_zone`` before any bastion tunnel starts.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, description="Bastion instance name")
    zone: str | None = Field(default=None, description="Compute zone, resolved at runtime")
    connections: list[Connection] = Field(
        default_factory=list, description="Relayed endpoints in declaration order"
    )

    def with_zone(self, zone: str) -> "Bastion":
        """Create new bastion instance with the resolved zone (immutable pattern).

        Raises:
            ConfigurationError: If the zone is empty or was already resolved
        """
        zone = zone.strip()
        if not zone:
            raise ConfigurationError(f"Empty zone for bastion instance {self.name}")
        if self.zone is not None:
            raise ConfigurationError(
                f"Zone of bastion instance {self.name} is already set to {self.zone}"
            )
        return self.model_copy(update={"zone": zone})


class Workload(BaseModel):
    """Cluster application forwarded through the forwarding agent."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    namespace: str = Field(min_length=1, description="Kubernetes namespace")
    app: str = Field(min_length=1, description="Value of the app= label")
    local_port: int = Field(ge=1, le=65535, description="Local port to bind")
    remote_port: int = Field(ge=1, le=65535, description="Container port")

    @property
    def label(self) -> str:
        return f"{self.namespace}/{self.app}"


class ProxyProfile(BaseModel):
    """Set of tunnels for one environment."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    environment: str = Field(min_length=1, description="Environment name, e.g. staging")
    cloud_project: str = Field(default="", description="Cloud project to activate")
    bastion: Bastion | None = Field(default=None, description="Bastion relay")
    workloads: list[Workload] = Field(default_factory=list, description="Forwarded workloads")

    @model_validator(mode="before")
    @classmethod
    def unwrap_proxy_key(cls, data: Any) -> Any:
        """Accept both flat profiles and the template's ``- proxy:`` entries."""
        if isinstance(data, dict) and "proxy" in data:
            data = dict(data)
            nested = data.pop("proxy")
            if isinstance(nested, dict):
                data = {**nested, **data}
            elif nested is not None:
                raise ValueError("'proxy' must be a mapping")
        return data

    @property
    def connections(self) -> list[Connection]:
        return list(self.bastion.connections) if self.bastion else []

    def with_bastion_zone(self, zone: str) -> "ProxyProfile":
        """Create new profile whose bastion carries the resolved zone."""
        if self.bastion is None:
            raise ConfigurationError(
                f"Proxy configuration for environment {self.environment} has no bastion"
            )
        return self.model_copy(update={"bastion": self.bastion.with_zone(zone)})


class CloudConfig(BaseModel):
    """Global credential file locations."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    kubeconfig: str | None = Field(default=None, description="Path to the kubeconfig file")
    gcloudconfig: str | None = Field(default=None, description="Path to the gcloud config directory")


class DevConfig(BaseModel):
    """Top level configuration document."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    environment: str | None = Field(default=None, description="Default environment")
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    proxies: list[ProxyProfile] = Field(default_factory=list)

    @field_validator("environment")
    @classmethod
    def empty_environment_is_unset(cls, v: str | None) -> str | None:
        return v or None


class CredentialPaths(BaseModel):
    """Credential locations handed to every child process.

    Child processes receive these through an explicit environment built
    by ``child_env``; devcli never writes them into ``os.environ``.
    """

    model_config = ConfigDict(frozen=True)

    kubeconfig: Path
    gcloud_config: Path

    @classmethod
    def from_cloud_config(cls, cloud: CloudConfig, home: Path | None = None) -> "CredentialPaths":
        """Resolve configured paths, falling back to the tools' defaults.

        Raises:
            ConfigurationError: If an explicitly configured path does not exist
        """
        home = home or Path.home()

        if cloud.kubeconfig:
            kubeconfig = expand_path(cloud.kubeconfig)
            if not kubeconfig.exists():
                raise ConfigurationError(f"kubeconfig file does not exist: {kubeconfig}")
        else:
            kubeconfig = home / ".kube" / "config"

        if cloud.gcloudconfig:
            gcloud_config = expand_path(cloud.gcloudconfig)
            if not gcloud_config.exists():
                raise ConfigurationError(f"gcloud config path does not exist: {gcloud_config}")
        else:
            gcloud_config = home / ".config" / "gcloud"

        return cls(kubeconfig=kubeconfig, gcloud_config=gcloud_config)

    def child_env(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Build the environment for gcloud and kubectl invocations."""
        env = dict(os.environ if base is None else base)
        env["KUBECONFIG"] = str(self.kubeconfig)
        env["CLOUDSDK_CONFIG"] = str(self.gcloud_config)
        env["USE_GKE_GCLOUD_AUTH_PLUGIN"] = "True"
        return env
