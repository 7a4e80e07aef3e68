"""Tunnels to network endpoints relayed through the bastion host."""

from ..common.exceptions import ConfigurationError
from ..common.runtime_config import RuntimeConfig
from ..config.models import Bastion, Connection
from .base import BaseTunnel
from .models import TunnelKind


class BastionTunnel(BaseTunnel):
    """Forwards a local port to a fixed host:port over gcloud compute ssh."""

    kind = TunnelKind.BASTION

    def __init__(
        self,
        bastion: Bastion,
        connection: Connection,
        env: dict[str, str] | None = None,
        runtime: RuntimeConfig | None = None,
    ):
        if not bastion.zone:
            raise ConfigurationError(f"Zone of bastion instance {bastion.name} is not resolved")
        super().__init__(connection.local_port, env=env, runtime=runtime)
        self.bastion = bastion
        self.connection = connection
        self.zone: str = bastion.zone

    @property
    def name(self) -> str:
        return f"{self.bastion.name}->{self.connection.label}"

    def build_command(self) -> list[str]:
        forward = (
            f"localhost:{self.connection.local_port}:"
            f"{self.connection.remote_host}:{self.connection.remote_port}"
        )
        return [
            self.runtime.gcloud_binary,
            "compute", "ssh", self.bastion.name,
            "--zone", self.zone,
            "--",
            "-L", forward,
            "-N",
        ]
