"""Tunnels into cluster workloads through kubectl port-forward."""

import asyncio

from ..common.exceptions import InstanceDiscoveryError, NoRunningInstance
from ..common.logging import get_logger
from ..common.runtime_config import RuntimeConfig
from ..config.models import Workload
from .base import BaseTunnel
from .interfaces import InstanceDiscovery
from .models import TunnelKind

logger = get_logger(__name__)

RUNNING_PODS_JSONPATH = "jsonpath={.items[?(@.status.phase=='Running')].metadata.name}"


class KubectlInstanceDiscovery:
    """Finds running pods by their app label with kubectl."""

    def __init__(self, env: dict[str, str] | None = None, kubectl: str = "kubectl"):
        self.env = env
        self.kubectl = kubectl

    def build_command(self, namespace: str, app: str) -> list[str]:
        return [
            self.kubectl, "get", "pods",
            "-n", namespace,
            "-l", f"app={app}",
            "-o", RUNNING_PODS_JSONPATH,
        ]

    async def running_instances(self, namespace: str, app: str) -> list[str]:
        """Names of running pods labelled app=<app>.

        Raises:
            InstanceDiscoveryError: If kubectl cannot be run or exits non-zero
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(namespace, app),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                start_new_session=True,
            )
        except OSError as e:
            raise InstanceDiscoveryError(namespace, app, str(e)) from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
            raise
        if process.returncode != 0:
            raise InstanceDiscoveryError(namespace, app, stderr.decode(errors="replace"))
        return stdout.decode(errors="replace").split()


class WorkloadTunnel(BaseTunnel):
    """Forwards a local port to the first running instance of a workload."""

    kind = TunnelKind.WORKLOAD

    def __init__(
        self,
        workload: Workload,
        discovery: InstanceDiscovery,
        env: dict[str, str] | None = None,
        runtime: RuntimeConfig | None = None,
    ):
        super().__init__(workload.local_port, env=env, runtime=runtime)
        self.workload = workload
        self.discovery = discovery
        self.instance: str | None = None

    @property
    def name(self) -> str:
        return self.workload.label

    async def prepare(self) -> None:
        """Select the first running instance.

        Raises:
            NoRunningInstance: If no instance is in the running phase
        """
        logger.info("Getting the first pod for workload", namespace=self.workload.namespace, app=self.workload.app)
        instances = await self.discovery.running_instances(self.workload.namespace, self.workload.app)
        if not instances:
            raise NoRunningInstance(self.workload.namespace, self.workload.app)
        self.instance = instances[0]
        logger.info(
            "Got the first pod for workload",
            namespace=self.workload.namespace,
            app=self.workload.app,
            pod=self.instance,
        )

    def build_command(self) -> list[str]:
        if self.instance is None:
            raise RuntimeError(f"No instance selected for workload {self.name}")
        return [
            self.runtime.kubectl_binary,
            "port-forward",
            f"--namespace={self.workload.namespace}",
            self.instance,
            f"{self.workload.local_port}:{self.workload.remote_port}",
        ]
