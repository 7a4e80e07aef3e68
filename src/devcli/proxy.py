"""End-to-end proxy run: configuration, ports, bootstrap, tunnels."""

import asyncio
from collections.abc import Callable
from pathlib import Path

from .cloud import CloudBootstrap
from .common.logging import get_logger
from .common.runtime_config import RuntimeConfig
from .config.loader import load_config, resolve_config_path, select_profile
from .config.models import CredentialPaths, ProxyProfile
from .ports.conflicts import ConflictAction, ConflictResolver
from .ports.host import HostPortInspector
from .ports.registry import PortRegistry
from .shutdown import ShutdownController
from .tunnels.interfaces import InstanceDiscovery
from .tunnels.models import TunnelResult
from .tunnels.orchestrator import TunnelOrchestrator

logger = get_logger(__name__)


class ProxyRunner:
    """Runs every stage of ``devcli proxy`` in order.

    Configuration, port validation, conflict resolution and the cloud
    bootstrap all finish before the first tunnel is created. Errors from
    these stages propagate as ``DevcliError`` subclasses.
    """

    def __init__(
        self,
        conf: str | None = None,
        environment: str | None = None,
        runtime: RuntimeConfig | None = None,
        inspector: HostPortInspector | None = None,
        prompt: Callable[[int], ConflictAction] | None = None,
        bootstrap_factory: Callable[[dict[str, str], RuntimeConfig], CloudBootstrap] = CloudBootstrap,
        discovery: InstanceDiscovery | None = None,
        home: Path | None = None,
    ):
        self.conf = conf
        self.environment = environment
        self.runtime = runtime or RuntimeConfig()
        self.inspector = inspector or HostPortInspector()
        self.prompt = prompt
        self.bootstrap_factory = bootstrap_factory
        self.discovery = discovery
        self.home = home

    def prepare(self) -> tuple[ProxyProfile, dict[str, str]]:
        """Everything that must finish before tunnels exist.

        Returns:
            The profile with its bastion zone resolved and the child
            process environment
        """
        config_path = resolve_config_path(self.conf, home=self.home)
        config = load_config(config_path)
        profile = select_profile(config, self.environment)
        credentials = CredentialPaths.from_cloud_config(config.cloud, home=self.home)
        logger.info(
            "Using credentials",
            kubeconfig=str(credentials.kubeconfig),
            gcloud_config=str(credentials.gcloud_config),
        )

        registry = PortRegistry(self.inspector)
        allocation = registry.register(profile)
        resolver = ConflictResolver(
            registry,
            self.inspector,
            prompt=self.prompt,
            reclaim_timeout=self.runtime.reclaim_timeout,
        )
        resolver.resolve(allocation)

        env = credentials.child_env()

        logger.info("Setting up proxy for environment", environment=profile.environment)
        profile = self.bootstrap_factory(env, self.runtime).bootstrap(profile)
        return profile, env

    async def supervise(self, profile: ProxyProfile, env: dict[str, str]) -> list[TunnelResult]:
        orchestrator = TunnelOrchestrator.from_profile(
            profile, env=env, runtime=self.runtime, discovery=self.discovery
        )
        controller = ShutdownController(orchestrator)
        return await controller.run()

    def run(self) -> int:
        """Run the proxy until all tunnels end. Returns the process exit code."""
        profile, env = self.prepare()
        results = asyncio.run(self.supervise(profile, env))
        for result in results:
            logger.info(
                "Tunnel result",
                tunnel=result.name,
                port=result.local_port,
                outcome=result.outcome.value,
                error=result.error,
            )
        return 0
