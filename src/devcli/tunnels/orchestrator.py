"""Concurrent supervision of every tunnel in a run."""

import asyncio
from collections.abc import Iterator

from ..common.logging import get_logger
from ..common.runtime_config import RuntimeConfig
from ..config.models import ProxyProfile
from .bastion import BastionTunnel
from .base import BaseTunnel
from .interfaces import InstanceDiscovery
from .models import TunnelOutcome, TunnelResult, summarize
from .workload import KubectlInstanceDiscovery, WorkloadTunnel

logger = get_logger(__name__)


class TunnelOrchestrator:
    """Runs all tunnels of a profile side by side until each has finished.

    All tunnels share one cancellation event. A tunnel failing never
    touches its siblings; ``run`` returns only once every tunnel reached a
    terminal outcome.
    """

    def __init__(self, tunnels: list[BaseTunnel]):
        self.tunnels = list(tunnels)
        self.cancel_event = asyncio.Event()
        self._results: list[TunnelResult] | None = None

    @classmethod
    def from_profile(
        cls,
        profile: ProxyProfile,
        env: dict[str, str] | None = None,
        runtime: RuntimeConfig | None = None,
        discovery: InstanceDiscovery | None = None,
    ) -> "TunnelOrchestrator":
        """One tunnel per workload, then one per bastion connection, in declaration order."""
        runtime = runtime or RuntimeConfig()
        discovery = discovery or KubectlInstanceDiscovery(env=env, kubectl=runtime.kubectl_binary)

        tunnels: list[BaseTunnel] = [
            WorkloadTunnel(workload, discovery, env=env, runtime=runtime)
            for workload in profile.workloads
        ]
        if profile.bastion is not None:
            tunnels.extend(
                BastionTunnel(profile.bastion, connection, env=env, runtime=runtime)
                for connection in profile.bastion.connections
            )
        return cls(tunnels)

    @property
    def results(self) -> list[TunnelResult]:
        if self._results is None:
            raise RuntimeError("Orchestrator has not finished yet")
        return self._results

    def cancel(self) -> None:
        """Ask every tunnel to stop its forwarding process."""
        if not self.cancel_event.is_set():
            logger.info("Canceling all tunnels", tunnels=len(self.tunnels))
            self.cancel_event.set()

    def kill_all(self) -> None:
        """SIGKILL every forwarding process immediately."""
        for tunnel in self.tunnels:
            tunnel.kill()

    async def run(self) -> list[TunnelResult]:
        """Start every tunnel and wait for all of them to finish."""
        logger.info("Starting the port-forwarding proxy", tunnels=len(self.tunnels))
        tasks = [
            asyncio.create_task(tunnel.run(self.cancel_event), name=tunnel.name)
            for tunnel in self.tunnels
        ]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: list[TunnelResult] = []
        for tunnel, outcome in zip(self.tunnels, outcomes):
            if isinstance(outcome, TunnelResult):
                results.append(outcome)
                continue
            # run() only lets unexpected errors escape
            logger.error("Tunnel crashed", tunnel=tunnel.name, error=repr(outcome))
            tunnel.outcome = TunnelOutcome.FAILED
            results.append(
                tunnel.result().model_copy(update={"error": repr(outcome)})
            )

        self._results = results
        counts = summarize(results)
        logger.info(
            "All tunnels finished",
            **{outcome.value: count for outcome, count in counts.items() if count},
        )
        return results

    def __len__(self) -> int:
        return len(self.tunnels)

    def __iter__(self) -> Iterator[BaseTunnel]:
        return iter(self.tunnels)
