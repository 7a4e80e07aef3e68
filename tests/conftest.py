"""Shared pytest fixtures for devcli tests."""

import logging
import sys
from unittest.mock import Mock

import pytest
import structlog

from devcli.common.runtime_config import RuntimeConfig
from devcli.config.models import Bastion, Connection, ProxyProfile, Workload
from devcli.tunnels.base import BaseTunnel
from devcli.tunnels.models import TunnelKind


class FakeInspector:
    """In-memory host: a set of busy ports and the pids holding them."""

    def __init__(self, busy: dict[int, list[int]] | None = None):
        self.busy = dict(busy or {})
        self.killed: list[int] = []

    def is_port_in_use(self, port: int) -> bool:
        return port in self.busy

    def kill_port_owner(self, port: int, timeout: float = 3.0) -> list[int]:
        self.killed.append(port)
        return self.busy.pop(port, [])


class ScriptTunnel(BaseTunnel):
    """Tunnel whose forwarding process is a small Python script."""

    kind = TunnelKind.BASTION

    def __init__(self, code: str, local_port: int = 4000, **kwargs):
        super().__init__(local_port, **kwargs)
        self.code = code

    @property
    def name(self) -> str:
        return f"script:{self.local_port}"

    def build_command(self) -> list[str]:
        return [sys.executable, "-c", self.code]


class FakeDiscovery:
    """Instance discovery answering from a dict keyed by (namespace, app)."""

    def __init__(self, instances: dict[tuple[str, str], list[str]] | None = None):
        self.instances = instances or {}
        self.calls: list[tuple[str, str]] = []

    async def running_instances(self, namespace: str, app: str) -> list[str]:
        self.calls.append((namespace, app))
        return list(self.instances.get((namespace, app), []))


@pytest.fixture
def runtime():
    """Short timeouts so stop/kill paths finish fast."""
    return RuntimeConfig(graceful_shutdown_timeout=2.0, reclaim_timeout=1.0)


@pytest.fixture
def profile():
    """Profile with two workloads and two bastion connections."""
    return ProxyProfile(
        environment="staging",
        cloud_project="demo-staging",
        bastion=Bastion(
            name="bastion",
            connections=[
                Connection(local_port=5435, remote_host="10.0.0.5", remote_port=5432),
                Connection(local_port=6378, remote_host="10.0.0.6", remote_port=6379),
            ],
        ),
        workloads=[
            Workload(namespace="payments", app="api", local_port=8080, remote_port=8080),
            Workload(namespace="payments", app="worker", local_port=8081, remote_port=9000),
        ],
    )


@pytest.fixture
def fake_inspector():
    return FakeInspector()


@pytest.fixture
def fake_discovery():
    return FakeDiscovery()


@pytest.fixture
def sleeper_argv():
    """Command that stays up until terminated."""
    return [sys.executable, "-c", "import time; time.sleep(60)"]


@pytest.fixture
def config_file(tmp_path):
    """Configuration document in the shipped template shape."""
    path = tmp_path / "config.yaml"
    path.write_text(
        """\
environment: staging

cloud:
  kubeconfig:
  gcloudconfig:

proxies:
  - proxy:
    environment: staging
    cloud_project: demo-staging
    bastion:
      name: bastion
      connections:
        - local_port: 5435
          remote_host: 10.0.0.5
          remote_port: 5432
    workloads:
      - namespace: payments
        app: api
        local_port: 8080
        remote_port: 8080
  - proxy:
    environment: prod
    cloud_project: demo-prod
    bastion:
      name: bastion-prod
      connections:
        - local_port: 5435
          remote_host: 10.1.0.5
          remote_port: 5432
"""
    )
    return path


@pytest.fixture
def mock_logger(monkeypatch):
    """Mock the tunnel logger to capture log calls.

    Returns:
        Mock: Mocked logger
    """
    mock_log = Mock()
    mock_log.bind.return_value = mock_log
    monkeypatch.setattr("devcli.tunnels.base.logger", mock_log)
    return mock_log


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams that only lived for one test."""
    yield
    structlog.reset_defaults()
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
