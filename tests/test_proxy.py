"""Tests for the proxy run sequence."""

import asyncio
from unittest.mock import Mock, patch

import pytest

from conftest import FakeDiscovery, FakeInspector
from devcli.common.exceptions import (
    ConfigurationError,
    DuplicateLocalPort,
    ProfileNotFoundError,
    RunAborted,
)
from devcli.ports.conflicts import ConflictAction
from devcli.proxy import ProxyRunner
from devcli.tunnels.models import TunnelKind, TunnelOutcome, TunnelResult


def _bootstrap_factory(zone="europe-west1-b"):
    """Factory whose bootstrap resolves the bastion zone without any cloud calls."""
    factory = Mock()
    factory.return_value.bootstrap.side_effect = lambda profile: profile.with_bastion_zone(zone)
    return factory


def _runner(config_file, tmp_path, **kwargs):
    kwargs.setdefault("inspector", FakeInspector())
    kwargs.setdefault("bootstrap_factory", _bootstrap_factory())
    kwargs.setdefault("discovery", FakeDiscovery())
    return ProxyRunner(conf=str(config_file), home=tmp_path, **kwargs)


class TestPrepare:
    def test_default_environment(self, config_file, tmp_path):
        factory = _bootstrap_factory()
        profile, env = _runner(config_file, tmp_path, bootstrap_factory=factory).prepare()

        assert profile.environment == "staging"
        assert profile.bastion.zone == "europe-west1-b"
        assert env["KUBECONFIG"] == str(tmp_path / ".kube" / "config")
        assert env["CLOUDSDK_CONFIG"] == str(tmp_path / ".config" / "gcloud")
        assert env["USE_GKE_GCLOUD_AUTH_PLUGIN"] == "True"
        factory.assert_called_once()
        assert factory.call_args.args[0] is env

    def test_environment_override(self, config_file, tmp_path):
        profile, _ = _runner(config_file, tmp_path, environment="prod").prepare()
        assert profile.bastion.name == "bastion-prod"

    def test_unknown_environment(self, config_file, tmp_path):
        with pytest.raises(ProfileNotFoundError):
            _runner(config_file, tmp_path, environment="qa").prepare()

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="does not exist"):
            _runner(tmp_path / "missing.yaml", tmp_path).prepare()

    def test_default_config_is_created_empty(self, tmp_path):
        runner = ProxyRunner(home=tmp_path, inspector=FakeInspector(), bootstrap_factory=_bootstrap_factory())

        with pytest.raises(ConfigurationError, match="Environment is not set"):
            runner.prepare()
        assert (tmp_path / ".devcli" / "config.yaml").read_text() == ""

    def test_duplicate_port_stops_before_bootstrap(self, tmp_path):
        conf = tmp_path / "dup.yaml"
        conf.write_text(
            "environment: dev\n"
            "proxies:\n"
            "  - environment: dev\n"
            "    cloud_project: demo\n"
            "    bastion:\n"
            "      name: bastion\n"
            "      connections:\n"
            "        - {local_port: 8080, remote_host: 10.0.0.5, remote_port: 5432}\n"
            "    workloads:\n"
            "      - {namespace: ns, app: api, local_port: 8080, remote_port: 80}\n"
        )
        factory = _bootstrap_factory()

        with pytest.raises(DuplicateLocalPort):
            _runner(conf, tmp_path, bootstrap_factory=factory).prepare()
        factory.assert_not_called()

    def test_abort_at_prompt_stops_before_bootstrap(self, config_file, tmp_path):
        factory = _bootstrap_factory()
        runner = _runner(
            config_file,
            tmp_path,
            inspector=FakeInspector(busy={8080: [4242]}),
            prompt=Mock(return_value=ConflictAction.ABORT),
            bootstrap_factory=factory,
        )

        with pytest.raises(RunAborted):
            runner.prepare()
        factory.assert_not_called()

    def test_reclaimed_port_before_bootstrap(self, config_file, tmp_path):
        inspector = FakeInspector(busy={5435: [4242]})
        runner = _runner(
            config_file,
            tmp_path,
            inspector=inspector,
            prompt=Mock(return_value=ConflictAction.RECLAIM_ONE),
        )

        runner.prepare()

        assert inspector.killed == [5435]

    def test_missing_explicit_kubeconfig(self, config_file, tmp_path):
        text = config_file.read_text().replace("  kubeconfig:\n", "  kubeconfig: /nonexistent/kube\n")
        config_file.write_text(text)

        with pytest.raises(ConfigurationError, match="kubeconfig"):
            _runner(config_file, tmp_path).prepare()


class TestRun:
    def test_run_returns_zero_after_join(self, config_file, tmp_path):
        results = [
            TunnelResult(name="payments/api", kind=TunnelKind.WORKLOAD, local_port=8080,
                         outcome=TunnelOutcome.FAILED, error="No running pod found"),
        ]
        runner = _runner(config_file, tmp_path)

        async def supervise(profile, env):
            return results

        with patch.object(runner, "supervise", side_effect=supervise) as mock_supervise:
            assert runner.run() == 0
        assert mock_supervise.call_args.args[0].environment == "staging"

    @pytest.mark.asyncio
    async def test_supervise_builds_every_tunnel(self, config_file, tmp_path, runtime):
        runner = _runner(config_file, tmp_path, runtime=runtime)
        profile, env = runner.prepare()

        with patch("devcli.proxy.ShutdownController") as mock_controller:
            future = asyncio.get_running_loop().create_future()
            future.set_result([])
            mock_controller.return_value.run.return_value = future
            await runner.supervise(profile, env)

        orchestrator = mock_controller.call_args.args[0]
        assert [t.name for t in orchestrator] == ["payments/api", "bastion->10.0.0.5:5432"]
        assert all(t.env is env for t in orchestrator)
