"""Cloud environment bootstrap run before any tunnel starts.

Every step is a short, sequential gcloud or kubectl invocation. All of
them receive the explicit credential environment and any failure is
fatal to the run.
"""

import subprocess

from .common.exceptions import CloudCommandError, ConfigurationError, ToolNotFoundError
from .common.logging import get_logger
from .common.runtime_config import RuntimeConfig
from .common.utils import first_line
from .config.models import ProxyProfile

logger = get_logger(__name__)


class CloudBootstrap:
    """Prepares gcloud and kubectl for the selected proxy profile."""

    def __init__(self, env: dict[str, str], runtime: RuntimeConfig | None = None):
        self.env = env
        self.runtime = runtime or RuntimeConfig()

    @property
    def gcloud(self) -> str:
        return self.runtime.gcloud_binary

    @property
    def kubectl(self) -> str:
        return self.runtime.kubectl_binary

    def _run(self, argv: list[str]) -> str:
        """Run a command to completion and return its stdout.

        Raises:
            ToolNotFoundError: If the executable does not exist
            CloudCommandError: If the command exits non-zero
        """
        logger.debug("Running command", command=" ".join(argv))
        try:
            completed = subprocess.run(
                argv,
                env=self.env,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(argv[0]) from e
        if completed.returncode != 0:
            raise CloudCommandError(argv, completed.returncode, completed.stderr)
        return completed.stdout

    def check_tools(self) -> str:
        """Verify gcloud and kubectl work, returning the gcloud version text.

        Raises:
            ToolNotFoundError: If either tool is missing or broken
        """
        try:
            version = self._run([self.gcloud, "version"])
        except CloudCommandError as e:
            raise ToolNotFoundError(self.gcloud) from e
        try:
            self._run([self.kubectl, "version", "--client"])
        except CloudCommandError as e:
            raise ToolNotFoundError(self.kubectl) from e
        logger.info("Using gcloud version", version=first_line(version))
        return version

    def discover_bastion_zone(self, bastion_name: str) -> str:
        output = self._run([
            self.gcloud, "compute", "instances", "list",
            "--filter", f"name={bastion_name}",
            "--format", "value(zone)",
        ])
        zone = first_line(output)
        if not zone:
            raise CloudCommandError(
                [self.gcloud, "compute", "instances", "list"],
                None,
                f"bastion instance {bastion_name} not found",
            )
        logger.info("Setting the zone of the bastion instance", bastion=bastion_name, zone=zone)
        return zone

    def set_project(self, project: str) -> None:
        if not project:
            raise ConfigurationError("Project is not set in the configuration file")
        logger.info("Setting the gcloud project", project=project)
        self._run([self.gcloud, "config", "set", "project", project])

    def select_default_cluster(self) -> str:
        cluster = first_line(self._run([
            self.gcloud, "container", "clusters", "list", "--format", "value(name)",
        ]))
        if not cluster:
            raise CloudCommandError([self.gcloud, "container", "clusters", "list"], None, "no clusters found")
        logger.info("Setting the default cluster", cluster=cluster)
        self._run([self.gcloud, "config", "set", "container/cluster", cluster])
        return cluster

    def select_default_region(self) -> str:
        region = first_line(self._run([
            self.gcloud, "container", "clusters", "list", "--format", "value(location)",
        ]))
        if not region:
            raise CloudCommandError([self.gcloud, "container", "clusters", "list"], None, "no cluster location found")
        logger.info("Setting the default cluster region", region=region)
        self._run([self.gcloud, "config", "set", "compute/region", region])
        return region

    def fetch_credentials(self, cluster: str) -> None:
        logger.info("Getting the credentials for the default cluster", cluster=cluster)
        self._run([self.gcloud, "container", "clusters", "get-credentials", cluster])

    def bootstrap(self, profile: ProxyProfile) -> ProxyProfile:
        """Run every step and return the profile with its bastion zone resolved."""
        self.check_tools()
        self.set_project(profile.cloud_project)

        if profile.bastion is not None and profile.bastion.connections and profile.bastion.zone is None:
            zone = self.discover_bastion_zone(profile.bastion.name)
            profile = profile.with_bastion_zone(zone)

        if profile.workloads:
            cluster = self.select_default_cluster()
            self.select_default_region()
            self.fetch_credentials(cluster)

        logger.info("Initialization complete", environment=profile.environment)
        return profile
