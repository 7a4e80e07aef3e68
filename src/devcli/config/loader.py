"""Loading the YAML configuration document and selecting a profile."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from ..common.exceptions import ConfigurationError, ProfileNotFoundError
from ..common.logging import get_logger
from ..common.utils import expand_path
from .models import DevConfig, ProxyProfile

logger = get_logger(__name__)

CONFIG_DIR_NAME = ".devcli"
CONFIG_FILE_NAME = "config.yaml"


def default_config_path(home: Path | None = None) -> Path:
    """Location used when no configuration file is given."""
    return (home or Path.home()) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def resolve_config_path(conf: str | None, home: Path | None = None) -> Path:
    """Return the configuration file to read.

    An explicit path must exist. The default path is created empty
    (together with its directory) on first use.

    Raises:
        ConfigurationError: If the explicit file is missing or the default
            file cannot be created
    """
    if conf:
        path = expand_path(conf)
        logger.info("Using configuration file", path=str(path))
        if not path.is_file():
            raise ConfigurationError(f"Configuration file does not exist at given path: {path}")
        return path

    path = default_config_path(home)
    if not path.exists():
        try:
            path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
            path.write_text("")
        except OSError as e:
            raise ConfigurationError(f"Error creating default configuration file {path}: {e}") from e
        logger.info("Created empty default configuration file", path=str(path))
    return path


def load_config(path: Path) -> DevConfig:
    """Read and validate the configuration document.

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated
    """
    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing configuration file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    try:
        return DevConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration file {path}:\n{e}") from e


def select_profile(config: DevConfig, environment: str | None = None) -> ProxyProfile:
    """Pick the profile for the requested environment.

    ``environment`` overrides the document's default. The first profile
    with a matching environment wins.

    Raises:
        ConfigurationError: If no environment is requested at all
        ProfileNotFoundError: If no profile matches
    """
    wanted = (environment or "").strip() or config.environment
    if not wanted:
        raise ConfigurationError(
            "Environment is not set in the configuration file or passed as a command line argument"
        )

    for profile in config.proxies:
        if profile.environment == wanted:
            logger.info("Setting up environment", environment=wanted)
            return profile

    raise ProfileNotFoundError(wanted)
