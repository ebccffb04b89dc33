"""Configuration loader for github-secrets."""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError, ValidationError
from .models import Repository
from .paths import config_candidates, default_config_path
from .preferences import CONFIG_PATH_KEY, get_preference
from .validation import validate_repo_name, validate_repo_owner

logger = logging.getLogger(__name__)

DEFAULT_MAX_WAIT_SECONDS = 900
DEFAULT_MAX_RETRY_ROUNDS = 3


def _get_config_path() -> str:
    """
    Find the config file.

    Priority order:
    1. CONFIG_PATH environment variable (if the file exists)
    2. User preference (stored in ~/.config/github-secrets/preferences.json)
    3. ./config.yml
    4. $XDG_CONFIG_HOME/github-secrets/config.yml
    5. ~/.config/github-secrets/config.yml

    Returns:
        Absolute path to config file

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    env_path = os.getenv("CONFIG_PATH")
    if env_path:
        path = Path(env_path).expanduser()
        if path.is_file():
            logger.info(f"Using config from CONFIG_PATH: {path}")
            return str(path)
        logger.warning(f"CONFIG_PATH points to a missing file: {path}")

    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    for candidate in config_candidates():
        if candidate.is_file():
            logger.info(f"Using config file: {candidate}")
            return str(candidate)

    default_config = default_config_path()
    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   github-secrets config set-path /path/to/your/config.yml\n\n"
        "3. Run interactive setup:\n"
        "   github-secrets config init\n"
    )


def _parse_repository(entry: Any, position: int) -> Repository:
    if not isinstance(entry, dict):
        raise ConfigError(f"Repository #{position} must be a mapping with 'owner' and 'name'")
    owner = str(entry.get("owner") or "")
    name = str(entry.get("name") or "")
    try:
        validate_repo_owner(owner)
    except ValidationError as e:
        raise ConfigError(f"Invalid owner in repository #{position}: {e}") from e
    try:
        validate_repo_name(name)
    except ValidationError as e:
        raise ConfigError(f"Invalid repository name in repository #{position}: {e}") from e
    alias = entry.get("alias")
    return Repository(owner=owner.strip(), name=name.strip(), alias=str(alias) if alias else None)


def _validate(config: Any, config_path: str) -> Dict[str, Any]:
    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")
    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must be a YAML mapping")

    repositories = config.get("repositories") or []
    single = config.get("repository")
    if not isinstance(repositories, list):
        raise ConfigError("'repositories' must be a list")
    if not repositories and single:
        repositories = [single]
    if not repositories:
        raise ConfigError(
            f"No repositories found in config at {config_path}\n"
            f"Required format:\n"
            f"repositories:\n"
            f"  - owner: your-user-or-org\n"
            f"    name: your-repo\n"
            f"    alias: Optional display name"
        )
    config["repositories"] = repositories
    config.pop("repository", None)
    for position, entry in enumerate(repositories, start=1):
        _parse_repository(entry, position)

    for section in ("token", "gcp", "rate_limit", "retry"):
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"'{section}' section must be a mapping")

    max_wait = config.get("rate_limit", {}).get("max_wait_seconds", DEFAULT_MAX_WAIT_SECONDS)
    if not isinstance(max_wait, (int, float)) or max_wait < 0:
        raise ConfigError("'rate_limit.max_wait_seconds' must be a non-negative number")

    max_rounds = config.get("retry", {}).get("max_rounds", DEFAULT_MAX_RETRY_ROUNDS)
    if not isinstance(max_rounds, int) or max_rounds < 0:
        raise ConfigError("'retry.max_rounds' must be a non-negative integer")

    return config


def read_config(config_path: str) -> Dict[str, Any]:
    """Load and validate a specific YAML config file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    config = _validate(config, config_path)
    config["_path"] = config_path
    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Configured repositories: {len(config['repositories'])}")
    return config


def load_config() -> Dict[str, Any]:
    """
    Locate, load and validate the configuration.

    Returns:
        Dict with keys:
        - repositories: list of {owner, name, alias} mappings
        - token, gcp, rate_limit, retry: optional sections
        - _path: where the config was loaded from

    Raises:
        FileNotFoundError: If no config file exists
        ConfigError: If the config file is invalid
    """
    return read_config(_get_config_path())


def get_repositories(config: Dict[str, Any]) -> List[Repository]:
    return [
        _parse_repository(entry, position)
        for position, entry in enumerate(config.get("repositories", []), start=1)
    ]


def get_max_wait(config: Dict[str, Any]) -> float:
    return float(config.get("rate_limit", {}).get("max_wait_seconds", DEFAULT_MAX_WAIT_SECONDS))


def get_max_retry_rounds(config: Dict[str, Any]) -> int:
    return int(config.get("retry", {}).get("max_rounds", DEFAULT_MAX_RETRY_ROUNDS))


def get_gcp_token_secret(config: Dict[str, Any]) -> Optional[str]:
    return config.get("token", {}).get("gcp_secret")


def get_gcp_project_id(config: Dict[str, Any]) -> Optional[str]:
    return config.get("gcp", {}).get("project_id")


def add_repository(config: Dict[str, Any], repository: Repository) -> bool:
    """Append repository unless already configured. Returns True if added."""
    if repository in get_repositories(config):
        return False
    entry = {"owner": repository.owner, "name": repository.name}
    if repository.alias:
        entry["alias"] = repository.alias
    config.setdefault("repositories", []).append(entry)
    return True


def remove_repository(config: Dict[str, Any], repository: Repository) -> bool:
    """Remove repository by (owner, name). Returns True if it was present."""
    remaining = [
        entry for entry, configured in zip(config.get("repositories", []), get_repositories(config))
        if configured != repository
    ]
    removed = len(remaining) != len(config.get("repositories", []))
    if removed and not remaining:
        raise ConfigError("Cannot remove the last configured repository")
    config["repositories"] = remaining
    return removed


def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> str:
    """Write config back as YAML. Returns the path written."""
    path = config_path or config.get("_path") or str(default_config_path())
    data = {key: value for key, value in config.items() if not key.startswith("_")}
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info(f"Configuration saved to {path}")
    return path
