"""XDG path resolution for the config file and .env file."""
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

APP_DIR_NAME = "github-secrets"
CONFIG_FILE_NAME = "config.yml"
ENV_FILE_NAME = ".env"


def default_config_dir() -> Path:
    """~/.config/github-secrets"""
    return Path.home() / ".config" / APP_DIR_NAME


def xdg_config_dir() -> Optional[Path]:
    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / APP_DIR_NAME
    return None


def default_config_path() -> Path:
    return default_config_dir() / CONFIG_FILE_NAME


def config_candidates() -> List[Path]:
    """Config locations after CONFIG_PATH and the stored preference."""
    candidates = [Path.cwd() / CONFIG_FILE_NAME]
    xdg_dir = xdg_config_dir()
    if xdg_dir is not None:
        candidates.append(xdg_dir / CONFIG_FILE_NAME)
    candidates.append(default_config_path())
    return candidates


def env_file_candidates() -> List[Path]:
    candidates = [Path.cwd() / ENV_FILE_NAME, default_config_dir() / ENV_FILE_NAME]
    xdg_dir = xdg_config_dir()
    if xdg_dir is not None:
        candidates.append(xdg_dir / ENV_FILE_NAME)
    return candidates


def load_env_file() -> Optional[Path]:
    """
    Load the first .env file found into the environment.

    Priority order:
    1. ./.env
    2. ~/.config/github-secrets/.env
    3. $XDG_CONFIG_HOME/github-secrets/.env

    Variables already set in the environment are not overridden.

    Returns:
        Path of the loaded file, or None if no .env file exists
    """
    for candidate in env_file_candidates():
        if candidate.is_file():
            load_dotenv(candidate, override=False)
            logger.debug(f"Loaded environment from {candidate}")
            return candidate
    logger.debug("No .env file found")
    return None
