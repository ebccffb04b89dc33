"""Resolve the GitHub token used for API calls."""
import logging
import os
from typing import Any, Dict, Optional

from .config_loader import get_gcp_project_id, get_gcp_token_secret
from .errors import AuthError, ValidationError
from .gcp_client import GCPSecretClient
from .validation import validate_token

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Per-process cache: {source -> token}
_token_cache: Dict[str, str] = {}


def resolve_token(config: Optional[Dict[str, Any]] = None) -> str:
    """
    Find the GitHub token.

    Behavior:
        - GITHUB_TOKEN environment variable first (a loaded .env counts)
        - Falls back to Google Secret Manager when token.gcp_secret is
          configured, using GCP_PROJECT or gcp.project_id
        - Caches the token in memory for this process only

    Raises:
        AuthError: If no token is available or it is malformed
    """
    config = config or {}

    env_value = os.getenv(TOKEN_ENV_VAR)
    if env_value:
        return _checked(None, env_value)

    secret_name = get_gcp_token_secret(config)
    if secret_name:
        project_id = GCPSecretClient.resolve_project_id(get_gcp_project_id(config))
        if not project_id:
            raise AuthError(
                f"token.gcp_secret is set to '{secret_name}' but no GCP project is configured. "
                f"Set GCP_PROJECT or gcp.project_id"
            )
        cache_key = f"gcp:{project_id}:{secret_name}"
        if cache_key in _token_cache:
            return _token_cache[cache_key]

        service_account_path = config.get("gcp", {}).get("service_account_path")
        client = GCPSecretClient(service_account_path=service_account_path)
        value = client.fetch_secret(secret_name, project_id)
        if value:
            logger.info(f"Using GitHub token from GCP secret '{secret_name}'")
            return _checked(cache_key, value)
        raise AuthError(f"GitHub token secret '{secret_name}' could not be read from GCP project {project_id}")

    raise AuthError(
        f"{TOKEN_ENV_VAR} not found. Set it in the environment or in a .env file "
        f"(./.env or ~/.config/github-secrets/.env), or configure token.gcp_secret"
    )


def _checked(cache_key: Optional[str], token: str) -> str:
    token = token.strip()
    try:
        validate_token(token)
    except ValidationError as e:
        raise AuthError(f"Invalid GitHub token: {e}") from e
    if cache_key is not None:
        _token_cache[cache_key] = token
    return token


def clear_token_cache() -> None:
    _token_cache.clear()
