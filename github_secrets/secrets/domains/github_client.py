"""GitHub Actions secrets API client."""
import logging
from datetime import datetime
from typing import Optional

import requests

from .encryption import decode_public_key
from .errors import (
    AuthError,
    GitHubSecretsError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    ValidationError,
)
from .models import EncryptedSecret, PublicKeyInfo, Repository, SecretInfo
from .rate_limiter import RateLimiter, is_rate_limited

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"
USER_AGENT = "github-secrets"
DEFAULT_TIMEOUT = 30

PUBLIC_KEY_PATH = "/repos/{owner}/{repo}/actions/secrets/public-key"
SECRET_PATH = "/repos/{owner}/{repo}/actions/secrets/{secret_name}"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp such as 2020-01-10T10:59:22Z."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable timestamp from GitHub: {value}")
        return None


def _provider_message(response: requests.Response) -> str:
    # Only the short "message" field is surfaced; bodies may echo request data
    try:
        payload = response.json()
    except ValueError:
        return response.reason or ""
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return response.reason or ""


def _json_object(response: requests.Response, action: str) -> dict:
    """Decode a success body that must be a JSON object. The body is never echoed."""
    try:
        payload = response.json()
    except ValueError as e:
        raise NetworkError(
            f"{action}: unexpected response from GitHub (not JSON)", status_code=response.status_code
        ) from e
    if not isinstance(payload, dict):
        raise NetworkError(f"{action}: unexpected response from GitHub", status_code=response.status_code)
    return payload


class GitHubClient:
    """
    Thin wrapper around the GitHub REST API for Actions secrets.

    Every response is reported to the rate limiter. Callers acquire permits
    themselves (see RateLimiter.call) before invoking these methods.
    """

    def __init__(
        self,
        token: str,
        rate_limiter: Optional[RateLimiter] = None,
        base_url: str = API_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        })

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self._timeout)
        try:
            response = self._session.request(method, self.base_url + path, **kwargs)
        except requests.Timeout as e:
            raise NetworkError(f"Request to GitHub timed out ({method} {path})") from e
        except requests.RequestException as e:
            raise NetworkError(f"Could not reach GitHub ({method} {path})") from e

        message = _provider_message(response) if response.status_code >= 400 else ""
        if self.rate_limiter is not None:
            self.rate_limiter.observe(response.headers, response.status_code, message)

        if is_rate_limited(response.status_code, response.headers, message):
            raise RateLimitedError(
                f"GitHub rate limit exceeded: {message}",
                status_code=response.status_code,
                reset_at=self.rate_limiter.reset_at if self.rate_limiter else None,
            )
        if response.status_code == 401:
            raise AuthError(
                "GitHub rejected the token (invalid or expired). Check GITHUB_TOKEN",
                status_code=401,
            )
        return response

    def _raise_for_status(self, response: requests.Response, action: str) -> None:
        status = response.status_code
        if status < 400:
            return
        message = _provider_message(response)
        detail = f"{action}: {message}" if message else action
        if status == 403:
            raise PermissionDeniedError(detail, status_code=status)
        if status == 404:
            raise NotFoundError(detail, status_code=status)
        if status in (400, 422):
            raise ValidationError(detail, status_code=status)
        if status >= 500:
            raise NetworkError(detail, status_code=status)
        raise GitHubSecretsError(detail, status_code=status)

    def get_public_key(self, repository: Repository) -> PublicKeyInfo:
        """Fetch the repository's current public key for sealing secrets."""
        path = PUBLIC_KEY_PATH.format(owner=repository.owner, repo=repository.name)
        response = self._request("GET", path)
        action = f"Failed to get public key for {repository.path}"
        self._raise_for_status(response, action)
        payload = _json_object(response, action)
        key_id, key = payload.get("key_id"), payload.get("key")
        if not isinstance(key_id, str) or not isinstance(key, str):
            raise NetworkError(f"{action}: unexpected response from GitHub", status_code=response.status_code)
        return decode_public_key(key_id, key)

    def get_secret_info(self, repository: Repository, secret_name: str) -> Optional[SecretInfo]:
        """
        Look up an existing secret.

        Returns:
            SecretInfo with timestamps, or None if the secret does not exist
        """
        path = SECRET_PATH.format(owner=repository.owner, repo=repository.name, secret_name=secret_name)
        response = self._request("GET", path)
        if response.status_code == 404:
            return None
        action = f"Failed to check secret {secret_name} in {repository.path}"
        self._raise_for_status(response, action)
        payload = _json_object(response, action)
        name = payload.get("name")
        return SecretInfo(
            name=name if isinstance(name, str) else secret_name,
            created_at=parse_timestamp(payload.get("created_at")),
            updated_at=parse_timestamp(payload.get("updated_at")),
        )

    def put_secret(self, repository: Repository, secret_name: str, encrypted: EncryptedSecret) -> bool:
        """
        Create or update a secret.

        Returns:
            True if the secret was created (201), False if updated (204)
        """
        path = SECRET_PATH.format(owner=repository.owner, repo=repository.name, secret_name=secret_name)
        body = {"encrypted_value": encrypted.ciphertext, "key_id": encrypted.key_id}
        response = self._request("PUT", path, json=body)
        self._raise_for_status(response, f"Failed to update secret {secret_name} in {repository.path}")
        return response.status_code == 201
