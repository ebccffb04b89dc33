"""Existence check for secrets before they are written."""
import logging
from typing import Optional

from .models import Repository, SecretInfo
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class SecretStateProbe:
    """Ask GitHub whether a secret already exists in a repository."""

    def __init__(self, client, rate_limiter: RateLimiter):
        self._client = client
        self._rate_limiter = rate_limiter

    def exists(self, repository: Repository, key: str) -> Optional[SecretInfo]:
        """
        Returns:
            SecretInfo (with last update time) if the secret exists, else None

        Raises:
            AuthError, NetworkError: If the lookup fails
        """
        info = self._rate_limiter.call(self._client.get_secret_info, repository, key)
        if info is not None:
            logger.debug(f"Secret {key} exists in {repository.path} (updated {info.updated_at})")
        return info
