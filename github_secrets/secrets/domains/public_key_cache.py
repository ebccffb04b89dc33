"""Per-batch cache of repository public keys."""
import logging
import threading
from typing import Dict

from .models import PublicKeyInfo, Repository
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class PublicKeyCache:
    """
    Resolve and memoize each repository's public key for one batch.

    Keys are never persisted across runs since GitHub may rotate them.
    Failed fetches are not cached, so a retry round fetches again.
    """

    def __init__(self, client, rate_limiter: RateLimiter):
        self._client = client
        self._rate_limiter = rate_limiter
        self._keys: Dict[Repository, PublicKeyInfo] = {}
        self._locks: Dict[Repository, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, repository: Repository) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(repository, threading.Lock())

    def get(self, repository: Repository) -> PublicKeyInfo:
        """
        Return the public key for repository, fetching it on first use.

        Raises:
            AuthError, NotFoundError, NetworkError: If the fetch fails
        """
        with self._lock_for(repository):
            cached = self._keys.get(repository)
            if cached is not None:
                logger.debug(f"Public key cache hit for {repository.path}")
                return cached

            logger.debug(f"Fetching public key for {repository.path}")
            key = self._rate_limiter.call(self._client.get_public_key, repository)
            self._keys[repository] = key
            return key

    def __contains__(self, repository) -> bool:
        return repository in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def clear(self) -> None:
        self._keys.clear()
