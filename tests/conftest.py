"""Shared fixtures: an in-memory GitHub double and scripted confirmations."""
import base64
from datetime import datetime, timezone

import pytest
from nacl.public import PrivateKey, SealedBox

from github_secrets.secrets.domains.models import PublicKeyInfo, Repository, SecretInfo
from github_secrets.secrets.domains.rate_limiter import RateLimiter
from github_secrets.secrets.workflows.orchestrator import ConfirmationSource, Decision


class FakeGitHubClient:
    """In-memory stand-in for GitHubClient that records every call."""

    def __init__(self):
        self.private_keys = {}
        self.existing = {}
        self.stored = {}
        self.calls = []
        self.public_key_errors = {}
        self.secret_info_errors = {}
        self.put_errors = {}
        self.closed = False

    def private_key(self, repository):
        return self.private_keys.setdefault(repository, PrivateKey.generate())

    def add_existing(self, repository, name, updated_at=None):
        updated_at = updated_at or datetime(2024, 1, 10, 10, 59, 22, tzinfo=timezone.utc)
        self.existing[(repository, name)] = SecretInfo(name=name, updated_at=updated_at)

    @staticmethod
    def _maybe_raise(errors, key):
        pending = errors.get(key)
        if pending:
            raise pending.pop(0)

    def get_public_key(self, repository):
        self.calls.append(("get_public_key", repository.path))
        self._maybe_raise(self.public_key_errors, repository)
        return PublicKeyInfo(
            key_id=f"key-{repository.name}",
            key=bytes(self.private_key(repository).public_key),
        )

    def get_secret_info(self, repository, name):
        self.calls.append(("get_secret_info", repository.path, name))
        self._maybe_raise(self.secret_info_errors, (repository, name))
        return self.existing.get((repository, name))

    def put_secret(self, repository, name, encrypted):
        self.calls.append(("put_secret", repository.path, name))
        self._maybe_raise(self.put_errors, (repository, name))
        created = (repository, name) not in self.existing
        self.stored[(repository, name)] = encrypted
        self.existing[(repository, name)] = SecretInfo(name=name, updated_at=datetime.now(timezone.utc))
        return created

    def close(self):
        self.closed = True

    def decrypt(self, repository, name):
        encrypted = self.stored[(repository, name)]
        return SealedBox(self.private_key(repository)).decrypt(base64.b64decode(encrypted.ciphertext))

    def count(self, method):
        return sum(1 for call in self.calls if call[0] == method)


class ScriptedConfirmation(ConfirmationSource):
    """Returns queued answers and records what it was asked."""

    def __init__(self, *answers, default=Decision.DECLINE):
        self.answers = list(answers)
        self.default = default
        self.asked = []

    def confirm(self, repository, key, previous_update_time):
        self.asked.append((repository.path, key, previous_update_time))
        if self.answers:
            return self.answers.pop(0)
        return self.default


@pytest.fixture
def fake_client():
    return FakeGitHubClient()


@pytest.fixture
def scripted_confirmation():
    return ScriptedConfirmation


@pytest.fixture
def rate_limiter():
    return RateLimiter(sleep=lambda seconds: None)


@pytest.fixture
def repo_a():
    return Repository(owner="octo", name="app", alias="App")


@pytest.fixture
def repo_b():
    return Repository(owner="octo", name="api")
