"""Domain models for secret updates."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


@dataclass(frozen=True)
class Repository:
    """A target repository. Identity is (owner, name); alias is display only."""
    owner: str
    name: str
    alias: Optional[str] = field(default=None, compare=False)

    @property
    def path(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def display_name(self) -> str:
        """Return "alias (owner/name)" when an alias is set, else "owner/name"."""
        if self.alias:
            return f"{self.alias} ({self.path})"
        return self.path

    def __str__(self) -> str:
        return self.display_name


@dataclass
class SecretPair:
    """A secret key and its plaintext value.

    The value is held in a bytearray so it can be zeroed in place once the
    batch no longer needs it.
    """
    key: str
    value: bytearray = field(repr=False)

    def __post_init__(self):
        self.key = self.key.strip()
        if isinstance(self.value, str):
            self.value = bytearray(self.value.encode("utf-8"))
        elif not isinstance(self.value, bytearray):
            self.value = bytearray(self.value)

    def wipe(self) -> None:
        for i in range(len(self.value)):
            self.value[i] = 0
        self.value = bytearray()


@dataclass(frozen=True)
class PublicKeyInfo:
    """Repository public key used to seal secrets."""
    key_id: str
    key: bytes = field(repr=False)


@dataclass(frozen=True)
class EncryptedSecret:
    """Sealed secret ready for submission. Ciphertext is base64 text."""
    key_id: str
    ciphertext: str = field(repr=False)


@dataclass(frozen=True)
class SecretInfo:
    """Metadata of a secret that already exists on the provider."""
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ErrorKind(str, Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network"
    ENCRYPTION = "encryption"
    CANCELLED = "cancelled"


class Outcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class OperationState(str, Enum):
    PENDING = "pending"
    PROBING = "probing"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    ENCRYPTING = "encrypting"
    SUBMITTING = "submitting"
    DONE = "done"


@dataclass
class Operation:
    """One (repository, secret) unit of work, retained until the batch resolves."""
    repository: Repository
    secret: SecretPair
    state: OperationState = OperationState.PENDING

    @property
    def identity(self):
        return (self.repository, self.secret.key)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single (repository, secret key) operation."""
    repository: Repository
    secret_key: str
    outcome: Outcome
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    previously_existed: bool = False
    previous_update_time: Optional[datetime] = None

    @property
    def identity(self):
        return (self.repository, self.secret_key)

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.FAILED


@dataclass
class RepositoryTally:
    successful: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class Summary:
    """Counts over a set of operation results."""
    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    per_repository: Dict[Repository, RepositoryTally] = field(default_factory=dict)
