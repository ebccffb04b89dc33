"""Orchestrate secret updates across repositories.

Each (repository, secret) pair becomes one Operation that moves through:

    PENDING -> PROBING -> [AWAITING_CONFIRMATION] -> ENCRYPTING -> SUBMITTING -> DONE

Operations run one after another so confirmation prompts appear in the
order repositories and secrets were enumerated. A failing operation is
recorded and the batch moves on; only an AuthError stops the batch.
"""
import logging
import threading
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..domains.encryption import encrypt_secret
from ..domains.errors import (
    AuthError,
    CancelledError,
    EncryptionError,
    GitHubSecretsError,
    describe_error,
)
from ..domains.models import (
    Operation,
    OperationResult,
    OperationState,
    Outcome,
    Repository,
    SecretPair,
)
from ..domains.probe import SecretStateProbe
from ..domains.public_key_cache import PublicKeyCache
from ..domains.rate_limiter import RateLimiter
from ..domains.validation import validate_secret_key, validate_secret_value

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"
    ABORT = "abort"

    @classmethod
    def coerce(cls, answer) -> "Decision":
        if isinstance(answer, Decision):
            return answer
        return cls.APPROVE if answer else cls.DECLINE


class ConfirmationSource:
    """Decides whether an existing secret may be overwritten."""

    def confirm(self, repository: Repository, key: str, previous_update_time) -> Decision:
        raise NotImplementedError


class AlwaysApprove(ConfirmationSource):
    def confirm(self, repository, key, previous_update_time):
        return Decision.APPROVE


class AlwaysDecline(ConfirmationSource):
    def confirm(self, repository, key, previous_update_time):
        return Decision.DECLINE


class UpdateOrchestrator:
    """
    Owns all per-batch state: the rate budget, the public-key cache, the
    retained operations (for retry) and the latest result per pair.

    Args:
        client: Provider client (see GitHubClient)
        confirmation: Asked before overwriting an existing secret
        rate_limiter: Shared budget. Defaults to the client's limiter, else a fresh
            one that is attached to the client so it sees every response
        on_result: Called with each OperationResult as it is produced
    """

    def __init__(
        self,
        client,
        confirmation: Optional[ConfirmationSource] = None,
        rate_limiter: Optional[RateLimiter] = None,
        on_result: Optional[Callable[[OperationResult], None]] = None,
    ):
        self._client = client
        self.confirmation = confirmation or AlwaysDecline()
        client_limiter = getattr(client, "rate_limiter", None)
        if rate_limiter is None:
            rate_limiter = client_limiter or RateLimiter()
        elif client_limiter is not None and client_limiter is not rate_limiter:
            raise ValueError("The client and the orchestrator must share one RateLimiter")
        if client_limiter is None:
            # The client reports every response to the limiter the calls are paced by
            client.rate_limiter = rate_limiter
        self.rate_limiter = rate_limiter
        self.public_keys = PublicKeyCache(client, self.rate_limiter)
        self.probe = SecretStateProbe(client, self.rate_limiter)
        self._on_result = on_result
        self._operations: Dict[Tuple[Repository, str], Operation] = {}
        self._latest: Dict[Tuple[Repository, str], OperationResult] = {}
        self._cancelled = threading.Event()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def results(self) -> List[OperationResult]:
        """Latest result per pair, in enumeration order."""
        return [self._latest[identity] for identity in self._operations if identity in self._latest]

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Resolve every operation that has not started yet as cancelled."""
        if not self._cancelled.is_set():
            logger.info("Cancelling remaining operations")
        self._cancelled.set()

    def reset_cancellation(self) -> None:
        self._cancelled.clear()

    def plan(self, repositories: Iterable[Repository], secrets: Iterable[SecretPair]) -> List[Operation]:
        """
        Expand repositories x secrets into operations.

        Repositories are de-duplicated by (owner, name). Secrets are
        de-duplicated by key, case-insensitively since GitHub treats names
        that way; a later entry replaces an earlier one.
        """
        unique_repositories = list(dict.fromkeys(repositories))
        unique_secrets: Dict[str, SecretPair] = {}
        for secret in secrets:
            folded = secret.key.upper()
            unique_secrets.pop(folded, None)
            unique_secrets[folded] = secret

        operations = []
        for repository in unique_repositories:
            for secret in unique_secrets.values():
                operation = Operation(repository=repository, secret=secret)
                self._operations[operation.identity] = operation
                operations.append(operation)
        logger.debug(
            f"Planned {len(operations)} operation(s): "
            f"{len(unique_repositories)} repository(ies) x {len(unique_secrets)} secret(s)"
        )
        return operations

    def run(self, repositories: Iterable[Repository], secrets: Iterable[SecretPair]) -> List[OperationResult]:
        """Plan and run a batch. Raises AuthError if the token is rejected."""
        return self.run_operations(self.plan(repositories, secrets))

    def run_operations(self, operations: Sequence[Operation]) -> List[OperationResult]:
        """Run operations in order, producing exactly one result for each."""
        return [self.process(operation) for operation in operations]

    def operation_for(self, result: OperationResult) -> Operation:
        return self._operations[result.identity]

    def process(self, operation: Operation) -> OperationResult:
        repository = operation.repository
        secret = operation.secret
        self._transition(operation, OperationState.PENDING)

        if self.cancelled:
            return self._finish(operation, self._failed(operation, CancelledError("Cancelled before start")))

        previously_existed = False
        previous_update_time = None
        try:
            validate_secret_key(secret.key)
            validate_secret_value(secret.value)

            self._transition(operation, OperationState.PROBING)
            existing = self.probe.exists(repository, secret.key)

            if existing is not None:
                previously_existed = True
                previous_update_time = existing.updated_at
                self._transition(operation, OperationState.AWAITING_CONFIRMATION)
                decision = Decision.coerce(
                    self.confirmation.confirm(repository, secret.key, previous_update_time)
                )
                if decision is Decision.ABORT:
                    self.cancel()
                    raise CancelledError("Cancelled at overwrite confirmation")
                if decision is Decision.DECLINE:
                    logger.info(f"Skipping secret '{secret.key}' in {repository.display_name}")
                    return self._finish(operation, OperationResult(
                        repository=repository,
                        secret_key=secret.key,
                        outcome=Outcome.SKIPPED,
                        message="Declined to overwrite existing secret",
                        previously_existed=True,
                        previous_update_time=previous_update_time,
                    ))

            self._transition(operation, OperationState.ENCRYPTING)
            public_key = self.public_keys.get(repository)
            encrypted = encrypt_secret(secret.value, public_key)

            self._transition(operation, OperationState.SUBMITTING)
            self.rate_limiter.call(self._client.put_secret, repository, secret.key, encrypted)

        except AuthError:
            operation.state = OperationState.DONE
            logger.error("Authentication failed, aborting batch")
            raise
        except EncryptionError as e:
            logger.error(f"Encryption failed for '{secret.key}' in {repository.path}: {describe_error(e)}")
            result = self._failed(
                operation, e, previously_existed, previous_update_time,
                message="Internal error while encrypting the secret",
            )
        except GitHubSecretsError as e:
            result = self._failed(operation, e, previously_existed, previous_update_time)
        else:
            result = OperationResult(
                repository=repository,
                secret_key=secret.key,
                outcome=Outcome.SUCCESS,
                previously_existed=previously_existed,
                previous_update_time=previous_update_time,
            )
        return self._finish(operation, result)

    def close(self) -> None:
        """Drop secret plaintext and cached keys once the batch is resolved."""
        wiped = set()
        for operation in self._operations.values():
            if id(operation.secret) not in wiped:
                operation.secret.wipe()
                wiped.add(id(operation.secret))
        self.public_keys.clear()

    def _transition(self, operation: Operation, state: OperationState) -> None:
        logger.debug(f"{operation.repository.path} {operation.secret.key}: {operation.state.value} -> {state.value}")
        operation.state = state

    def _failed(self, operation, error, previously_existed=False, previous_update_time=None, message=None):
        return OperationResult(
            repository=operation.repository,
            secret_key=operation.secret.key,
            outcome=Outcome.FAILED,
            error_kind=error.kind,
            message=message or describe_error(error),
            previously_existed=previously_existed,
            previous_update_time=previous_update_time,
        )

    def _finish(self, operation: Operation, result: OperationResult) -> OperationResult:
        operation.state = OperationState.DONE
        self._latest[operation.identity] = result
        if result.failed:
            logger.debug(f"'{result.secret_key}' in {result.repository.path} failed: {result.message}")
        if self._on_result is not None:
            self._on_result(result)
        return result
