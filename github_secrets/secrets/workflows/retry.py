"""Bounded retry rounds over the failed part of a batch."""
import logging
from typing import List, Sequence

from ..domains.models import OperationResult
from .orchestrator import UpdateOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 3


class RetryCoordinator:
    """
    Re-run failed operations through the orchestrator.

    Each round replays the original (repository, key, value) through the
    same state machine as the first attempt, so existing secrets are probed
    and confirmed again. Only the latest failures are retried: pass the
    results of the previous round (or orchestrator.results) each time.
    """

    def __init__(self, orchestrator: UpdateOrchestrator, max_rounds: int = DEFAULT_MAX_ROUNDS):
        self._orchestrator = orchestrator
        self.max_rounds = max_rounds
        self.rounds = 0

    @staticmethod
    def failures(results: Sequence[OperationResult]) -> List[OperationResult]:
        return [result for result in results if result.failed]

    def can_retry(self, results: Sequence[OperationResult]) -> bool:
        return bool(self.failures(results)) and self.rounds < self.max_rounds

    def retry(self, previous_results: Sequence[OperationResult]) -> List[OperationResult]:
        """
        Resubmit the failed operations among previous_results.

        Returns:
            One new result per retried operation; empty if nothing failed or
            the round limit has been reached
        """
        failed = self.failures(previous_results)
        if not failed:
            return []
        if self.rounds >= self.max_rounds:
            logger.warning(f"Retry limit of {self.max_rounds} round(s) reached, not retrying")
            return []

        self.rounds += 1
        logger.info(f"Retry round {self.rounds}: {len(failed)} operation(s)")
        operations = [self._orchestrator.operation_for(result) for result in failed]
        self._orchestrator.reset_cancellation()
        return self._orchestrator.run_operations(operations)
