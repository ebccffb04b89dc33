"""Fold operation results into counts."""
from typing import Iterable

from ..domains.models import OperationResult, RepositoryTally, Summary


def fold(results: Iterable[OperationResult]) -> Summary:
    """Count results overall and per repository. Pure, no I/O."""
    summary = Summary()
    for result in results:
        tally = summary.per_repository.setdefault(result.repository, RepositoryTally())
        summary.total += 1
        if result.succeeded:
            summary.successful += 1
            tally.successful += 1
        elif result.failed:
            summary.failed += 1
            tally.failed += 1
        else:
            summary.skipped += 1
            tally.skipped += 1
    return summary
