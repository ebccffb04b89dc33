"""Interactive terminal prompts: repository selection, secret entry, confirmations."""
import getpass
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from github_secrets.secrets.domains.errors import ValidationError
from github_secrets.secrets.domains.models import Repository, SecretPair
from github_secrets.secrets.domains.validation import validate_secret_key, validate_secret_value
from github_secrets.secrets.workflows.orchestrator import ConfirmationSource, Decision

logger = logging.getLogger(__name__)


def format_date(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a timestamp relative to now, e.g. "3 days ago"."""
    if value is None:
        return "unknown"
    now = now or datetime.now(timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    seconds = int((now - value).total_seconds())
    if seconds >= 86400:
        return f"{seconds // 86400} days ago"
    if seconds >= 3600:
        return f"{seconds // 3600} hours ago"
    if seconds >= 60:
        return f"{seconds // 60} minutes ago"
    return "just now"


def _ask_yes_no(question: str) -> bool:
    response = input(question).strip().lower()
    return response in ("y", "yes")


class TerminalConfirmation(ConfirmationSource):
    """Ask on the terminal before overwriting an existing secret."""

    def confirm(self, repository: Repository, key: str, previous_update_time) -> Decision:
        print(f"\nWarning: Secret '{key}' already exists in {repository.display_name}", end="")
        if previous_update_time is not None:
            print(f" (last updated: {format_date(previous_update_time)})", end="")
        print(".")
        try:
            response = input("Overwrite? (y/N, a = abort remaining): ").strip().lower()
        except EOFError:
            # stdin closed or not interactive
            print()
            logger.warning("Input closed at overwrite confirmation, cancelling remaining operations")
            return Decision.ABORT
        if response in ("a", "abort"):
            return Decision.ABORT
        if response in ("y", "yes"):
            return Decision.APPROVE
        return Decision.DECLINE


def confirm_retry(failed_count: int) -> bool:
    if not sys.stdin.isatty():
        return False
    return _ask_yes_no(f"\nWould you like to retry the {failed_count} failed operation(s)? (y/N): ")


def select_repositories(
    repositories: Sequence[Repository],
    preselected: Optional[Sequence[str]] = None,
) -> List[Repository]:
    """
    Let the user pick one or more repositories from a numbered list.

    Accepts comma-separated numbers and ranges ("1,3-4"), "all", or an
    empty answer to reuse the previous selection when there is one.

    Raises:
        ValueError: If nothing is selected
    """
    if len(repositories) == 1:
        print(f"Using repository: {repositories[0].display_name}\n")
        return [repositories[0]]

    previous = [repo for repo in repositories if repo.path in set(preselected or [])]

    print("Repositories:")
    for index, repo in enumerate(repositories, start=1):
        marker = "*" if repo in previous else " "
        print(f" {marker} {index}. {repo.display_name}")

    hint = "numbers, ranges or 'all'"
    if previous:
        hint += "; Enter for the ones marked *"
    while True:
        answer = input(f"Select repositories ({hint}): ").strip().lower()
        if not answer and previous:
            return previous
        if answer == "all":
            return list(repositories)
        try:
            chosen = _parse_selection(answer, len(repositories))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            continue
        if not chosen:
            raise ValueError("No repositories selected")
        return [repositories[i] for i in chosen]


def _parse_selection(answer: str, count: int) -> List[int]:
    indices: List[int] = []
    for part in filter(None, (p.strip() for p in answer.split(","))):
        start, sep, end = part.partition("-")
        first = int(start)
        last = int(end) if sep else first
        if first < 1 or last > count or first > last:
            raise ValueError(f"Selection out of range: {part}")
        for number in range(first, last + 1):
            if number - 1 not in indices:
                indices.append(number - 1)
    return indices


def prompt_secrets() -> List[SecretPair]:
    """
    Read secret key/value pairs until an empty key is entered.

    Values are read without echo. Entering an existing key again replaces
    its value.
    """
    secrets: List[SecretPair] = []
    print("Enter secrets. Leave the key empty to finish.")
    while True:
        key = input("Secret key: ").strip()
        if not key:
            break
        try:
            key = validate_secret_key(key)
        except ValidationError as e:
            print(f"Warning: {e}", file=sys.stderr)
            continue

        value = getpass.getpass("Secret value (hidden): ")
        try:
            validate_secret_value(value)
        except ValidationError as e:
            print(f"Warning: {e}", file=sys.stderr)
            continue

        was_duplicate = any(existing.key.upper() == key.upper() for existing in secrets)
        secrets = [existing for existing in secrets if existing.key.upper() != key.upper()]
        secrets.append(SecretPair(key=key, value=value))
        if was_duplicate:
            print(f"Secret '{key}' updated")
        else:
            print(f"Secret '{key}' added ({len(secrets)} total)")
    return secrets


def prompt_secret_value(key: str) -> str:
    return getpass.getpass(f"Value for {key} (hidden): ")
