"""Errors raised while talking to GitHub and preparing secrets."""
from typing import Optional

from .models import ErrorKind


class GitHubSecretsError(Exception):
    """Base error. Carries the ErrorKind recorded in a failed OperationResult."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self):
        if self.status_code is not None:
            return f"{self.args[0]} (status {self.status_code})"
        return self.args[0]


class AuthError(GitHubSecretsError):
    """The token is missing, invalid or expired. Fatal for the whole batch."""

    kind = ErrorKind.AUTH


class NotFoundError(GitHubSecretsError):
    kind = ErrorKind.NOT_FOUND


class PermissionDeniedError(GitHubSecretsError):
    """The token is valid but may not touch this repository."""

    kind = ErrorKind.PERMISSION_DENIED


class ValidationError(GitHubSecretsError):
    kind = ErrorKind.VALIDATION


class RateLimitedError(GitHubSecretsError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, status_code: Optional[int] = None, reset_at: Optional[float] = None):
        super().__init__(message, status_code)
        self.reset_at = reset_at


class NetworkError(GitHubSecretsError):
    kind = ErrorKind.NETWORK


class EncryptionError(GitHubSecretsError):
    kind = ErrorKind.ENCRYPTION


class CancelledError(GitHubSecretsError):
    kind = ErrorKind.CANCELLED


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def describe_error(error: BaseException) -> str:
    """
    Format an error and its cause chain into one line.

    Example:
        "Failed to fetch public key: Connection refused"
    """
    parts = [str(error)]
    current = error.__cause__
    while current is not None:
        parts.append(str(current))
        current = current.__cause__
    return ": ".join(part for part in parts if part)
