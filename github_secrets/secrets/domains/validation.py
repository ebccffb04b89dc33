"""Validation of secret names, values, repositories and tokens."""
import re

from .errors import ValidationError
from .models import Repository

MAX_SECRET_KEY_LENGTH = 100
RESERVED_SECRET_PREFIX = "GITHUB_"
SECRET_KEY_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

MAX_OWNER_LENGTH = 39
MAX_REPO_NAME_LENGTH = 100

MIN_TOKEN_LENGTH = 20
MAX_TOKEN_LENGTH = 200


def validate_secret_key(key: str) -> str:
    """
    Validate a secret name against GitHub's naming rules.

    Names may contain only letters, digits and underscores, must not start
    with a digit, and must not start with the reserved GITHUB_ prefix.

    Returns:
        The trimmed key

    Raises:
        ValidationError: If the key is not a valid secret name
    """
    trimmed = (key or "").strip()

    if not trimmed:
        raise ValidationError("Secret key cannot be empty")

    if len(trimmed) > MAX_SECRET_KEY_LENGTH:
        raise ValidationError(
            f"Secret key cannot exceed {MAX_SECRET_KEY_LENGTH} characters (got {len(trimmed)})"
        )

    if trimmed[0].isdigit():
        raise ValidationError(f"Secret key cannot start with a digit: '{trimmed}'")

    if not SECRET_KEY_PATTERN.match(trimmed):
        raise ValidationError(
            f"Secret key can only contain letters, numbers and underscores. Got: '{trimmed}'"
        )

    if trimmed.upper().startswith(RESERVED_SECRET_PREFIX):
        raise ValidationError(
            f"Secret key cannot start with the reserved prefix {RESERVED_SECRET_PREFIX}: '{trimmed}'"
        )

    return trimmed


def validate_secret_value(value) -> None:
    """Reject empty or whitespace-only secret values."""
    if isinstance(value, (bytes, bytearray)):
        empty = not bytes(value).strip()
    else:
        empty = not value or not value.strip()
    if empty:
        raise ValidationError("Secret value cannot be empty")


def validate_repo_owner(owner: str) -> None:
    trimmed = (owner or "").strip()
    if not trimmed:
        raise ValidationError("Repository owner cannot be empty")
    if len(trimmed) > MAX_OWNER_LENGTH:
        raise ValidationError(
            f"Repository owner cannot exceed {MAX_OWNER_LENGTH} characters (got {len(trimmed)})"
        )


def validate_repo_name(name: str) -> None:
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("Repository name cannot be empty")
    if len(trimmed) > MAX_REPO_NAME_LENGTH:
        raise ValidationError(
            f"Repository name cannot exceed {MAX_REPO_NAME_LENGTH} characters (got {len(trimmed)})"
        )


def validate_token(token: str) -> None:
    """Basic shape checks on a GitHub token. Never includes the token in messages."""
    trimmed = (token or "").strip()
    if not trimmed:
        raise ValidationError("GitHub token cannot be empty")
    if len(trimmed) < MIN_TOKEN_LENGTH:
        raise ValidationError(f"GitHub token appears too short (minimum {MIN_TOKEN_LENGTH} characters)")
    if len(trimmed) > MAX_TOKEN_LENGTH:
        raise ValidationError(f"GitHub token appears too long (maximum {MAX_TOKEN_LENGTH} characters)")


def parse_repository(spec: str, alias=None) -> Repository:
    """Parse "owner/name" into a Repository."""
    owner, sep, name = (spec or "").strip().partition("/")
    if not sep or "/" in name:
        raise ValidationError(f"Repository must be in the form OWNER/NAME. Got: '{spec}'")
    validate_repo_owner(owner)
    validate_repo_name(name)
    return Repository(owner=owner.strip(), name=name.strip(), alias=alias)
