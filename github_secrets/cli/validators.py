"""Input validation for CLI arguments."""
import sys

from github_secrets.secrets.domains.errors import ValidationError
from github_secrets.secrets.domains.models import Repository
from github_secrets.secrets.domains.validation import parse_repository, validate_secret_key


def validate_secret_name(name: str) -> str:
    """
    Validate a secret name given on the command line.

    GitHub allows only letters, numbers and underscores, no leading digit,
    and no GITHUB_ prefix.

    Returns:
        The trimmed name

    Raises:
        SystemExit with code 2 if validation fails
    """
    try:
        return validate_secret_key(name)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, underscores (_)", file=sys.stderr)
        print("Not allowed: leading digits, the GITHUB_ prefix, hyphens, dots, spaces", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ MY_SECRET", file=sys.stderr)
        print("  ✓ api_key_prod", file=sys.stderr)
        print("  ✓ DATABASE_PASSWORD_123", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ api-key (contains hyphen)", file=sys.stderr)
        print("  ✗ 1PASSWORD (starts with a digit)", file=sys.stderr)
        print("  ✗ GITHUB_TOKEN (reserved prefix)", file=sys.stderr)
        sys.exit(2)


def validate_secret_value(value: str) -> None:
    """
    Validate secret value is not empty.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not value or value.strip() == "":
        print("Error: Secret value cannot be empty", file=sys.stderr)
        print("\nGitHub does not store empty secrets.", file=sys.stderr)
        sys.exit(2)


def validate_repository_arg(spec: str, alias=None) -> Repository:
    """
    Parse an OWNER/NAME argument.

    Raises:
        SystemExit with code 2 if the argument is malformed
    """
    try:
        return parse_repository(spec, alias=alias)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("\nExample: octocat/hello-world", file=sys.stderr)
        sys.exit(2)
