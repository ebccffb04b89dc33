"""Update GitHub Actions secrets across repositories."""

__version__ = "0.1.0"
