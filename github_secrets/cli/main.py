"""CLI entrypoint for github-secrets."""
import sys
import argparse
import logging
import shutil
import signal
from pathlib import Path

from github_secrets import __version__
from .validators import validate_repository_arg, validate_secret_name, validate_secret_value

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

RULE = "=" * 60


def cmd_version(args):
    """Show version information."""
    print(f"github-secrets {__version__}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from github_secrets.secrets.domains.preferences import CONFIG_PATH_KEY, set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference(CONFIG_PATH_KEY, str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show which config file would be used and where that choice came from."""
    from github_secrets.secrets.domains import config_loader
    from github_secrets.secrets.domains.paths import default_config_path
    from github_secrets.secrets.domains.preferences import CONFIG_PATH_KEY, get_preference

    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref and not Path(config_path_pref).exists():
        print(f"Config path (from preference, but file not found): {config_path_pref}")
        print("Source: preference")
        return

    try:
        resolved = config_loader._get_config_path()
    except FileNotFoundError:
        print(f"Config path: {default_config_path()}")
        print("Source: default (file not found)")
        return

    if config_path_pref and Path(config_path_pref) == Path(resolved):
        source = "preference"
    elif resolved == str(default_config_path()):
        source = "default"
    else:
        source = "search path"
    print(f"Config path: {resolved}")
    print(f"Source: {source}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from github_secrets.secrets.domains.paths import default_config_path
    from github_secrets.secrets.domains.preferences import CONFIG_PATH_KEY, clear_preference

    clear_preference(CONFIG_PATH_KEY)
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    from github_secrets.secrets.domains import config_loader
    from github_secrets.secrets.domains.paths import default_config_path
    from github_secrets.secrets.domains.preferences import CONFIG_PATH_KEY, set_preference

    default_config = default_config_path()

    print("=== github-secrets Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Configuration file already exists at: {default_config}")
        response = input("Do you want to use a different config file? (y/N): ").strip().lower()
        if response != 'y':
            print(f"\nUsing existing config at: {default_config}")
            return

    print("Choose an option:")
    print("1. Create a new config file with one repository")
    print("2. Copy an existing config file to default location")
    print("3. Point to an existing config file at a different location")
    print("4. Cancel (manually create config file later)")

    choice = input("\nEnter choice (1-4): ").strip()

    if choice == "1":
        repository = validate_repository_arg(input("Repository (OWNER/NAME): "))
        alias = input("Display alias (optional): ").strip() or None
        entry = {"owner": repository.owner, "name": repository.name}
        if alias:
            entry["alias"] = alias
        path = config_loader.save_config({"repositories": [entry]}, str(default_config))
        print(f"\nConfig written to: {path}")
        print("Add more repositories with: github-secrets config add-repo OWNER/NAME")

    elif choice == "2":
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.exists():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)
        config_loader.read_config(str(source))
        default_config.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, default_config)
        print(f"\nConfig copied to: {default_config}")

    elif choice == "3":
        config_file = Path(input("Enter path to config file: ").strip()).expanduser().resolve()
        if not config_file.exists():
            print(f"Error: File not found: {config_file}", file=sys.stderr)
            sys.exit(1)
        set_preference(CONFIG_PATH_KEY, str(config_file))
        print(f"\nConfig path set to: {config_file}")

    elif choice == "4":
        print("\nSetup cancelled.")
        print(f"Create your config file at: {default_config}")
        print("Or use: github-secrets config set-path <path>")

    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def cmd_config_list(args):
    """List configured repositories."""
    from github_secrets.secrets.domains import config_loader

    config = config_loader.load_config()
    print(f"Repositories in {config['_path']}:")
    for repository in config_loader.get_repositories(config):
        print(f"  {repository.display_name}")


def cmd_config_add_repo(args):
    """Add a repository to the config file."""
    from github_secrets.secrets.domains import config_loader

    repository = validate_repository_arg(args.repository, alias=args.alias)
    config = config_loader.load_config()
    if not config_loader.add_repository(config, repository):
        print(f"Repository already configured: {repository.path}")
        return
    path = config_loader.save_config(config)
    print(f"Added {repository.display_name} to {path}")


def cmd_config_remove_repo(args):
    """Remove a repository from the config file."""
    from github_secrets.secrets.domains import config_loader

    repository = validate_repository_arg(args.repository)
    config = config_loader.load_config()
    if not config_loader.remove_repository(config, repository):
        print(f"Error: Repository not configured: {repository.path}", file=sys.stderr)
        sys.exit(1)
    path = config_loader.save_config(config)
    print(f"Removed {repository.path} from {path}")


def _collect_secrets(args):
    from github_secrets.cli import prompts
    from github_secrets.secrets.domains.models import SecretPair

    if not args.secret:
        return prompts.prompt_secrets()

    secrets = []
    for item in args.secret:
        key, sep, value = item.partition("=")
        key = validate_secret_name(key)
        if not sep:
            value = prompts.prompt_secret_value(key)
        validate_secret_value(value)
        secrets.append(SecretPair(key=key, value=value))
    return secrets


def _select_repositories(args, repositories):
    from github_secrets.cli import prompts
    from github_secrets.secrets.domains import preferences

    if args.all:
        return list(repositories)

    if args.repo:
        configured = {repo: repo for repo in repositories}
        selected = []
        for spec in args.repo:
            repository = validate_repository_arg(spec)
            # Pick up the alias when the repository is also configured
            selected.append(configured.get(repository, repository))
        return selected

    selected = prompts.select_repositories(repositories, preferences.last_selection())
    preferences.remember_selection([repo.path for repo in selected])
    return selected


def print_result(result):
    where = result.repository.display_name
    if result.succeeded:
        print(f"Success: Updated secret '{result.secret_key}' in {where}")
    elif result.skipped:
        print(f"Skipped: Secret '{result.secret_key}' in {where} was left unchanged")
    else:
        print(f"Failed: Secret '{result.secret_key}' in {where}: {result.message}")


def print_summary(summary, results, title):
    print(f"\n{RULE}")
    print(title)
    print(RULE)
    print(f"Total operations: {summary.total}")
    print(f"Successful: {summary.successful}")
    print(f"Skipped: {summary.skipped}")
    print(f"Failed: {summary.failed}")

    print("\nPer-repository breakdown:")
    for repository, tally in summary.per_repository.items():
        print(
            f"  {repository.display_name}: {tally.successful} successful, "
            f"{tally.skipped} skipped, {tally.failed} failed"
        )

    failed = [result for result in results if result.failed]
    if failed:
        print("\nFailed operations:")
        for result in failed:
            print(f"  - {result.secret_key} in {result.repository.display_name}: {result.message}")


def cmd_update(args):
    """Update secrets in the selected repositories."""
    from github_secrets.cli import prompts
    from github_secrets.secrets.domains import config_loader
    from github_secrets.secrets.domains.credentials import resolve_token
    from github_secrets.secrets.domains.errors import AuthError
    from github_secrets.secrets.domains.github_client import GitHubClient
    from github_secrets.secrets.domains.paths import load_env_file
    from github_secrets.secrets.domains.rate_limiter import RateLimiter
    from github_secrets.secrets.workflows.orchestrator import AlwaysApprove, AlwaysDecline, UpdateOrchestrator
    from github_secrets.secrets.workflows.retry import RetryCoordinator
    from github_secrets.secrets.workflows.summary import fold

    load_env_file()
    config = config_loader.load_config()
    token = resolve_token(config)

    selected = _select_repositories(args, config_loader.get_repositories(config))
    secrets = _collect_secrets(args)
    if not secrets:
        print("No secrets to update.")
        return 0

    if args.yes:
        confirmation = AlwaysApprove()
    elif args.no_overwrite:
        confirmation = AlwaysDecline()
    else:
        confirmation = prompts.TerminalConfirmation()

    print(f"\nProcessing {len(secrets)} secret(s) across {len(selected)} repository(ies)...\n")

    rate_limiter = RateLimiter(max_wait=config_loader.get_max_wait(config))
    client = GitHubClient(token, rate_limiter=rate_limiter)
    with UpdateOrchestrator(client, confirmation, rate_limiter, on_result=print_result) as orchestrator:
        def _cancel(signum, frame):
            print("\nCancelling remaining operations after the current one...", file=sys.stderr)
            orchestrator.cancel()
            # A second Ctrl-C interrupts immediately
            signal.signal(signal.SIGINT, previous_handler)

        previous_handler = signal.signal(signal.SIGINT, _cancel)
        try:
            orchestrator.run(selected, secrets)
            print_summary(fold(orchestrator.results), orchestrator.results, "Overall Summary")

            coordinator = RetryCoordinator(orchestrator, max_rounds=config_loader.get_max_retry_rounds(config))
            while (
                not args.no_retry
                and coordinator.can_retry(orchestrator.results)
                and prompts.confirm_retry(len(coordinator.failures(orchestrator.results)))
            ):
                print("\nRetrying failed operations...\n")
                coordinator.retry(orchestrator.results)
                print_summary(fold(orchestrator.results), orchestrator.results, "Final Summary")
        except AuthError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        finally:
            signal.signal(signal.SIGINT, previous_handler)
            client.close()

        return 1 if fold(orchestrator.results).failed else 0


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, failed operations, etc.)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="github-secrets",
        description="Update encrypted GitHub Actions secrets across one or more repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success (skipped secrets included)
  1 - Runtime error or at least one failed operation
  2 - Usage error (invalid arguments, invalid secret name format, etc.)

Environment variables:
  GITHUB_TOKEN - GitHub token with permission to write repository secrets
  CONFIG_PATH  - Config file to use (overrides preference and search path)
  GCP_PROJECT  - GCP project for the token.gcp_secret fallback

Configuration:
  Default location: ~/.config/github-secrets/config.yml
  Custom path: Set with 'github-secrets config set-path <path>'
  View current: Run 'github-secrets config show'
        """
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging on stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of github-secrets"
    )

    # update command
    update_parser = subparsers.add_parser(
        "update",
        help="Update secrets in selected repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Encrypt and upload secrets to the selected repositories.

Behavior:
  1. Selects repositories (interactive unless --repo or --all)
  2. Reads secrets (interactive unless --secret)
  3. Asks before overwriting a secret that already exists
  4. Prints a summary and offers to retry failed operations
        """
    )
    update_parser.add_argument(
        "--repo",
        action="append",
        metavar="OWNER/NAME",
        help="Repository to update (repeatable; skips the selection menu)"
    )
    update_parser.add_argument(
        "--all",
        action="store_true",
        help="Update every configured repository"
    )
    update_parser.add_argument(
        "--secret",
        action="append",
        metavar="KEY[=VALUE]",
        help="Secret to set (repeatable). Without =VALUE the value is prompted for, hidden"
    )
    overwrite_group = update_parser.add_mutually_exclusive_group()
    overwrite_group.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Overwrite existing secrets without asking"
    )
    overwrite_group.add_argument(
        "--no-overwrite",
        action="store_true",
        help="Skip secrets that already exist without asking"
    )
    update_parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Do not offer to retry failed operations"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage github-secrets configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/github-secrets/preferences.json
        """
    )
    config_set_path_parser.add_argument(
        "path",
        help="Path to config file"
    )

    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the configuration file path that will be used and its source"
    )

    _config_clear_parser = config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference and fall back to the search path"
    )

    _config_init_parser = config_subparsers.add_parser(
        "init",
        help="Interactive config setup",
        description="Interactive setup wizard for github-secrets configuration"
    )

    _config_list_parser = config_subparsers.add_parser(
        "list",
        help="List configured repositories"
    )

    config_add_parser = config_subparsers.add_parser(
        "add-repo",
        help="Add a repository to the config file"
    )
    config_add_parser.add_argument("repository", metavar="OWNER/NAME")
    config_add_parser.add_argument("--alias", help="Display name for the repository")

    config_remove_parser = config_subparsers.add_parser(
        "remove-repo",
        help="Remove a repository from the config file"
    )
    config_remove_parser.add_argument("repository", metavar="OWNER/NAME")

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    config_commands = {
        "set-path": cmd_config_set_path,
        "show": cmd_config_show,
        "clear": cmd_config_clear,
        "init": cmd_config_init,
        "list": cmd_config_list,
        "add-repo": cmd_config_add_repo,
        "remove-repo": cmd_config_remove_repo,
    }

    # Route to command handlers
    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "update":
            if args.all and args.repo:
                update_parser.error("--all and --repo cannot be combined")
            sys.exit(cmd_update(args))
        elif args.command == "config":
            handler = config_commands.get(args.config_command)
            if handler is None:
                config_parser.print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
