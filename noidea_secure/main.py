"""noidea secure storage command-line entrypoint."""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import Callable, Optional, Sequence

from noidea_secure.adapters.github_http import GitHubTokenCheck, check_github_token
from noidea_secure.adapters.key_validator import InvalidKeyError, KeyValidator, ValidationNetworkError
from noidea_secure.config.settings import SecureSettings, SettingsLoadError, load_settings
from noidea_secure.core.diagnostics import StorageStatus, collect_storage_status
from noidea_secure.core.migration import find_legacy_keys, migrate_legacy_keys
from noidea_secure.secrets.base import SecretNotFoundError, SecretStoreError
from noidea_secure.secrets.factory import create_secret_store
from noidea_secure.secrets.github_token import delete_github_token, get_github_token, store_github_token
from noidea_secure.secrets.keyring_store import KeyringSecretStore
from noidea_secure.secrets.tiered_store import TieredSecretStore

logger = logging.getLogger("noidea_secure")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2

_BACKEND_LABELS = {
    "keyring": "OS keyring",
    "fallback": "fallback file storage",
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def ask_yes_no(question: str, default_yes: bool = True, reader: Callable[[str], str] = input) -> bool:
    suffix = "[Y/n]" if default_yes else "[y/N]"
    while True:
        raw = reader(f"{question} {suffix}: ").strip().lower()
        if not raw:
            return default_yes
        if raw in {"y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer y or n.")


def _read_secret(label: str, secret_reader: Callable[[str], str]) -> str:
    return secret_reader(f"Enter your {label} (input will be hidden): ").strip()


def _validator(store: TieredSecretStore, settings: SecureSettings) -> KeyValidator:
    return KeyValidator(resolver=store.resolver, timeout_seconds=settings.validation_timeout_seconds)


def cmd_store(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    provider = store.resolve(args.provider)
    api_key = _read_secret(f"{provider} API key", args.secret_reader)
    if not api_key:
        print("API key cannot be empty.", file=sys.stderr)
        return EXIT_ERROR

    if not args.no_validate:
        print("Validating API key...")
        try:
            _validator(store, settings).ensure_valid(provider, api_key)
        except InvalidKeyError as exc:
            print(f"Invalid API key: {exc}. Please check the key and try again.", file=sys.stderr)
            return EXIT_FAILED
        except ValidationNetworkError as exc:
            print(f"Could not reach {provider} to check the key ({exc}). Check your connection.", file=sys.stderr)
            return EXIT_ERROR

    backend = store.store(provider, api_key)
    print(f"Stored {provider} API key in {_BACKEND_LABELS.get(backend, backend)}.")
    return EXIT_OK


def cmd_delete(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    provider = store.resolve(args.provider)
    store.delete(provider)
    print(f"Removed {provider} API key from secure storage.")
    return EXIT_OK


def cmd_validate(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    provider = store.resolve(args.provider)
    try:
        api_key = store.get(provider)
    except SecretNotFoundError:
        print(f"No API key stored for {provider}. Run 'noidea-secure store {provider}'.")
        return EXIT_FAILED

    try:
        valid = _validator(store, settings).validate(provider, api_key)
    except ValidationNetworkError as exc:
        print(f"Could not reach {provider} to check the key ({exc}). Check your connection.", file=sys.stderr)
        return EXIT_ERROR
    if not valid:
        print(f"The stored {provider} API key was rejected. Update it with 'noidea-secure store {provider}'.")
        return EXIT_FAILED
    print(f"The stored {provider} API key is valid.")
    return EXIT_OK


def _storage_status(store: TieredSecretStore, settings: SecureSettings) -> StorageStatus:
    keyring_store = next((b for b in store.backends if isinstance(b, KeyringSecretStore)), None)
    return collect_storage_status(keyring_store, settings.require_fallback_dir)


def cmd_status(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    status = _storage_status(store, settings)
    print("Secure storage status:")
    print(f"- keyring: {status.keyring}")
    print(f"- fallback: {status.fallback} ({settings.fallback_dir or 'home directory unavailable'})")
    print(f"- platform: {status.platform}")
    return EXIT_OK


def cmd_migrate(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    keys = find_legacy_keys()
    if not keys:
        print("No API keys found in environment variables or .env files.")
        return EXIT_OK

    for key in keys:
        print(f"- found {key.provider} API key in {key.origin}")
    if not args.yes and not ask_yes_no("Move these keys into secure storage?", reader=args.reader):
        print("Migration cancelled.")
        return EXIT_FAILED

    validator = None if args.no_validate else _validator(store, settings)
    results = migrate_legacy_keys(store, keys, validator=validator)
    exit_code = EXIT_OK
    for result in results:
        if result.status == "stored":
            print(f"- {result.key.provider}: stored in {_BACKEND_LABELS.get(result.backend or '', result.backend)}")
            continue
        exit_code = EXIT_FAILED
        print(f"- {result.key.provider}: {result.status} ({result.detail})")
    if exit_code == EXIT_OK:
        print("You can now remove these keys from your environment and .env files.")
    return exit_code


def _check_token(token: str, settings: SecureSettings) -> GitHubTokenCheck:
    return check_github_token(
        token,
        api_url=settings.github_api_url,
        timeout_seconds=settings.validation_timeout_seconds,
    )


def cmd_github_auth(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    token = _read_secret("GitHub Personal Access Token", args.secret_reader)
    if not token:
        print("Token cannot be empty. Authentication cancelled.", file=sys.stderr)
        return EXIT_ERROR

    print("Validating token...")
    try:
        check = _check_token(token, settings)
    except ValidationNetworkError as exc:
        print(f"Error validating token: {exc}", file=sys.stderr)
        return EXIT_ERROR
    if not check.valid:
        print("Invalid token. Please check your token and try again.", file=sys.stderr)
        return EXIT_FAILED

    store_github_token(store, token)
    print(f"Successfully authenticated as: {check.login or 'Unknown'}")
    print("Your GitHub token has been securely stored.")
    return EXIT_OK


def cmd_github_status(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    try:
        token = get_github_token(store)
    except SecretNotFoundError:
        print("Not authenticated with GitHub.")
        print("Run 'noidea-secure github auth' to authenticate.")
        return EXIT_FAILED

    print("Checking GitHub authentication status...")
    try:
        check = _check_token(token, settings)
    except ValidationNetworkError as exc:
        print(f"Could not reach GitHub: {exc}", file=sys.stderr)
        return EXIT_ERROR
    if not check.valid:
        print("Your GitHub token is invalid or expired.")
        print("Run 'noidea-secure github auth' to re-authenticate.")
        return EXIT_FAILED

    print("GitHub authentication: active")
    if check.login:
        print(f"Username: {check.login}")
    if check.name:
        print(f"Name: {check.name}")
    return EXIT_OK


def cmd_github_logout(args: argparse.Namespace, store: TieredSecretStore, settings: SecureSettings) -> int:
    try:
        get_github_token(store)
    except SecretNotFoundError:
        print("No GitHub credentials found.")
        return EXIT_OK

    if not args.yes and not ask_yes_no(
        "Are you sure you want to remove your GitHub credentials?", default_yes=False, reader=args.reader
    ):
        print("Operation cancelled.")
        return EXIT_FAILED

    delete_github_token(store)
    print("GitHub credentials successfully removed.")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="noidea-secure", description="noidea secure API key storage")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_store = sub.add_parser("store", help="Validate and store a provider API key")
    p_store.add_argument("provider", help="Provider name or alias (e.g. openai, grok, claude)")
    p_store.add_argument("--no-validate", action="store_true", help="Skip the provider API check")
    p_store.set_defaults(handler=cmd_store)

    p_delete = sub.add_parser("delete", help="Remove a provider API key")
    p_delete.add_argument("provider")
    p_delete.set_defaults(handler=cmd_delete)

    p_validate = sub.add_parser("validate", help="Check the stored key against the provider API")
    p_validate.add_argument("provider")
    p_validate.set_defaults(handler=cmd_validate)

    p_status = sub.add_parser("status", help="Show secure storage status")
    p_status.set_defaults(handler=cmd_status)

    p_migrate = sub.add_parser("migrate", help="Move API keys from environment/.env files into secure storage")
    p_migrate.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_migrate.add_argument("--no-validate", action="store_true", help="Skip the provider API check")
    p_migrate.set_defaults(handler=cmd_migrate)

    p_github = sub.add_parser("github", help="GitHub token management")
    github_sub = p_github.add_subparsers(dest="github_command", required=True)
    github_sub.add_parser("auth", help="Store a GitHub Personal Access Token").set_defaults(handler=cmd_github_auth)
    github_sub.add_parser("status", help="Check GitHub authentication").set_defaults(handler=cmd_github_status)
    p_logout = github_sub.add_parser("logout", help="Remove the stored GitHub token")
    p_logout.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    p_logout.set_defaults(handler=cmd_github_logout)
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    store: Optional[TieredSecretStore] = None,
    settings: Optional[SecureSettings] = None,
    secret_reader: Callable[[str], str] = getpass.getpass,
    reader: Callable[[str], str] = input,
) -> int:
    args = build_parser().parse_args(argv)
    args.secret_reader = secret_reader
    args.reader = reader
    _configure_logging(args.verbose)

    try:
        settings = settings or load_settings()
        store = store or create_secret_store(settings)
    except SettingsLoadError as exc:
        logger.error("startup blocked by invalid settings: %s", exc)
        print(f"Startup failed: settings are invalid.\n- detail: {exc}", file=sys.stderr)
        return EXIT_ERROR
    except SecretStoreError as exc:
        logger.error("startup blocked by unavailable storage: %s", exc)
        print(f"Startup failed: no secure storage is available.\n- detail: {exc}", file=sys.stderr)
        return EXIT_ERROR

    try:
        return args.handler(args, store, settings)
    except (SecretStoreError, ValueError) as exc:
        logger.error("secure storage operation failed: %s", exc)
        print(f"Secure storage error: {exc}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
