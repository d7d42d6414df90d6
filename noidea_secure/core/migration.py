"""Move API keys out of environment variables and ``.env`` files into secure storage."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Literal, Mapping, Optional, Sequence

from dotenv import dotenv_values

from noidea_secure.adapters.key_validator import KeyValidator, ValidationNetworkError
from noidea_secure.config.secrets import PROVIDER_API_KEY_ENV
from noidea_secure.secrets.base import SecretStoreError
from noidea_secure.secrets.tiered_store import TieredSecretStore

logger = logging.getLogger(__name__)

MIGRATION_PROVIDERS = ("xai", "openai", "deepseek", "anthropic", "mistral")

MigrationStatus = Literal["stored", "rejected", "failed"]


@dataclass(frozen=True)
class LegacyKey:
    provider: str
    api_key: str
    origin: str


@dataclass(frozen=True)
class MigrationResult:
    key: LegacyKey
    status: MigrationStatus
    backend: Optional[str] = None
    detail: str = ""


def default_env_locations(cwd: Optional[Path] = None, home: Optional[Path] = None) -> list[Path]:
    cwd = cwd or Path.cwd()
    locations = [cwd / ".env", cwd / ".noidea.env"]
    try:
        home = home or Path.home()
    except (RuntimeError, KeyError, OSError):
        return locations
    locations.append(home / ".noidea" / ".env")
    return locations


def _clean(value: Optional[str]) -> str:
    return (value or "").strip().strip("\"'").strip()


def _scan(values: Mapping[str, Optional[str]], origin: str, seen: set[str]) -> list[LegacyKey]:
    found: list[LegacyKey] = []
    for provider in MIGRATION_PROVIDERS:
        if provider in seen:
            continue
        api_key = _clean(values.get(PROVIDER_API_KEY_ENV[provider]))
        if api_key:
            seen.add(provider)
            found.append(LegacyKey(provider=provider, api_key=api_key, origin=origin))
    return found


def find_legacy_keys(
    env: Mapping[str, str] = os.environ,
    locations: Optional[Iterable[Path]] = None,
) -> list[LegacyKey]:
    """Collect provider keys, environment first, then ``.env`` files in order.

    The first occurrence per provider wins.
    """
    seen: set[str] = set()
    keys = _scan(env, "environment", seen)
    for path in default_env_locations() if locations is None else locations:
        if not path.is_file():
            continue
        try:
            values = dotenv_values(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("skipping unreadable env file %s: %s", path, exc)
            continue
        keys.extend(_scan(values, str(path), seen))
    return keys


def migrate_legacy_keys(
    store: TieredSecretStore,
    keys: Sequence[LegacyKey],
    validator: Optional[KeyValidator] = None,
) -> list[MigrationResult]:
    results: list[MigrationResult] = []
    for key in keys:
        if validator is not None:
            try:
                if not validator.validate(key.provider, key.api_key):
                    results.append(MigrationResult(key=key, status="rejected", detail="provider rejected key"))
                    continue
            except ValidationNetworkError as exc:
                logger.warning("could not validate %s key, storing anyway: %s", key.provider, exc)
        try:
            backend = store.store(key.provider, key.api_key)
        except (SecretStoreError, ValueError) as exc:
            results.append(MigrationResult(key=key, status="failed", detail=str(exc)))
            continue
        logger.info("migrated %s key from %s into %s", key.provider, key.origin, backend)
        results.append(MigrationResult(key=key, status="stored", backend=backend))
    return results
