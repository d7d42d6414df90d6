"""Secure storage diagnostics for the ``status`` command."""

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict

from noidea_secure.secrets.base import SecretStore, SecretStoreError

logger = logging.getLogger(__name__)

PROBE_ACCOUNT = "noidea-test-key"
PROBE_VALUE = "noidea-test-value"

KeyringState = Literal["available", "unavailable", "retrieval-failed"]
FallbackState = Literal["directory-exists", "directory-not-exists", "directory-error", "homedir-error"]


class StorageStatus(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    keyring: KeyringState
    fallback: FallbackState
    platform: str


def probe_keyring(store: Optional[SecretStore]) -> KeyringState:
    """Write, read back and delete a throwaway secret."""
    if store is None:
        return "unavailable"
    try:
        store.set_secret(PROBE_ACCOUNT, PROBE_VALUE)
    except SecretStoreError as exc:
        logger.debug("keyring probe write failed: %s", exc)
        return "unavailable"

    try:
        value = store.get_secret(PROBE_ACCOUNT)
    except SecretStoreError as exc:
        logger.debug("keyring probe read failed: %s", exc)
        return "retrieval-failed"
    else:
        return "available" if value == PROBE_VALUE else "retrieval-failed"
    finally:
        try:
            store.delete_secret(PROBE_ACCOUNT)
        except SecretStoreError as exc:
            logger.warning("could not remove keyring probe entry '%s': %s", PROBE_ACCOUNT, exc)


def probe_fallback_dir(fallback_dir: Callable[[], Path]) -> FallbackState:
    try:
        directory = fallback_dir()
    except (RuntimeError, KeyError, OSError) as exc:
        logger.debug("home directory lookup failed: %s", exc)
        return "homedir-error"

    try:
        directory.stat()
    except FileNotFoundError:
        return "directory-not-exists"
    except OSError as exc:
        logger.debug("fallback directory stat failed: %s", exc)
        return "directory-error"
    return "directory-exists"


def collect_storage_status(
    keyring_store: Optional[SecretStore],
    fallback_dir: Callable[[], Path],
) -> StorageStatus:
    return StorageStatus(
        keyring=probe_keyring(keyring_store),
        fallback=probe_fallback_dir(fallback_dir),
        platform=platform.system().lower(),
    )
