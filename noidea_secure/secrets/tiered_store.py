"""Tiered secret store facade.

Backends are tried in priority order (OS keyring first, fallback file last).
Callers never learn which backend holds a secret.
"""

from __future__ import annotations

import logging
from typing import Sequence

from noidea_secure.config.aliases import AliasResolver
from noidea_secure.secrets.base import (
    SecretDeleteError,
    SecretNotFoundError,
    SecretStore,
    SecretStoreError,
)

logger = logging.getLogger(__name__)


class TieredSecretStore:
    def __init__(self, backends: Sequence[SecretStore], resolver: AliasResolver) -> None:
        if not backends:
            raise ValueError("at least one secret backend is required")
        self._backends = list(backends)
        self._resolver = resolver

    @property
    def backends(self) -> list[SecretStore]:
        return list(self._backends)

    @property
    def resolver(self) -> AliasResolver:
        return self._resolver

    def resolve(self, provider: str) -> str:
        return self._resolver.normalize(provider)

    def store(self, provider: str, secret: str) -> str:
        """Persist ``secret`` and return the name of the backend that accepted it."""
        account = self.resolve(provider)
        *primary, last = self._backends
        for backend in primary:
            try:
                backend.set_secret(account, secret)
            except SecretStoreError as exc:
                logger.info("backend %s rejected write for %s, falling back: %s", backend.name, account, exc)
                continue
            logger.debug("stored %s in %s", account, backend.name)
            return backend.name
        last.set_secret(account, secret)
        logger.debug("stored %s in %s", account, last.name)
        return last.name

    def get(self, provider: str) -> str:
        account = self.resolve(provider)
        *primary, last = self._backends
        for backend in primary:
            try:
                value = backend.get_secret(account)
            except SecretStoreError as exc:
                logger.debug("backend %s has no value for %s: %s", backend.name, account, exc)
                continue
            if value:
                return value
        return last.get_secret(account)

    def has(self, provider: str) -> bool:
        try:
            return bool(self.get(provider))
        except SecretNotFoundError:
            return False

    def delete(self, provider: str) -> None:
        account = self.resolve(provider)
        errors: list[Exception] = []
        deleted = False
        for backend in self._backends:
            try:
                backend.delete_secret(account)
            except SecretStoreError as exc:
                logger.debug("backend %s failed to delete %s: %s", backend.name, account, exc)
                errors.append(exc)
                continue
            deleted = True
        if not deleted:
            raise SecretDeleteError(account, errors)
