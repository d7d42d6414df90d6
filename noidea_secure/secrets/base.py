"""SecretStore abstractions.

Every backend (OS keyring, fallback file) implements the same three
operations keyed by a canonical provider name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class SecretStoreError(RuntimeError):
    """Raised when a secret cannot be stored, loaded or removed."""


class SecretNotFoundError(SecretStoreError):
    """Raised when no secret is stored for a provider."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"key not found in secure storage: {provider}")


class BackendUnavailableError(SecretStoreError):
    """Raised when a storage backend is absent or not functional."""


class SecretIOError(SecretStoreError):
    """Raised on filesystem failures in the on-disk store."""


class SecretDeleteError(SecretStoreError):
    """Raised when no backend could delete a secret."""

    def __init__(self, provider: str, errors: Sequence[Exception]) -> None:
        self.provider = provider
        self.errors = list(errors)
        detail = "; ".join(str(err) for err in self.errors) or "-"
        super().__init__(f"failed to delete key '{provider}': {detail}")


class SecretStore(ABC):
    """Credential store interface."""

    name: str = "store"

    @abstractmethod
    def get_secret(self, account: str) -> str:
        """Return secret value for an account or raise SecretStoreError."""

    @abstractmethod
    def set_secret(self, account: str, value: str) -> None:
        """Create or overwrite the secret for an account."""

    @abstractmethod
    def delete_secret(self, account: str) -> None:
        """Remove the secret for an account. Removing an absent secret succeeds."""


def require_secret(store: SecretStore, account: str) -> str:
    value = store.get_secret(account)
    if not value:
        raise SecretNotFoundError(account)
    return value
