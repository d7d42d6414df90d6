"""OS keyring adapter (macOS Keychain, Windows Credential Manager, Secret Service)."""

from __future__ import annotations

import importlib
from typing import Any, Optional

from noidea_secure.secrets.base import (
    BackendUnavailableError,
    SecretNotFoundError,
    SecretStore,
)


class KeyringSecretStore(SecretStore):
    name = "keyring"

    def __init__(self, service_name: str, backend: Optional[Any] = None) -> None:
        self._service_name = service_name
        try:
            errors = importlib.import_module("keyring.errors")
            self._keyring = backend if backend is not None else importlib.import_module("keyring")
        except Exception as exc:  # pragma: no cover - import guarded at runtime
            raise BackendUnavailableError("keyring package is required for OS keyring access") from exc
        self._password_delete_error = errors.PasswordDeleteError

    @property
    def service_name(self) -> str:
        return self._service_name

    def get_secret(self, account: str) -> str:
        try:
            value = self._keyring.get_password(self._service_name, account)
        except Exception as exc:
            raise BackendUnavailableError(f"failed to read keyring secret '{account}': {exc}") from exc
        if not value:
            raise SecretNotFoundError(account)
        return value

    def set_secret(self, account: str, value: str) -> None:
        try:
            self._keyring.set_password(self._service_name, account, value)
        except Exception as exc:
            raise BackendUnavailableError(f"failed to write keyring secret '{account}': {exc}") from exc

    def delete_secret(self, account: str) -> None:
        try:
            self._keyring.delete_password(self._service_name, account)
        except self._password_delete_error:
            # keyring signals "no such password" this way on every backend.
            return
        except Exception as exc:
            raise BackendUnavailableError(f"failed to delete keyring secret '{account}': {exc}") from exc
