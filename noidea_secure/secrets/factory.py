"""Secret store factory."""

from __future__ import annotations

import logging
from typing import Any, Optional

from noidea_secure.config.aliases import AliasResolver
from noidea_secure.config.settings import SecureSettings
from noidea_secure.secrets.base import BackendUnavailableError, SecretStore
from noidea_secure.secrets.fallback_store import FallbackSecretStore
from noidea_secure.secrets.keyring_store import KeyringSecretStore
from noidea_secure.secrets.tiered_store import TieredSecretStore

logger = logging.getLogger(__name__)


def create_secret_store(
    settings: SecureSettings,
    resolver: Optional[AliasResolver] = None,
    keyring_backend: Optional[Any] = None,
) -> TieredSecretStore:
    backends: list[SecretStore] = []
    try:
        backends.append(KeyringSecretStore(settings.service_name, backend=keyring_backend))
    except BackendUnavailableError as exc:
        logger.warning("OS keyring disabled, using fallback storage only: %s", exc)
    if settings.fallback_dir is not None:
        backends.append(FallbackSecretStore(settings.fallback_dir))
    else:
        logger.warning("fallback storage disabled: home directory unavailable")
    if not backends:
        raise BackendUnavailableError("no secure storage backend is available")

    if resolver is None:
        alias_file = settings.alias_file
        resolver = AliasResolver.from_file(alias_file) if alias_file is not None else AliasResolver()
    return TieredSecretStore(backends, resolver=resolver)
