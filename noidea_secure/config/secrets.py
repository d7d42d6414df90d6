"""Effective API key lookup for the configured LLM provider.

Order: secure store first, then ``NOIDEA_API_KEY``, then the provider's own
variable (``XAI_API_KEY`` etc). Environment values win over the stored key,
so a warning is logged whenever one shadows the other.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Literal, Mapping, Optional

from noidea_secure.secrets.base import SecretNotFoundError, SecretStoreError
from noidea_secure.secrets.tiered_store import TieredSecretStore

logger = logging.getLogger(__name__)

GENERIC_API_KEY_ENV = "NOIDEA_API_KEY"
PROVIDER_API_KEY_ENV: Mapping[str, str] = {
    "xai": "XAI_API_KEY",
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}

KeySource = Literal["secure-store", "environment"]


@dataclass(frozen=True)
class ProviderKey:
    provider: str
    api_key: Optional[str]
    source: Optional[KeySource]


def _env_key(provider: str, env: Mapping[str, str]) -> Optional[str]:
    api_key: Optional[str] = None
    generic = env.get(GENERIC_API_KEY_ENV, "").strip()
    if generic:
        api_key = generic

    env_name = PROVIDER_API_KEY_ENV.get(provider)
    specific = env.get(env_name, "").strip() if env_name else ""
    if specific:
        api_key = specific
        if provider == "xai" and not specific.startswith("xai-"):
            logger.warning("XAI API key doesn't start with 'xai-' prefix")
    return api_key


def _optional_secret(store: TieredSecretStore, provider: str) -> Optional[str]:
    try:
        return store.get(provider)
    except SecretNotFoundError:
        return None
    except SecretStoreError as exc:
        logger.warning("could not read %s key from secure storage: %s", provider, exc)
        return None


def load_provider_key(
    provider: str,
    store: TieredSecretStore,
    env: Mapping[str, str] = os.environ,
) -> ProviderKey:
    canonical = store.resolve(provider)

    stored = _optional_secret(store, canonical)

    from_env = _env_key(canonical, env)
    if from_env:
        if stored:
            logger.warning(
                "API key in environment variables overrides the securely stored %s key; "
                "remove it from the environment to use secure storage",
                canonical,
            )
        return ProviderKey(provider=canonical, api_key=from_env, source="environment")
    if stored:
        return ProviderKey(provider=canonical, api_key=stored, source="secure-store")
    return ProviderKey(provider=canonical, api_key=None, source=None)


def require_provider_key(
    provider: str,
    store: TieredSecretStore,
    env: Mapping[str, str] = os.environ,
) -> str:
    key = load_provider_key(provider, store, env=env)
    if not key.api_key:
        raise SecretNotFoundError(key.provider)
    return key.api_key


__all__ = [
    "ProviderKey",
    "load_provider_key",
    "require_provider_key",
    "PROVIDER_API_KEY_ENV",
    "GENERIC_API_KEY_ENV",
]
