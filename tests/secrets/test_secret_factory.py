import json
from dataclasses import replace
from pathlib import Path

import pytest

from noidea_secure.config.settings import SecureSettings
from noidea_secure.secrets.base import BackendUnavailableError
from noidea_secure.secrets.factory import create_secret_store
from noidea_secure.secrets.fallback_store import FallbackSecretStore
from noidea_secure.secrets.keyring_store import KeyringSecretStore


def test_factory_orders_keyring_before_fallback(settings: SecureSettings, memory_keyring) -> None:
    store = create_secret_store(settings, keyring_backend=memory_keyring)

    assert [type(b) for b in store.backends] == [KeyringSecretStore, FallbackSecretStore]
    assert store.backends[1].directory == settings.fallback_dir
    assert store.store("openai", "sk-abc") == "keyring"


def test_factory_loads_user_aliases(settings: SecureSettings, memory_keyring) -> None:
    settings.fallback_dir.mkdir(parents=True)
    settings.alias_file.write_text(json.dumps({"openai": ["oai"], "groq": ["gq"]}), encoding="utf-8")

    store = create_secret_store(settings, keyring_backend=memory_keyring)
    assert store.resolve("OAI") == "openai"
    assert store.resolve("gq") == "groq"
    assert store.resolve("grok") == "xai"


def test_factory_without_keyring_uses_fallback_only(settings: SecureSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    def _unavailable(service_name: str, backend=None):
        raise BackendUnavailableError("keyring package is required for OS keyring access")

    monkeypatch.setattr("noidea_secure.secrets.factory.KeyringSecretStore", _unavailable)
    store = create_secret_store(settings)

    assert [b.name for b in store.backends] == ["fallback"]
    assert store.store("openai", "sk-abc") == "fallback"
    assert store.get("gpt") == "sk-abc"


def test_factory_creates_alias_template(settings: SecureSettings, memory_keyring) -> None:
    create_secret_store(settings, keyring_backend=memory_keyring)
    assert json.loads(Path(settings.alias_file).read_text(encoding="utf-8"))["example-provider"] == ["alias1", "alias2"]


def test_factory_without_home_uses_keyring_only(settings: SecureSettings, memory_keyring) -> None:
    homeless = replace(settings, fallback_dir=None)

    store = create_secret_store(homeless, keyring_backend=memory_keyring)

    assert [b.name for b in store.backends] == ["keyring"]
    assert store.resolve("grok") == "xai"


def test_factory_without_any_backend_fails(settings: SecureSettings, monkeypatch: pytest.MonkeyPatch) -> None:
    def _unavailable(service_name: str, backend=None):
        raise BackendUnavailableError("keyring package is required for OS keyring access")

    monkeypatch.setattr("noidea_secure.secrets.factory.KeyringSecretStore", _unavailable)
    with pytest.raises(BackendUnavailableError, match="no secure storage backend"):
        create_secret_store(replace(settings, fallback_dir=None))
