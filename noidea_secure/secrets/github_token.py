"""GitHub personal access token, kept in the same store under a fixed name."""

from __future__ import annotations

from noidea_secure.secrets.tiered_store import TieredSecretStore

GITHUB_TOKEN_KEY = "github-token"


def store_github_token(store: TieredSecretStore, token: str) -> str:
    return store.store(GITHUB_TOKEN_KEY, token)


def get_github_token(store: TieredSecretStore) -> str:
    return store.get(GITHUB_TOKEN_KEY)


def delete_github_token(store: TieredSecretStore) -> None:
    store.delete(GITHUB_TOKEN_KEY)
