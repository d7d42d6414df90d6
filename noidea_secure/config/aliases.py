"""Provider name aliases.

Users type provider names in many spellings ("GPT", "open-ai", "grok"). All
of them resolve to one canonical name so a key stored under one spelling is
found under any other. The built-in table can be extended with a JSON file:

    {"openai": ["gpt4", "oai"], "my-provider": ["mine"]}

Aliases for a known provider are appended; unknown providers are added. User
entries never take over a built-in alias or canonical name.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

ALIAS_FILE = "provider_aliases.json"

DEFAULT_PROVIDER_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "openai": ("open-ai", "gpt", "chatgpt", "davinci"),
        "xai": ("x-ai", "grok", "x.ai"),
        "deepseek": ("deep-seek", "deepseek-ai"),
        "anthropic": ("claude", "anthropic-ai"),
        "mistral": ("mistral-ai", "mistralai"),
    }
)

ALIAS_FILE_TEMPLATE: dict[str, list[str]] = {
    "example-provider": ["alias1", "alias2"],
    "openai": ["gpt4", "oai"],
}

_USER_ALIASES = TypeAdapter(dict[str, list[str]])


def merge_aliases(
    base: Mapping[str, Iterable[str]],
    extra: Mapping[str, Iterable[str]],
) -> dict[str, list[str]]:
    merged = {provider: list(aliases) for provider, aliases in base.items()}
    for provider, aliases in extra.items():
        existing = merged.setdefault(provider, [])
        for alias in aliases:
            if alias not in existing:
                existing.append(alias)
    return merged


def parse_user_aliases(raw: str, path: Path) -> dict[str, list[str]]:
    """Validate alias file contents; malformed contents yield {}."""
    try:
        return _USER_ALIASES.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, RecursionError) as exc:
        logger.debug("ignoring malformed alias file path=%s: %s", path, exc)
        return {}


def write_alias_template(path: Path) -> bool:
    """Create the user alias template unless a file already exists."""
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        return False
    except OSError as exc:
        logger.debug("could not create alias template path=%s: %s", path, exc)
        return False
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fp:
            json.dump(ALIAS_FILE_TEMPLATE, fp, indent=2)
            fp.write("\n")
    except OSError as exc:
        logger.debug("could not write alias template path=%s: %s", path, exc)
        try:
            os.unlink(path)
        except OSError:
            logger.debug("could not remove partial alias template path=%s", path)
        return False
    return True


def load_user_aliases(path: Path) -> dict[str, list[str]]:
    """Read the user alias file; absent, unreadable or malformed files yield {}."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        write_alias_template(path)
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("alias file unreadable path=%s: %s", path, exc)
        return {}
    return parse_user_aliases(raw, path)


def load_provider_aliases(path: Path) -> dict[str, list[str]]:
    return merge_aliases(DEFAULT_PROVIDER_ALIASES, load_user_aliases(path))


def _clean_table(aliases: Mapping[str, Iterable[str]]) -> dict[str, list[str]]:
    table: dict[str, list[str]] = {}
    for provider, names in aliases.items():
        key = provider.strip().lower()
        if not key:
            continue
        known = table.setdefault(key, [])
        for alias in names:
            alias = alias.strip().lower()
            if alias and alias not in known:
                known.append(alias)
    return table


def _claim(index: dict[str, str], name: str, provider: str) -> bool:
    current = index.setdefault(name, provider)
    if current != provider:
        logger.warning("alias '%s' already maps to '%s'; ignoring mapping to '%s'", name, current, provider)
        return False
    return True


def _index_table(index: dict[str, str], table: Mapping[str, Iterable[str]]) -> None:
    accepted = [provider for provider in table if _claim(index, provider, provider)]
    for provider in accepted:
        for alias in table[provider]:
            _claim(index, alias, provider)


class AliasResolver:
    """Maps any spelling of a provider name to its canonical name.

    ``aliases`` is authoritative. ``extra`` (the user file) is indexed after
    it, so an extra entry that collides with an existing mapping is dropped.
    """

    def __init__(
        self,
        aliases: Mapping[str, Iterable[str]] = DEFAULT_PROVIDER_ALIASES,
        extra: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        base = _clean_table(aliases)
        user = _clean_table(extra or {})
        index: dict[str, str] = {}
        _index_table(index, base)
        _index_table(index, user)
        table = merge_aliases(base, user)
        self._aliases = MappingProxyType(
            {p: tuple(a for a in names if index.get(a) == p) for p, names in table.items() if index.get(p) == p}
        )
        self._index = MappingProxyType(index)

    @classmethod
    def from_file(cls, path: Path) -> "AliasResolver":
        return cls(DEFAULT_PROVIDER_ALIASES, load_user_aliases(path))

    @property
    def aliases(self) -> Mapping[str, tuple[str, ...]]:
        return self._aliases

    @property
    def canonical_names(self) -> list[str]:
        return sorted(self._aliases)

    def normalize(self, raw_name: str) -> str:
        name = (raw_name or "").strip().lower()
        return self._index.get(name, name)
