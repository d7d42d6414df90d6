"""On-disk fallback store used when no OS keyring is usable.

Layout: a single ``keyring.enc`` file of ``provider=hexvalue`` lines inside a
directory only the owner can enter. Values are XOR-obfuscated, which keeps
secrets out of casual view but is NOT encryption; the file mode is the actual
protection.

Every write re-serializes the whole table into a temp file and renames it over
the old one. Two processes writing at the same time will lose one update.
"""

from __future__ import annotations

import binascii
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from noidea_secure.secrets.base import SecretIOError, SecretNotFoundError, SecretStore

logger = logging.getLogger(__name__)

FALLBACK_FILE = "keyring.enc"
DIR_MODE = 0o700
FILE_MODE = 0o600

_OBFUSCATION_KEY = b"noiDeA-SEcUrE-ObfUsCaTiOn-KeY"


def _xor(data: bytes) -> bytes:
    key_len = len(_OBFUSCATION_KEY)
    return bytes(b ^ _OBFUSCATION_KEY[i % key_len] for i, b in enumerate(data))


def obfuscate(value: Union[str, bytes]) -> str:
    """XOR ``value`` with the embedded key and return lowercase hex."""
    raw = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    return _xor(raw).hex()


def deobfuscate(hex_text: str) -> bytes:
    """Inverse of :func:`obfuscate`. Raises ValueError on malformed hex."""
    try:
        raw = bytes.fromhex(hex_text)
    except ValueError as exc:
        raise ValueError(f"malformed obfuscated value: {exc}") from exc
    return _xor(raw)


def parse_records(text: str) -> dict[str, str]:
    """Parse ``provider=hexvalue`` lines, skipping anything unparseable."""
    records: dict[str, str] = {}
    for line in text.splitlines():
        provider, sep, value = line.rpartition("=")
        if not sep or not provider:
            continue
        try:
            binascii.unhexlify(value)
        except (binascii.Error, ValueError):
            logger.debug("skipping malformed fallback record for provider=%s", provider)
            continue
        records[provider] = value
    return records


def serialize_records(records: dict[str, str]) -> str:
    return "".join(f"{provider}={value}\n" for provider, value in records.items())


class FallbackSecretStore(SecretStore):
    name = "fallback"

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def path(self) -> Path:
        return self._directory / FALLBACK_FILE

    def get_secret(self, account: str) -> str:
        records = self._load()
        if account not in records:
            raise SecretNotFoundError(account)
        return deobfuscate(records[account]).decode("utf-8", errors="surrogateescape")

    def set_secret(self, account: str, value: str) -> None:
        _check_account(account)
        self._ensure_directory()
        records = self._load()
        records[account] = obfuscate(value.encode("utf-8", errors="surrogateescape"))
        self._write(records)
        logger.debug("stored fallback secret provider=%s path=%s", account, self.path)

    def delete_secret(self, account: str) -> None:
        records = self._load()
        if records.pop(account, None) is None:
            return
        self._write(records)
        logger.debug("deleted fallback secret provider=%s", account)

    def _ensure_directory(self) -> None:
        try:
            self._directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            os.chmod(self._directory, DIR_MODE)
        except OSError as exc:
            raise SecretIOError(f"failed to create secure directory {self._directory}: {exc}") from exc

    def _load(self) -> dict[str, str]:
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise SecretIOError(f"failed to read fallback store {self.path}: {exc}") from exc
        return parse_records(text)

    def _write(self, records: dict[str, str]) -> None:
        payload = serialize_records(records)
        tmp_name = ""
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".keyring-", suffix=".tmp", dir=self._directory)
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(payload)
                fp.flush()
                os.fsync(fp.fileno())
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise SecretIOError(f"failed to write fallback store {self.path}: {exc}") from exc


def _check_account(account: str) -> None:
    if not account or any(ch.isspace() for ch in account):
        raise ValueError(f"provider name cannot be stored in the fallback file: {account!r}")
