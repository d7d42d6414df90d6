"""Security regression anchors for secure storage."""

import re
from pathlib import Path


def test_fallback_store_replaces_file_atomically() -> None:
    text = Path("noidea_secure/secrets/fallback_store.py").read_text(encoding="utf-8")
    assert "os.replace(" in text
    assert "os.fsync(" in text
    assert '"a"' not in text


def test_fallback_store_restricts_permissions() -> None:
    text = Path("noidea_secure/secrets/fallback_store.py").read_text(encoding="utf-8")
    assert "DIR_MODE = 0o700" in text
    assert "FILE_MODE = 0o600" in text


def test_secrets_are_never_logged() -> None:
    for path in Path("noidea_secure").rglob("*.py"):
        text = path.read_text(encoding="utf-8")
        for match in re.finditer(r"logger\.\w+\(([^)]*)", text):
            args = match.group(1).rsplit('"', 1)[-1]
            names = set(re.findall(r"\w+", args))
            assert not names & {"api_key", "secret", "token", "value"}, f"{path}: {match.group(0)}"


def test_cli_reads_keys_without_echo() -> None:
    text = Path("noidea_secure/main.py").read_text(encoding="utf-8")
    assert "getpass.getpass" in text


def test_validators_use_stdlib_http_only() -> None:
    for name in ("key_validator.py", "github_http.py"):
        text = Path("noidea_secure/adapters", name).read_text(encoding="utf-8")
        assert "import requests" not in text
        assert "import httpx" not in text
