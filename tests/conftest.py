import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Iterator

import pytest
from keyring.errors import NoKeyringError, PasswordDeleteError

from noidea_secure.config.aliases import AliasResolver
from noidea_secure.config.settings import SecureSettings
from noidea_secure.secrets.fallback_store import FallbackSecretStore
from noidea_secure.secrets.keyring_store import KeyringSecretStore
from noidea_secure.secrets.tiered_store import TieredSecretStore

SERVICE = "noidea-test"

_PROXY_VARS = ("http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY")


class MemoryKeyring:
    """Stands in for the keyring module: same three calls, same delete error."""

    def __init__(self) -> None:
        self.passwords: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str):
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self.passwords[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found") from None


class BrokenKeyring:
    """Behaves like keyring's fail backend on a headless machine."""

    def get_password(self, *args):
        raise NoKeyringError("No recommended backend was available.")

    set_password = delete_password = get_password


class _StatusHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        self.server.requests.append({k.lower(): v for k, v in self.headers.items()})  # type: ignore[attr-defined]
        tail = self.path.rstrip("/").rsplit("/", 1)[-1]
        status = int(tail) if tail.isdigit() else self.server.status  # type: ignore[attr-defined]
        body = self.server.body  # type: ignore[attr-defined]
        self.send_response(status)
        self.send_header("content-type", "application/json")
        self.send_header("content-length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args) -> None:  # noqa: A002
        return


@pytest.fixture
def memory_keyring() -> MemoryKeyring:
    return MemoryKeyring()


@pytest.fixture
def broken_keyring() -> BrokenKeyring:
    return BrokenKeyring()


@pytest.fixture
def secure_dir(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".noidea" / "secure"


@pytest.fixture
def settings(secure_dir: Path) -> SecureSettings:
    return SecureSettings(
        service_name=SERVICE,
        fallback_dir=secure_dir,
        validation_timeout_seconds=2.0,
        github_api_url="https://api.github.com",
    )


@pytest.fixture
def store(memory_keyring: MemoryKeyring, secure_dir: Path) -> TieredSecretStore:
    return TieredSecretStore(
        [KeyringSecretStore(SERVICE, backend=memory_keyring), FallbackSecretStore(secure_dir)],
        resolver=AliasResolver(),
    )


@pytest.fixture
def fallback_only_store(broken_keyring: BrokenKeyring, secure_dir: Path) -> TieredSecretStore:
    return TieredSecretStore(
        [KeyringSecretStore(SERVICE, backend=broken_keyring), FallbackSecretStore(secure_dir)],
        resolver=AliasResolver(),
    )


@pytest.fixture
def stub_http(monkeypatch: pytest.MonkeyPatch) -> Iterator[HTTPServer]:
    """Local server answering ``GET .../<status>`` with that status, else ``server.status``."""
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)
    server = HTTPServer(("127.0.0.1", 0), _StatusHandler)
    server.requests = []  # type: ignore[attr-defined]
    server.body = b"{}"  # type: ignore[attr-defined]
    server.status = 200  # type: ignore[attr-defined]
    server.base_url = "http://127.0.0.1:%d" % server.server_address[1]  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


@pytest.fixture
def closed_port_url(monkeypatch: pytest.MonkeyPatch) -> str:
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}/v1/models"
