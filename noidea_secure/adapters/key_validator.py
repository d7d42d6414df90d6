"""Provider API key validation against each provider's model listing endpoint.

Listing models is free and has no side effects, so it doubles as an auth
probe. Only 401/403 prove a key is wrong; any other answer means the server
accepted the credential well enough to respond about something else.
"""

from __future__ import annotations

import http.client
import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from noidea_secure.config.aliases import AliasResolver

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
AUTH_REJECTED_STATUSES = frozenset({401, 403})


class ValidationNetworkError(RuntimeError):
    """Raised when the provider could not be reached to check a key."""


class InvalidKeyError(RuntimeError):
    """Raised when the provider rejected a key with an auth-specific status."""

    def __init__(self, provider: str, status: int) -> None:
        self.provider = provider
        self.status = status
        super().__init__(f"{provider} rejected the API key (HTTP {status})")


@dataclass(frozen=True)
class ProviderEndpoint:
    url: str
    auth_header: str = "Authorization"
    auth_scheme: Optional[str] = "Bearer"
    extra_headers: Mapping[str, str] = field(default_factory=dict)

    def headers_for(self, api_key: str) -> dict[str, str]:
        credential = f"{self.auth_scheme} {api_key}" if self.auth_scheme else api_key
        headers = {self.auth_header: credential, "accept": "application/json"}
        headers.update(self.extra_headers)
        return headers


PROVIDER_ENDPOINTS: Mapping[str, ProviderEndpoint] = {
    "openai": ProviderEndpoint("https://api.openai.com/v1/models"),
    "xai": ProviderEndpoint("https://api.x.ai/v1/models"),
    "deepseek": ProviderEndpoint("https://api.deepseek.com/v1/models"),
    "mistral": ProviderEndpoint("https://api.mistral.ai/v1/models"),
    "anthropic": ProviderEndpoint(
        "https://api.anthropic.com/v1/models",
        auth_header="x-api-key",
        auth_scheme=None,
        extra_headers={"anthropic-version": "2023-06-01"},
    ),
}
DEFAULT_ENDPOINT = PROVIDER_ENDPOINTS["openai"]


def request_status(url: str, headers: Mapping[str, str], timeout_seconds: float) -> int:
    """GET ``url`` and return the HTTP status, raising only on transport failure."""
    req = Request(url=url, method="GET", headers=dict(headers))
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            return int(resp.status)
    except HTTPError as exc:
        exc.close()
        return int(exc.code)
    except URLError as exc:
        reason = exc.reason if getattr(exc, "reason", None) else str(exc)
        raise ValidationNetworkError(f"connection error: {reason}") from exc
    except (OSError, ValueError, http.client.HTTPException) as exc:
        raise ValidationNetworkError(f"connection error: {exc}") from exc


class KeyValidator:
    def __init__(
        self,
        resolver: Optional[AliasResolver] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        endpoints: Optional[Mapping[str, ProviderEndpoint]] = None,
        default_endpoint: ProviderEndpoint = DEFAULT_ENDPOINT,
    ) -> None:
        self._resolver = resolver or AliasResolver()
        self._timeout_seconds = timeout_seconds
        self._endpoints = dict(PROVIDER_ENDPOINTS if endpoints is None else endpoints)
        self._default_endpoint = default_endpoint

    def endpoint_for(self, provider: str) -> ProviderEndpoint:
        return self._endpoints.get(self._resolver.normalize(provider), self._default_endpoint)

    def probe(self, provider: str, api_key: str) -> int:
        endpoint = self.endpoint_for(provider)
        logger.debug("validating %s key against %s", self._resolver.normalize(provider), endpoint.url)
        status = request_status(endpoint.url, endpoint.headers_for(api_key), self._timeout_seconds)
        logger.debug("validation endpoint answered HTTP %s", status)
        return status

    def validate(self, provider: str, api_key: str) -> bool:
        return self.probe(provider, api_key) not in AUTH_REJECTED_STATUSES

    def ensure_valid(self, provider: str, api_key: str) -> None:
        status = self.probe(provider, api_key)
        if status in AUTH_REJECTED_STATUSES:
            raise InvalidKeyError(self._resolver.normalize(provider), status)


def validate_api_key(
    provider: str,
    api_key: str,
    resolver: Optional[AliasResolver] = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> bool:
    return KeyValidator(resolver=resolver, timeout_seconds=timeout_seconds).validate(provider, api_key)
