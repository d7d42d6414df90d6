"""GitHub personal access token check via ``GET /user`` (no SDK dependency)."""

from __future__ import annotations

import http.client
import json
from dataclasses import dataclass
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from noidea_secure.adapters.key_validator import DEFAULT_TIMEOUT_SECONDS, ValidationNetworkError
from noidea_secure.config.settings import DEFAULT_GITHUB_API_URL


@dataclass(frozen=True)
class GitHubTokenCheck:
    valid: bool
    status: int
    login: Optional[str] = None
    name: Optional[str] = None


def check_github_token(
    token: str,
    api_url: str = DEFAULT_GITHUB_API_URL,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> GitHubTokenCheck:
    req = Request(
        url=f"{api_url.rstrip('/')}/user",
        method="GET",
        headers={
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        },
    )
    try:
        with urlopen(req, timeout=timeout_seconds) as resp:
            status = int(resp.status)
            raw = resp.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        exc.close()
        return GitHubTokenCheck(valid=False, status=int(exc.code))
    except URLError as exc:
        reason = exc.reason if getattr(exc, "reason", None) else str(exc)
        raise ValidationNetworkError(f"GitHub connection error: {reason}") from exc
    except (OSError, ValueError, http.client.HTTPException) as exc:
        raise ValidationNetworkError(f"GitHub connection error: {exc}") from exc

    if status != 200:
        return GitHubTokenCheck(valid=False, status=status)

    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError:
        payload = None
    if not isinstance(payload, dict):
        return GitHubTokenCheck(valid=True, status=status)

    login = payload.get("login")
    name = payload.get("name")
    return GitHubTokenCheck(
        valid=True,
        status=status,
        login=login if isinstance(login, str) and login else None,
        name=name if isinstance(name, str) and name else None,
    )
