"""Settings loader for noidea secure storage."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from noidea_secure.config.aliases import ALIAS_FILE

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "noidea-git-tool"
DEFAULT_FALLBACK_DIR = Path(".noidea") / "secure"
DEFAULT_SETTINGS_FILE = Path(".noidea") / "secure.yaml"
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_GITHUB_API_URL = "https://api.github.com"

ENV_SETTINGS_PATH = "NOIDEA_SECURE_CONFIG"
ENV_SERVICE_NAME = "NOIDEA_SECRET_SERVICE_NAME"
ENV_FALLBACK_DIR = "NOIDEA_SECURE_DIR"


@dataclass(frozen=True)
class SecureSettings:
    service_name: str
    # None when the home directory cannot be determined.
    fallback_dir: Optional[Path]
    validation_timeout_seconds: float
    github_api_url: str

    @property
    def alias_file(self) -> Optional[Path]:
        return self.fallback_dir / ALIAS_FILE if self.fallback_dir is not None else None

    def require_fallback_dir(self) -> Path:
        if self.fallback_dir is None:
            raise SettingsLoadError("failed to get home directory for fallback storage")
        return self.fallback_dir


class SettingsLoadError(RuntimeError):
    """Raised when settings cannot be loaded."""


def _home() -> Path:
    try:
        return Path.home()
    except (RuntimeError, KeyError, OSError) as exc:
        raise SettingsLoadError(f"failed to get home directory: {exc}") from exc


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise SettingsLoadError(f"{key} must be an object")
    return value


def default_settings_path(env: Mapping[str, str] = os.environ) -> Optional[Path]:
    override = env.get(ENV_SETTINGS_PATH, "").strip()
    if override:
        return Path(override).expanduser()
    try:
        return _home() / DEFAULT_SETTINGS_FILE
    except SettingsLoadError as exc:
        logger.warning("no settings file used: %s", exc)
        return None


def load_settings(path: Optional[Path] = None, env: Mapping[str, str] = os.environ) -> SecureSettings:
    settings_path = path if path is not None else default_settings_path(env)

    raw: Any = {}
    if settings_path is not None and settings_path.exists():
        try:
            raw = yaml.safe_load(settings_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise SettingsLoadError(f"failed to read settings {settings_path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise SettingsLoadError("settings root must be an object")

    validation_raw = _section(raw, "validation")
    github_raw = _section(raw, "github")

    service_name = str(env.get(ENV_SERVICE_NAME, "") or raw.get("service_name", DEFAULT_SERVICE_NAME)).strip()
    if not service_name:
        raise SettingsLoadError("service_name must not be empty")

    fallback_raw = str(env.get(ENV_FALLBACK_DIR, "") or raw.get("fallback_dir", "")).strip()
    fallback_dir: Optional[Path]
    if fallback_raw:
        fallback_dir = Path(fallback_raw).expanduser()
    else:
        try:
            fallback_dir = _home() / DEFAULT_FALLBACK_DIR
        except SettingsLoadError as exc:
            logger.warning("fallback storage disabled: %s", exc)
            fallback_dir = None

    try:
        timeout_seconds = float(validation_raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError) as exc:
        raise SettingsLoadError("validation.timeout_seconds must be a number") from exc
    if timeout_seconds <= 0:
        raise SettingsLoadError("validation.timeout_seconds must be > 0")

    github_api_url = str(github_raw.get("api_url", DEFAULT_GITHUB_API_URL)).strip().rstrip("/")
    if not github_api_url.startswith("https://"):
        raise SettingsLoadError(f"github.api_url must be an https URL: {github_api_url}")

    return SecureSettings(
        service_name=service_name,
        fallback_dir=fallback_dir,
        validation_timeout_seconds=timeout_seconds,
        github_api_url=github_api_url,
    )
