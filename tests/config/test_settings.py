from pathlib import Path

import pytest

from noidea_secure.config.settings import (
    DEFAULT_SERVICE_NAME,
    SettingsLoadError,
    default_settings_path,
    load_settings,
)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_when_file_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    settings = load_settings(tmp_path / "missing.yaml", env={})

    assert settings.service_name == DEFAULT_SERVICE_NAME
    assert settings.fallback_dir == tmp_path / ".noidea" / "secure"
    assert settings.alias_file == tmp_path / ".noidea" / "secure" / "provider_aliases.json"
    assert settings.validation_timeout_seconds == 5.0
    assert settings.github_api_url == "https://api.github.com"


def test_values_from_yaml(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "secure.yaml",
        "service_name: noidea-dev\n"
        f"fallback_dir: {tmp_path / 'vault'}\n"
        "validation:\n"
        "  timeout_seconds: 2.5\n"
        "github:\n"
        "  api_url: https://github.example.com/api/v3/\n",
    )

    settings = load_settings(path, env={})

    assert settings.service_name == "noidea-dev"
    assert settings.fallback_dir == tmp_path / "vault"
    assert settings.validation_timeout_seconds == 2.5
    assert settings.github_api_url == "https://github.example.com/api/v3"


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = _write(tmp_path / "secure.yaml", "service_name: from-file\nfallback_dir: /from/file\n")

    settings = load_settings(
        path,
        env={"NOIDEA_SECRET_SERVICE_NAME": "from-env", "NOIDEA_SECURE_DIR": str(tmp_path / "env-dir")},
    )

    assert settings.service_name == "from-env"
    assert settings.fallback_dir == tmp_path / "env-dir"


def test_settings_path_override(tmp_path: Path) -> None:
    target = tmp_path / "custom.yaml"
    assert default_settings_path({"NOIDEA_SECURE_CONFIG": str(target)}) == target


def test_empty_file_uses_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    settings = load_settings(_write(tmp_path / "secure.yaml", ""), env={})
    assert settings.service_name == DEFAULT_SERVICE_NAME


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("- a\n- b\n", "settings root must be an object"),
        ("validation: 3\n", "validation must be an object"),
        ("validation:\n  timeout_seconds: 0\n", "timeout_seconds must be > 0"),
        ("validation:\n  timeout_seconds: soon\n", "timeout_seconds must be a number"),
        ("github:\n  api_url: http://api.github.com\n", "must be an https URL"),
        ("service_name: '  '\n", "service_name must not be empty"),
        ("key: [unclosed\n", "failed to read settings"),
    ],
)
def test_invalid_settings_are_rejected(tmp_path: Path, text: str, message: str) -> None:
    path = _write(tmp_path / "secure.yaml", text)
    with pytest.raises(SettingsLoadError, match=message):
        load_settings(path, env={"NOIDEA_SECURE_DIR": str(tmp_path)})


def test_unknown_home_leaves_fallback_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    def _no_home() -> Path:
        raise SettingsLoadError("failed to get home directory: $HOME is not set")

    monkeypatch.setattr("noidea_secure.config.settings._home", _no_home)

    settings = load_settings(env={})

    assert settings.fallback_dir is None
    assert settings.alias_file is None
    with pytest.raises(SettingsLoadError):
        settings.require_fallback_dir()
