"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from socrates.services.settings import SecretVault, Settings, SettingsStore, redact_secret


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = SettingsStore(tmp_path / "settings.json", vault=SecretVault(key_path=tmp_path / "key"))

    assert store.load() == Settings()


def test_save_and_load_roundtrip_encrypts_api_key(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    original = Settings(
        transport="http",
        api_key="super-secret",
        endpoint_url="https://feedback.example.invalid",
        default_headers={"X-Test": "1"},
        debounce_ms=750,
        languages=["markdown", "text"],
        feedback_timeout_ms=30_000,
    )

    SettingsStore(path).save(original)
    raw = json.loads(path.read_text(encoding="utf-8"))
    reloaded = SettingsStore(path).load()

    assert "api_key" not in raw
    assert raw["api_key_ciphertext"].startswith("fernet:")
    assert "super-secret" not in path.read_text(encoding="utf-8")
    assert raw["version"] == 1
    assert path.with_suffix(".key").exists()
    assert reloaded == original


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")

    assert SettingsStore(path).load() == Settings()


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"model": "custom", "theme": "dark"}), encoding="utf-8")

    assert SettingsStore(path).load().model == "custom"


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    SettingsStore(path).save(Settings(base_url="https://local", api_key="abc"))
    monkeypatch.setenv("SOCRATES_BASE_URL", "https://env-base")
    monkeypatch.setenv("SOCRATES_API_KEY", "env-key")
    monkeypatch.setenv("SOCRATES_DEBOUNCE_MS", "250")
    monkeypatch.setenv("SOCRATES_RESPONSE_THRESHOLD", "0.25")
    monkeypatch.setenv("SOCRATES_REVIEW_ON_ATTACH", "yes")

    overridden = SettingsStore(path).load()

    assert overridden.base_url == "https://env-base"
    assert overridden.api_key == "env-key"
    assert overridden.debounce_ms == 250
    assert overridden.response_threshold == pytest.approx(0.25)
    assert overridden.review_on_attach is True


def test_invalid_numeric_env_override_is_ignored(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SOCRATES_DEBOUNCE_MS", "soon")

    assert SettingsStore(tmp_path / "settings.json").load().debounce_ms == 1_000


def test_cli_overrides_apply_before_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SOCRATES_MODEL", "env-model")

    settings = SettingsStore(tmp_path / "settings.json").load(overrides={"model": "cli-model", "temperature": 0.1})

    assert settings.model == "env-model"
    assert settings.temperature == pytest.approx(0.1)


def test_feedback_config_reflects_settings() -> None:
    config = Settings(
        debounce_ms=250,
        response_threshold=0.5,
        edit_event_classes=["Lines", "chars"],
        languages=["Markdown"],
        feedback_timeout_ms=1_500,
    ).feedback_config()

    assert config.debounce_seconds == pytest.approx(0.25)
    assert config.counts_as_edit("chars")
    assert config.accepts_language("markdown")
    assert not config.accepts_language("python")
    assert config.request_timeout_seconds == pytest.approx(1.5)


def test_vault_ignores_unknown_token_prefix(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "settings.key")

    assert vault.decrypt(vault.encrypt("abc")) == "abc"
    assert vault.decrypt("rot13:nop") == ""
    assert vault.encrypt("") == ""


def test_redact_secret() -> None:
    assert redact_secret("") == ""
    assert redact_secret("abc") == "***"
    assert redact_secret("sk-123456") == "sk*****56"
