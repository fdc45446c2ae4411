"""Tests for the command line entry point."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from socrates import app
from socrates.feedback.errors import TransportError
from socrates.services.settings import Settings, SettingsStore
from tests.helpers import FakeTransport


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app, "configure_logging", lambda *args, **kwargs: None)


def _write_essay(tmp_path: Path) -> Path:
    path = tmp_path / "essay.md"
    path.write_text("\n".join(f"Line {index}" for index in range(10)), encoding="utf-8")
    return path


@pytest.mark.asyncio
async def test_review_file_prints_one_based_locations(tmp_path: Path) -> None:
    path = _write_essay(tmp_path)
    transport = FakeTransport([json.dumps({"comments": [{"line_number": 3, "comment": "Weak claim"}]})])
    out = io.StringIO()

    code = await app.review_file(path, Settings(), stream=out, transport=transport, timeout=2.0)

    assert code == 0
    assert out.getvalue() == f"{path}:3: Weak claim\n"
    _, payload = transport.calls[0]
    assert payload.changed_lines == tuple(range(10))
    assert payload.language == "markdown"


@pytest.mark.asyncio
async def test_review_file_json_output(tmp_path: Path) -> None:
    path = _write_essay(tmp_path)
    feedback = [{"lineRange": [4, 5], "title": "Vague", "description": "Say who."}]
    transport = FakeTransport([json.dumps(feedback)])
    out = io.StringIO()

    code = await app.review_file(path, Settings(), as_json=True, stream=out, transport=transport, timeout=2.0)

    document = json.loads(out.getvalue())
    assert code == 0
    assert document["path"] == str(path)
    assert document["annotations"][0]["line_range"] == [4, 5]
    assert document["annotations"][0]["body"] == "Say who."


@pytest.mark.asyncio
async def test_review_file_reports_transport_failures(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_essay(tmp_path)
    transport = FakeTransport([TransportError(message="service down")])

    code = await app.review_file(path, Settings(), stream=io.StringIO(), transport=transport, timeout=2.0)

    assert code == 1
    assert "service down" in capsys.readouterr().err


def test_main_exits_with_config_error_without_credentials(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_essay(tmp_path)

    code = app.main(["review", str(path), "--settings", str(tmp_path / "settings.json")])

    assert code == 2
    assert "API key" in capsys.readouterr().err


def test_main_reports_unreadable_files(tmp_path: Path) -> None:
    code = app.main(["review", str(tmp_path / "missing.md"), "--settings", str(tmp_path / "settings.json")])

    assert code == 1


def test_main_dumps_settings_with_redacted_key(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    settings_path = tmp_path / "settings.json"
    SettingsStore(settings_path).save(Settings(api_key="sk-very-secret"))

    code = app.main(["settings", "--settings", str(settings_path), "--set", "debounce_ms=250"])

    document = json.loads(capsys.readouterr().out)
    assert code == 0
    assert document["path"] == str(settings_path)
    assert document["settings"]["api_key"] == "sk**********et"
    assert document["settings"]["debounce_ms"] == 250


def test_main_rejects_bad_overrides(tmp_path: Path) -> None:
    code = app.main(["settings", "--settings", str(tmp_path / "settings.json"), "--set", "nonsense"])

    assert code == 2


def test_coerce_cli_overrides_casts_types() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "debounce_ms=500",
            "response_threshold=0.25",
            "review_on_attach=yes",
            "organization=none",
            "languages=[\"markdown\", \"text\"]",
            "default_headers={\"X-A\": \"1\"}",
            "feedback_timeout_ms=2000",
        ]
    )

    assert overrides == {
        "debounce_ms": 500,
        "response_threshold": 0.25,
        "review_on_attach": True,
        "organization": None,
        "languages": ["markdown", "text"],
        "default_headers": {"X-A": "1"},
        "feedback_timeout_ms": 2000,
    }


@pytest.mark.parametrize("entry", ["debounce_ms", "=1", "unknown=1", "review_on_attach=maybe", "languages={}"])
def test_coerce_cli_overrides_rejects_invalid_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])
