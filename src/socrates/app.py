"""Command line entry point for running feedback reviews over files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .bootstrap import create_engine
from .editor.document_model import DocumentWorkspace
from .editor.overlays import OverlaySink
from .feedback.types import Annotation
from .services.settings import Settings, SettingsStore, redact_secret
from .services.telemetry import register_event_listener, unregister_event_listener
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def configure_logging(
    debug: bool = False,
    *,
    settings_debug: bool = False,
    force: bool = False,
    console: bool = True,
) -> Path:
    """Configure logging for the command line tools and return the log file path."""

    policy = logging_utils.LoggingPolicy.resolve(cli_debug=debug, settings_debug=settings_debug, console=console)
    return logging_utils.setup_logging(policy, force=force)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except Exception as exc:  # pragma: no cover - unreadable key or settings file
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point invoked by the `socrates` console script."""

    args = _parse_cli_args(argv)
    configure_logging(args.debug)

    settings_path = args.settings_path or os.environ.get("SOCRATES_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)
    configure_logging(args.debug, settings_debug=settings.debug_logging)

    if args.command == "settings":
        _dump_settings(settings, settings_store)
        return EXIT_OK
    return asyncio.run(
        review_file(
            Path(args.file),
            settings,
            language=args.language,
            as_json=bool(args.json),
        )
    )


async def review_file(
    path: Path,
    settings: Settings,
    *,
    language: str | None = None,
    as_json: bool = False,
    stream: TextIO | None = None,
    transport: Any = None,
    timeout: float | None = None,
) -> int:
    """Run one full review of ``path`` and print the resulting annotations."""

    out = stream or sys.stdout
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Unable to read {path}: {exc}", file=sys.stderr)
        return EXIT_FAILED

    document_id = str(path)
    language = (language or _guess_language(path)).lower()
    workspace = DocumentWorkspace()
    workspace.open(document_id, text, language=language)
    sink = OverlaySink()
    engine = create_engine(settings, text_source=workspace, sink=sink, transport=transport)
    if engine.is_dormant:
        print(f"Feedback unavailable: {engine.dormant_reason}", file=sys.stderr)
        return EXIT_CONFIG

    notices: list[dict[str, Any]] = []
    register_event_listener("feedback.notice", notices.append)
    try:
        engine.attach(document_id, review=True)
        await engine.wait_until_idle(document_id, timeout=timeout)
        annotations = engine.annotations(document_id)
    finally:
        unregister_event_listener("feedback.notice", notices.append)
        await engine.aclose()
        await _close_transport(engine)

    for notice in notices:
        print(f"{path}: {notice.get('message', 'feedback request failed')}", file=sys.stderr)
    _print_annotations(path, annotations, as_json=as_json, stream=out)
    return EXIT_FAILED if notices else EXIT_OK


def _print_annotations(path: Path, annotations: Sequence[Annotation], *, as_json: bool, stream: TextIO) -> None:
    if as_json:
        payload = {"path": str(path), "annotations": [annotation.to_dict() for annotation in annotations]}
        stream.write(json.dumps(payload, indent=2, ensure_ascii=False))
        stream.write("\n")
        return
    for annotation in sorted(annotations, key=lambda item: item.line_range.start):
        stream.write(f"{path}:{annotation.line_range.start + 1}: {annotation.title}\n")
        if annotation.body:
            for line in annotation.body.splitlines():
                stream.write(f"    {line}\n")


async def _close_transport(engine: Any) -> None:
    transport = getattr(engine, "transport", None)
    close = getattr(transport, "aclose", None)
    if close is None:
        return
    try:
        await close()
    except Exception as exc:  # pragma: no cover - best effort shutdown
        _LOGGER.debug("Transport close failed: %s", exc)


def _guess_language(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in {".md", ".markdown", ".mdown"}:
        return "markdown"
    if suffix in {".txt", ""}:
        return "text"
    return suffix.lstrip(".")


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--settings",
        "--settings-path",
        dest="settings_path",
        metavar="PATH",
        help="Override the default ~/.socrates/settings.json path.",
    )
    common.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    common.add_argument("--debug", action="store_true", help="Enable debug logging.")

    parser = argparse.ArgumentParser(
        prog="socrates",
        add_help=True,
        description="Ask the configured feedback service to review a document.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    review = subparsers.add_parser("review", parents=[common], help="Review FILE and print its annotations.")
    review.add_argument("file", metavar="FILE", help="Document to review.")
    review.add_argument("--json", action="store_true", help="Print annotations as JSON.")
    review.add_argument("--language", metavar="LANG", help="Language tag (defaults from the file suffix).")

    subparsers.add_parser(
        "settings",
        parents=[common],
        help="Print the effective settings (secrets redacted) and exit.",
    )
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and type(None) in get_args(annotation):
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target in (list, dict):
        try:
            value = json.loads(normalized or ("[]" if target is list else "{}"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Expected a JSON {target.__name__}") from exc
        if not isinstance(value, target):
            raise ValueError(f"Expected a JSON {target.__name__}")
        return value
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return _resolve_annotation(args[0])


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(settings: Settings, store: SettingsStore, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    document = {"path": str(store.path), "settings": payload}
    out.write(json.dumps(document, indent=2, sort_keys=True))
    out.write("\n")


__all__ = ["configure_logging", "load_settings", "main", "review_file"]
