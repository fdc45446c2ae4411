"""Settings persistence and telemetry services."""

from .settings import SecretVault, Settings, SettingsStore
from .telemetry import EventRecorder, emit, register_event_listener, unregister_event_listener

__all__ = [
    "EventRecorder",
    "SecretVault",
    "Settings",
    "SettingsStore",
    "emit",
    "register_event_listener",
    "unregister_event_listener",
]
