"""Transports and prompts for the external feedback service."""

from .client import AIClient, ClientSettings, OpenAITransport
from .http_transport import HttpEndpointTransport, HttpTransportSettings

__all__ = [
    "AIClient",
    "ClientSettings",
    "HttpEndpointTransport",
    "HttpTransportSettings",
    "OpenAITransport",
]
