"""Editor-side document model and event bus."""

from .document_model import DocumentWorkspace, EditDelta, LineDocument, TextSnapshot
from .events import (
    DEFAULT_EDIT_KIND,
    DocumentClosedEvent,
    DocumentEditedEvent,
    DocumentEvent,
    DocumentEventBus,
    DocumentOpenedEvent,
)

__all__ = [
    "DEFAULT_EDIT_KIND",
    "DocumentClosedEvent",
    "DocumentEditedEvent",
    "DocumentEvent",
    "DocumentEventBus",
    "DocumentOpenedEvent",
    "DocumentWorkspace",
    "EditDelta",
    "LineDocument",
    "TextSnapshot",
]
