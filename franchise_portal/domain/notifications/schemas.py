"""Notification schemas - document event deliveries"""

from typing import Any, Optional

from pydantic import BaseModel


class DocumentCreatedEvent(BaseModel):
    """A document-created delivery for one Firestore document"""

    documentId: str
    data: dict[str, Any] = {}


class DocumentUpdatedEvent(BaseModel):
    """A document-updated delivery with before/after snapshots"""

    documentId: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
