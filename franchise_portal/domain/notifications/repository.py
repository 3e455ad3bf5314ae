"""Notification repository - Firestore reads and *SentAt stamps for domain records"""

import logging
from typing import Optional

from ...utils.formatters import now_iso

logger = logging.getLogger(__name__)


class RecordRepository:
    """Single-document reads/updates on domain records"""

    @staticmethod
    def get_record(db, collection: str, doc_id: Optional[str]) -> Optional[dict]:
        """Get a document's data, or None when it does not exist"""
        if not doc_id:
            return None
        snapshot = db.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    @staticmethod
    def stamp(db, collection: str, doc_id: str, field: str) -> Optional[str]:
        """Set field to the current ISO timestamp; failures are logged, never raised"""
        timestamp = now_iso()
        try:
            db.collection(collection).document(doc_id).update({field: timestamp})
        except Exception as e:
            logger.error(f"❌ Failed to set {field} on {collection}/{doc_id}: {e}")
            return None
        return timestamp
