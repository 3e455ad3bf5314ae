"""Session repository - Firestore operations for scheduled lessons"""

from typing import Optional

from ...firestore import SALES, SESSIONS


class SessionRepository:
    """Repository for session documents"""

    @staticmethod
    def get_sale(db, sale_id: str) -> Optional[dict]:
        snapshot = db.collection(SALES).document(sale_id).get()
        return (snapshot.to_dict() or {}) if snapshot.exists else None

    @staticmethod
    def session_ref(db, session_id: str):
        return db.collection(SESSIONS).document(session_id)
