"""Push repository - device tokens and broadcast records"""

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from ...firestore import LOCATIONS, PUSH_BROADCASTS, USERS


class PushRepository:
    """Repository for push broadcast targeting"""

    @staticmethod
    def list_locations(db) -> list[tuple[str, dict]]:
        return [(doc.id, doc.to_dict() or {}) for doc in db.collection(LOCATIONS).stream()]

    @staticmethod
    def list_users_for_location(db, location_id: str) -> list[tuple[str, dict]]:
        query = db.collection(USERS).where(filter=FieldFilter("locationId", "==", location_id))
        return [(doc.id, doc.to_dict() or {}) for doc in query.stream()]

    @staticmethod
    def remove_tokens(db, user_id: str, tokens: list[str]) -> None:
        db.collection(USERS).document(user_id).update({"fcmTokens": firestore.ArrayRemove(tokens)})

    @staticmethod
    def create_broadcast(db, data: dict) -> str:
        ref = db.collection(PUSH_BROADCASTS).document()
        ref.set(data)
        return ref.id
