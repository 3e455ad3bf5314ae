"""Payment repository - Firestore operations for locations, sales and transactions"""

from typing import Optional

from firebase_admin import firestore

from ...firestore import LOCATIONS, PARENTS, SALES, TRANSACTIONS


class PaymentRepository:
    """Repository for payment-related Firestore documents"""

    @staticmethod
    def get_location(db, location_id: str) -> Optional[dict]:
        snapshot = db.collection(LOCATIONS).document(location_id).get()
        return (snapshot.to_dict() or {}) if snapshot.exists else None

    @staticmethod
    def update_location(db, location_id: str, updates: dict) -> None:
        db.collection(LOCATIONS).document(location_id).update(updates)

    @staticmethod
    def update_parent(db, parent_id: str, updates: dict) -> None:
        db.collection(PARENTS).document(parent_id).set(updates, merge=True)

    @staticmethod
    def get_sale(db, sale_id: str) -> Optional[dict]:
        snapshot = db.collection(SALES).document(sale_id).get()
        return (snapshot.to_dict() or {}) if snapshot.exists else None

    @staticmethod
    def create_sale(db, data: dict) -> str:
        ref = db.collection(SALES).document()
        ref.set(data)
        return ref.id

    @staticmethod
    def create_transaction(db, data: dict) -> str:
        ref = db.collection(TRANSACTIONS).document()
        ref.set(data)
        return ref.id

    @staticmethod
    def append_refund(db, sale_id: str, entry: dict) -> None:
        """Append to the sale's refund log; entries are never edited or removed"""
        db.collection(SALES).document(sale_id).update({"refunds": firestore.ArrayUnion([entry])})
