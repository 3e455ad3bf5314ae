import logging
from typing import Optional

from fastapi import Depends, Header
from firebase_admin import auth as firebase_auth
from pydantic import BaseModel

from .errors import CallableError
from .firestore import USERS, get_db, get_firebase_app

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({"admin", "master_admin"})
MASTER_ROLES = frozenset({"master_admin"})
PARTNER_ROLES = frozenset({"admin", "master_admin", "franchise_partner"})


class Caller(BaseModel):
    """Authenticated caller of a callable operation"""

    uid: str
    role: Optional[str] = None
    email: Optional[str] = None
    locationId: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


def verify_id_token(token: str) -> dict:
    """Verify a Firebase ID token and return its decoded claims"""
    try:
        return firebase_auth.verify_id_token(token, app=get_firebase_app())
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError) as e:
        logger.warning(f"❌ Invalid Firebase ID token: {e}")
        raise CallableError("unauthenticated", "Invalid or expired sign-in token.") from e


async def get_caller_uid(authorization: Optional[str] = Header(default=None)) -> str:
    """Extract and verify the bearer token; the uid of the signed-in user"""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise CallableError("unauthenticated", "You must be signed in.")
    claims = verify_id_token(authorization.split(" ", 1)[1].strip())
    return claims["uid"]


def authorize(db, uid: Optional[str], allowed_roles) -> Caller:
    """
    Authorization guard shared by every operator-invoked operation.

    Raises:
        CallableError: unauthenticated without a uid,
            permission-denied when the stored role is not allowed
    """
    if not uid:
        raise CallableError("unauthenticated", "You must be signed in.")

    snapshot = db.collection(USERS).document(uid).get()
    data = snapshot.to_dict() if snapshot.exists else {}
    data = data or {}
    role = data.get("role")

    if role not in allowed_roles:
        logger.warning(f"⚠️ Permission denied for {uid} (role={role}), requires {sorted(allowed_roles)}")
        raise CallableError("permission-denied", "You do not have permission to perform this action.")

    return Caller(uid=uid, role=role, email=data.get("email"), locationId=data.get("locationId"))


def require_roles(allowed_roles):
    """FastAPI dependency factory applying the authorization guard"""

    async def dependency(uid: str = Depends(get_caller_uid), db=Depends(get_db)) -> Caller:
        return authorize(db, uid, allowed_roles)

    return dependency


def ensure_location_access(caller: Caller, location_id: str) -> None:
    """Franchise partners may only act on their own location"""
    if caller.is_admin:
        return
    if caller.locationId != location_id:
        raise CallableError("permission-denied", "You can only manage your own location.")
