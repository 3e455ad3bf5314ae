import pytest

from franchise_portal.auth import ADMIN_ROLES, MASTER_ROLES, Caller, authorize, ensure_location_access
from franchise_portal.errors import CallableError
from franchise_portal.firestore import USERS


def test_authorize_requires_uid(db):
    with pytest.raises(CallableError) as exc:
        authorize(db, None, ADMIN_ROLES)
    assert exc.value.code == "unauthenticated"
    assert exc.value.status_code == 401


def test_authorize_rejects_wrong_role(db):
    db.seed(USERS, "u1", {"role": "admin"})
    with pytest.raises(CallableError) as exc:
        authorize(db, "u1", MASTER_ROLES)
    assert exc.value.code == "permission-denied"


def test_authorize_rejects_missing_user_document(db):
    with pytest.raises(CallableError) as exc:
        authorize(db, "ghost", ADMIN_ROLES)
    assert exc.value.code == "permission-denied"


def test_authorize_returns_caller(db):
    db.seed(USERS, "u1", {"role": "master_admin", "email": "boss@example.com"})
    caller = authorize(db, "u1", MASTER_ROLES)
    assert caller.uid == "u1"
    assert caller.is_admin


def test_location_access():
    ensure_location_access(Caller(uid="a", role="admin"), "anywhere")
    ensure_location_access(Caller(uid="p", role="franchise_partner", locationId="loc1"), "loc1")
    with pytest.raises(CallableError):
        ensure_location_access(Caller(uid="p", role="franchise_partner", locationId="loc1"), "loc2")


def test_error_payload_shape():
    error = CallableError("failed-precondition", "Payments are not configured.")
    assert error.status_code == 400
    assert error.to_payload() == {
        "error": {"status": "FAILED_PRECONDITION", "message": "Payments are not configured."}
    }
