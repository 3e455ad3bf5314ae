"""Sessions router - recurring lesson generation"""

from fastapi import APIRouter, Depends

from ...auth import PARTNER_ROLES, Caller, require_roles
from ...firestore import get_db
from ...schemas import CallableRequest, callable_result
from .service import SessionService

router = APIRouter(prefix="/callable", tags=["Sessions"])


def get_session_service(db=Depends(get_db)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db)


@router.post("/generateSessions")
def generate_sessions(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: SessionService = Depends(get_session_service),
):
    return callable_result(service.generate(body.data, caller))
