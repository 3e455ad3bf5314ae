"""Push router - broadcast notifications"""

import logging

from fastapi import APIRouter, Depends

from ...auth import ADMIN_ROLES, Caller, require_roles
from ...firestore import get_db
from ...schemas import CallableRequest, callable_result
from .service import PushService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/callable", tags=["Push"])


def get_push_service(db=Depends(get_db)) -> PushService:
    """Dependency injection for PushService"""
    return PushService(db)


@router.post("/sendPushBroadcast")
def send_push_broadcast(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(ADMIN_ROLES)),
    service: PushService = Depends(get_push_service),
):
    """Broadcast a push notification to the targeted locations"""
    return callable_result(service.broadcast(body.data, sent_by=caller.uid))
