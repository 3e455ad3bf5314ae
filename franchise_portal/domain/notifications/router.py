"""Notification routers - document-event deliveries and resend callables"""

import logging

from fastapi import APIRouter, Depends

from ...auth import ADMIN_ROLES, MASTER_ROLES, Caller, require_roles
from ...firestore import get_db
from ...schemas import CallableRequest, callable_result
from ...webhook_security import verify_trigger_token
from . import service
from .schemas import DocumentCreatedEvent, DocumentUpdatedEvent

logger = logging.getLogger(__name__)

events_router = APIRouter(
    prefix="/events", tags=["Events"], dependencies=[Depends(verify_trigger_token)]
)
router = APIRouter(prefix="/callable", tags=["Notifications"])


async def _run_trigger(name: str, document_id: str, coro) -> dict:
    """Event handlers must complete without raising"""
    try:
        summary = await coro
        return {"ok": True, "summary": summary}
    except Exception as e:
        logger.error(f"❌ Trigger {name} failed for {document_id}: {e}", exc_info=True)
        return {"ok": False}


# ============================================================================
# DOCUMENT EVENTS
# ============================================================================


@events_router.post("/locations/created")
async def location_created(event: DocumentCreatedEvent, db=Depends(get_db)):
    """locations/{locationId} created"""
    return await _run_trigger(
        "onLocationCreated",
        event.documentId,
        service.on_location_created(db, event.documentId, event.data),
    )


@events_router.post("/invites/created")
async def invite_created(event: DocumentCreatedEvent, db=Depends(get_db)):
    """invites/{inviteId} created"""
    return await _run_trigger(
        "onInviteCreated",
        event.documentId,
        service.on_invite_created(db, event.documentId, event.data),
    )


@events_router.post("/bookings/created")
async def booking_created(event: DocumentCreatedEvent, db=Depends(get_db)):
    """bookings/{bookingId} created"""
    return await _run_trigger(
        "onBookingCreated",
        event.documentId,
        service.on_booking_created(db, event.documentId, event.data),
    )


@events_router.post("/enquiries/created")
async def enquiry_created(event: DocumentCreatedEvent, db=Depends(get_db)):
    """enquiries/{enquiryId} created"""
    return await _run_trigger(
        "onEnquiryCreated",
        event.documentId,
        service.on_enquiry_created(db, event.documentId, event.data),
    )


@events_router.post("/sessions/updated")
async def session_updated(event: DocumentUpdatedEvent, db=Depends(get_db)):
    """sessions/{sessionId} updated"""
    return await _run_trigger(
        "onSessionUpdated",
        event.documentId,
        service.on_session_updated(db, event.documentId, event.before or {}, event.after or {}),
    )


# ============================================================================
# RESEND CALLABLES
# ============================================================================


@router.post("/resendConfirmationEmail")
async def resend_confirmation_email(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(ADMIN_ROLES)),
    db=Depends(get_db),
):
    """Resend a location's welcome email (HQ admins)"""
    logger.info(f"📧 {caller.uid} resending confirmation for location {body.data.get('locationId')}")
    return callable_result(await service.resend_confirmation_email(db, body.data.get("locationId")))


@router.post("/resendInviteEmail")
async def resend_invite_email(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(MASTER_ROLES)),
    db=Depends(get_db),
):
    """Resend a portal invitation (master admins)"""
    logger.info(f"📧 {caller.uid} resending invite {body.data.get('inviteId')}")
    return callable_result(await service.resend_invite_email(db, body.data.get("inviteId")))
