"""Payments router - Stripe Connect callables"""

import logging

from fastapi import APIRouter, Depends

from ...auth import ADMIN_ROLES, PARTNER_ROLES, Caller, ensure_location_access, require_roles
from ...errors import CallableError
from ...firestore import get_db
from ...schemas import CallableRequest, callable_result
from .service import PaymentService
from .stripe_client import get_stripe_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/callable", tags=["Payments"])


def get_payment_service(db=Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, get_stripe_client())


def _location_scope(caller: Caller, data: dict) -> None:
    location_id = data.get("locationId")
    if not location_id:
        raise CallableError("invalid-argument", "locationId is required.")
    ensure_location_access(caller, location_id)


@router.post("/createConnectAccount")
async def create_connect_account(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    _location_scope(caller, body.data)
    return callable_result(await service.create_connect_account(body.data))


@router.post("/getConnectAccountStatus")
async def get_connect_account_status(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    _location_scope(caller, body.data)
    return callable_result(await service.get_connect_account_status(body.data))


@router.post("/createSetupSession")
async def create_setup_session(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    _location_scope(caller, body.data)
    return callable_result(await service.create_setup_session(body.data))


@router.post("/confirmPaymentMethod")
async def confirm_payment_method(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    _location_scope(caller, body.data)
    return callable_result(await service.confirm_payment_method(body.data))


@router.post("/savePaymentMethodFromCheckout")
async def save_payment_method_from_checkout(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    _location_scope(caller, body.data)
    return callable_result(await service.save_payment_method_from_checkout(body.data))


@router.post("/createSubscription")
async def create_subscription(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(PARTNER_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a weekly membership and record the sale"""
    _location_scope(caller, body.data)
    logger.info(f"💳 {caller.uid} creating subscription for location {body.data.get('locationId')}")
    return callable_result(await service.create_subscription(body.data))


@router.post("/processRefund")
async def process_refund(
    body: CallableRequest,
    caller: Caller = Depends(require_roles(ADMIN_ROLES)),
    service: PaymentService = Depends(get_payment_service),
):
    """Refund (or record a refund against) a sale"""
    logger.info(f"💸 {caller.uid} processing refund for sale {body.data.get('saleId')}")
    return callable_result(await service.process_refund(body.data))
