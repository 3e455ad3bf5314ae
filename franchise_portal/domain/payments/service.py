"""
Payment service - Stripe Connect orchestration per franchise location

Each location owns at most one connected account. Customers, payment methods,
products, prices and subscriptions all live on that connected account.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from ... import config
from ...errors import CallableError
from ...utils.formatters import now_iso, to_cents
from .repository import PaymentRepository
from .schemas import (
    ConnectAccountRequest,
    LocationRequest,
    OnboardingStatus,
    PaymentMethodInfo,
    PaymentMethodRequest,
    RefundRequest,
    SetupSessionRequest,
    SubscriptionRequest,
)
from .stripe_client import StripeClient, StripeError, StripeNotConfigured

logger = logging.getLogger(__name__)

# Preference order when a customer has several saved methods
PAYMENT_METHOD_TYPES = ("card", "au_becs_debit")

RECENT_SETUP_SESSIONS = 5
RECENT_CHARGES = 10


@dataclass
class ResolvedPaymentMethod:
    customer_id: Optional[str]
    payment_method: Optional[PaymentMethodInfo]
    source: Optional[str] = None


def _validate(model, payload: dict):
    try:
        return model.model_validate(payload or {})
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise CallableError("invalid-argument", f"Invalid or missing fields: {fields}") from e


def _object_id(value) -> Optional[str]:
    """Stripe references may be an id string or an expanded object"""
    if isinstance(value, dict):
        return value.get("id")
    return value


class PaymentService:
    """Service for Stripe Connect operations"""

    def __init__(self, db, stripe):
        self.db = db
        self.stripe = stripe
        self.repo = PaymentRepository()

    # ── helpers ───────────────────────────────────────────────────────────

    def _require_stripe(self) -> StripeClient:
        if isinstance(self.stripe, StripeNotConfigured) or not self.stripe:
            logger.error("❌ Stripe not configured - STRIPE_SECRET_KEY missing")
            raise CallableError("failed-precondition", "Payments are not configured.")
        return self.stripe

    def _get_location(self, location_id: str) -> dict:
        location = self.repo.get_location(self.db, location_id)
        if location is None:
            raise CallableError("not-found", f"Location {location_id} not found.")
        return location

    def _require_account(self, location_id: str) -> tuple[dict, str]:
        location = self._get_location(location_id)
        account_id = location.get("stripeAccountId")
        if not account_id:
            raise CallableError(
                "failed-precondition", "This location has not connected a Stripe account yet."
            )
        return location, account_id

    def _persist_payment_method(self, parent_id: Optional[str], resolved: ResolvedPaymentMethod) -> None:
        if not parent_id or not resolved.payment_method:
            return
        try:
            self.repo.update_parent(
                self.db,
                parent_id,
                {
                    "stripeCustomerId": resolved.customer_id,
                    "paymentMethod": resolved.payment_method.model_dump(exclude_none=True),
                    "paymentMethodUpdatedAt": now_iso(),
                },
            )
        except Exception as e:
            logger.error(f"❌ Failed to store payment method on parent {parent_id}: {e}")

    # ── connected accounts ────────────────────────────────────────────────

    async def create_connect_account(self, payload: dict) -> dict:
        """
        Create the location's connected account, or re-link an existing one.

        An account is never recreated once stripeAccountId is stored; calling
        again only issues a fresh onboarding link.
        """
        request = _validate(ConnectAccountRequest, payload)
        stripe = self._require_stripe()
        location = self._get_location(request.locationId)

        account_id = location.get("stripeAccountId")
        existing = bool(account_id)
        if not existing:
            account = await stripe.create_account(
                {
                    "type": "express",
                    "country": (location.get("countryCode") or config.STRIPE_DEFAULT_COUNTRY).upper(),
                    "email": location.get("email"),
                    "business_profile": {"name": location.get("name")},
                    "capabilities": {
                        "card_payments": {"requested": True},
                        "transfers": {"requested": True},
                        "au_becs_debit_payments": {"requested": True},
                    },
                    "metadata": {"locationId": request.locationId},
                }
            )
            account_id = account["id"]
            self.repo.update_location(
                self.db,
                request.locationId,
                {
                    "stripeAccountId": account_id,
                    "stripeOnboardingStatus": OnboardingStatus.PENDING_ONBOARDING.value,
                    "stripeAccountCreatedAt": now_iso(),
                },
            )
            logger.info(f"✅ Created Stripe account {account_id} for location {request.locationId}")
        else:
            logger.info(f"Location {request.locationId} already has Stripe account {account_id}, re-linking")

        link = await stripe.create_account_link(
            {
                "account": account_id,
                "refresh_url": request.refreshUrl or f"{config.PORTAL_URL}?stripe=refresh",
                "return_url": request.returnUrl or f"{config.PORTAL_URL}?stripe=return",
                "type": "account_onboarding",
            }
        )
        return {"accountId": account_id, "url": link.get("url"), "existing": existing}

    async def get_connect_account_status(self, payload: dict) -> dict:
        """Refresh the location's onboarding status from Stripe"""
        request = _validate(LocationRequest, payload)
        stripe = self._require_stripe()
        location = self._get_location(request.locationId)

        account_id = location.get("stripeAccountId")
        if not account_id:
            return {"status": OnboardingStatus.NO_ACCOUNT.value}

        account = await stripe.retrieve_account(account_id)
        charges_enabled = bool(account.get("charges_enabled"))
        payouts_enabled = bool(account.get("payouts_enabled"))
        status = (
            OnboardingStatus.ONBOARDED
            if charges_enabled and payouts_enabled
            else OnboardingStatus.PENDING_ONBOARDING
        )

        self.repo.update_location(
            self.db,
            request.locationId,
            {
                "stripeOnboardingStatus": status.value,
                "stripeChargesEnabled": charges_enabled,
                "stripePayoutsEnabled": payouts_enabled,
            },
        )
        return {
            "status": status.value,
            "accountId": account_id,
            "chargesEnabled": charges_enabled,
            "payoutsEnabled": payouts_enabled,
        }

    # ── customer / payment method resolution ──────────────────────────────

    async def _first_payment_method(self, account_id: str, customer_id: str) -> Optional[PaymentMethodInfo]:
        for pm_type in PAYMENT_METHOD_TYPES:
            methods = await self.stripe.list_payment_methods(account_id, customer_id, pm_type)
            if methods:
                return PaymentMethodInfo.from_stripe(methods[0])
        return None

    async def resolve_payment_method(
        self,
        account_id: str,
        email: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> ResolvedPaymentMethod:
        """
        Find the customer and payment method to use on a connected account.

        Order: the given checkout session, then a customer matching the email,
        then the most recent completed setup-mode checkout sessions.

        Raises:
            CallableError: not-found when no payment method can be resolved
        """
        customer_id = None
        payment_method = None
        source = None

        if session_id:
            session = await self.stripe.retrieve_checkout_session(account_id, session_id)
            customer_id = _object_id(session.get("customer"))
            setup_intent = session.get("setup_intent") or {}
            pm_id = _object_id(setup_intent.get("payment_method")) if isinstance(setup_intent, dict) else None
            if customer_id:
                source = "checkout_session"
                if pm_id:
                    payment_method = PaymentMethodInfo.from_stripe(
                        await self.stripe.retrieve_payment_method(account_id, pm_id)
                    )

        if not customer_id and email:
            customers = await self.stripe.list_customers(account_id, email)
            if customers:
                customer_id = customers[0]["id"]
                source = "customer_email"

        if not customer_id:
            sessions = await self.stripe.list_checkout_sessions(account_id, limit=RECENT_SETUP_SESSIONS)
            for session in sessions:
                if session.get("mode") == "setup" and session.get("customer"):
                    customer_id = _object_id(session["customer"])
                    source = "recent_setup_session"
                    break

        if customer_id and not payment_method:
            payment_method = await self._first_payment_method(account_id, customer_id)

        if not customer_id or not payment_method:
            logger.warning(f"⚠️ No payment method resolved on {account_id} (email={email}, session={session_id})")
            raise CallableError("not-found", "No saved payment method was found for this customer.")

        logger.info(f"Resolved payment method {payment_method.id} for customer {customer_id} via {source}")
        return ResolvedPaymentMethod(customer_id, payment_method, source)

    async def find_or_create_customer(self, account_id: str, email: str, name: Optional[str] = None) -> str:
        customers = await self.stripe.list_customers(account_id, email)
        if customers:
            return customers[0]["id"]
        customer = await self.stripe.create_customer(account_id, {"email": email, "name": name})
        logger.info(f"✅ Created Stripe customer {customer['id']} on {account_id}")
        return customer["id"]

    async def create_setup_session(self, payload: dict) -> dict:
        """Open a setup-mode checkout session so a parent can save a card or BECS account"""
        request = _validate(SetupSessionRequest, payload)
        self._require_stripe()
        location, account_id = self._require_account(request.locationId)

        customer_id = await self.find_or_create_customer(account_id, request.email, request.name)
        session = await self.stripe.create_checkout_session(
            account_id,
            {
                "mode": "setup",
                "customer": customer_id,
                "currency": location.get("currency") or config.STRIPE_DEFAULT_CURRENCY,
                "payment_method_types": list(PAYMENT_METHOD_TYPES),
                "success_url": request.successUrl
                or f"{config.PORTAL_URL}?setup=success&session_id={{CHECKOUT_SESSION_ID}}",
                "cancel_url": request.cancelUrl or f"{config.PORTAL_URL}?setup=cancel",
                "metadata": {"locationId": request.locationId, "parentId": request.parentId},
            },
        )
        return {"sessionId": session["id"], "url": session.get("url"), "customerId": customer_id}

    async def confirm_payment_method(self, payload: dict) -> dict:
        """Look up the saved payment method for a parent"""
        request = _validate(PaymentMethodRequest, payload)
        self._require_stripe()
        _, account_id = self._require_account(request.locationId)

        resolved = await self.resolve_payment_method(account_id, request.email, request.sessionId)
        self._persist_payment_method(request.parentId, resolved)
        return {
            "customerId": resolved.customer_id,
            "paymentMethod": resolved.payment_method.model_dump(exclude_none=True),
        }

    async def save_payment_method_from_checkout(self, payload: dict) -> dict:
        """Attach the method saved at checkout and make it the customer's default"""
        request = _validate(PaymentMethodRequest, payload)
        self._require_stripe()
        _, account_id = self._require_account(request.locationId)

        resolved = await self.resolve_payment_method(account_id, request.email, request.sessionId)
        pm_id = resolved.payment_method.id

        try:
            await self.stripe.attach_payment_method(account_id, pm_id, resolved.customer_id)
        except StripeError as e:
            # Attaching an already-attached method is harmless
            logger.info(f"Payment method {pm_id} not attached ({e.message}), continuing")

        await self.stripe.update_customer(
            account_id,
            resolved.customer_id,
            {"invoice_settings": {"default_payment_method": pm_id}},
        )
        self._persist_payment_method(request.parentId, resolved)
        logger.info(f"✅ Saved payment method {pm_id} as default for {resolved.customer_id}")
        return {
            "customerId": resolved.customer_id,
            "paymentMethod": resolved.payment_method.model_dump(exclude_none=True),
        }

    # ── subscriptions ─────────────────────────────────────────────────────

    async def create_subscription(self, payload: dict) -> dict:
        """
        Create a weekly membership subscription on the location's account.

        Both the Sale and the Transaction documents are written whatever the
        activation outcome; the Sale is "active" only when Stripe says so.
        """
        request = _validate(SubscriptionRequest, payload)
        self._require_stripe()
        location, account_id = self._require_account(request.locationId)
        currency = location.get("currency") or config.STRIPE_DEFAULT_CURRENCY

        resolved = await self.resolve_payment_method(account_id, request.email, request.sessionId)
        customer_id = resolved.customer_id
        pm_id = resolved.payment_method.id if resolved.payment_method else None

        weekly_amount = round(request.basePrice + request.feeAmount, 2)
        first_payment_total = round(weekly_amount + request.joiningFee, 2)

        product = await self.stripe.create_product(
            account_id,
            {
                "name": f"{request.membershipName} - {location.get('name') or request.locationId}",
                "metadata": {"locationId": request.locationId},
            },
        )
        price = await self.stripe.create_price(
            account_id,
            {
                "product": product["id"],
                "unit_amount": to_cents(weekly_amount),
                "currency": currency,
                "recurring": {"interval": "week"},
            },
        )

        if request.joiningFee > 0:
            await self.stripe.create_invoice_item(
                account_id,
                {
                    "customer": customer_id,
                    "amount": to_cents(request.joiningFee),
                    "currency": currency,
                    "description": "Joining fee",
                },
            )

        subscription = await self.stripe.create_subscription(
            account_id,
            {
                "customer": customer_id,
                "items": [{"price": price["id"]}],
                "default_payment_method": pm_id,
                "payment_behavior": "allow_incomplete",
                "expand": ["latest_invoice"],
                "metadata": {"locationId": request.locationId, **(request.metadata or {})},
            },
        )
        stripe_status = subscription.get("status")
        invoice = subscription.get("latest_invoice") or {}
        invoice_id = _object_id(invoice)

        if isinstance(invoice, dict) and invoice.get("status") == "open" and pm_id:
            try:
                await self.stripe.pay_invoice(account_id, invoice_id, {"payment_method": pm_id})
                refreshed = await self.stripe.retrieve_subscription(account_id, subscription["id"])
                stripe_status = refreshed.get("status", stripe_status)
            except StripeError as e:
                logger.error(f"❌ Immediate payment of invoice {invoice_id} failed: {e.message}")

        status = "active" if stripe_status == "active" else "pending"
        timestamp = now_iso()
        sale = {
            "locationId": request.locationId,
            "parentId": request.parentId,
            "customerName": request.customerName,
            "customerEmail": request.email,
            "studentName": request.studentName,
            "membershipName": request.membershipName,
            "basePrice": request.basePrice,
            "feeAmount": request.feeAmount,
            "weeklyAmount": weekly_amount,
            "joiningFee": request.joiningFee,
            "firstPaymentTotal": first_payment_total,
            "currency": currency,
            "status": status,
            "stripeStatus": stripe_status,
            "stripeSubscriptionId": subscription["id"],
            "stripeCustomerId": customer_id,
            "stripePriceId": price["id"],
            "stripeProductId": product["id"],
            "stripePaymentMethodId": pm_id,
            "refunds": [],
            "createdAt": timestamp,
        }

        sale_id = None
        try:
            sale_id = self.repo.create_sale(self.db, sale)
        except Exception as e:
            logger.error(f"❌ Failed to write sale for subscription {subscription['id']}: {e}")

        try:
            self.repo.create_transaction(
                self.db,
                {
                    "saleId": sale_id,
                    "locationId": request.locationId,
                    "type": "subscription",
                    "amount": first_payment_total,
                    "currency": currency,
                    "status": "paid" if status == "active" else "pending",
                    "stripeInvoiceId": invoice_id,
                    "stripeSubscriptionId": subscription["id"],
                    "createdAt": timestamp,
                },
            )
        except Exception as e:
            logger.error(f"❌ Failed to write transaction for subscription {subscription['id']}: {e}")

        logger.info(f"✅ Subscription {subscription['id']} created ({stripe_status}) for sale {sale_id}")
        return {
            "saleId": sale_id,
            "subscriptionId": subscription["id"],
            "status": status,
            "stripeStatus": stripe_status,
        }

    # ── refunds ───────────────────────────────────────────────────────────

    async def process_refund(self, payload: dict) -> dict:
        """
        Refund part of a sale against the customer's most recent charge.

        Always ends in an appended refunds entry: "processed" when Stripe
        refunded, "recorded" (for manual follow-up) otherwise.
        """
        request = _validate(RefundRequest, payload)
        sale = self.repo.get_sale(self.db, request.saleId)
        if sale is None:
            raise CallableError("not-found", f"Sale {request.saleId} not found.")

        entry = {
            "amount": request.amount,
            "reason": request.reason or "",
            "processedAt": now_iso(),
        }

        try:
            refund, note = await self._refund_latest_charge(sale, request)
        except StripeError as e:
            logger.error(f"❌ Stripe refund failed for sale {request.saleId}: {e.message}")
            refund, note = None, f"Stripe refund failed: {e.message}"

        if refund is not None:
            entry.update(status="processed", stripeRefundId=refund["id"])
        else:
            entry.update(status="recorded", note=note)

        self.repo.append_refund(self.db, request.saleId, entry)
        logger.info(f"Refund for sale {request.saleId}: {entry['status']} ({request.amount})")
        return {"status": entry["status"], "refund": entry}

    async def _refund_latest_charge(self, sale: dict, request: RefundRequest) -> tuple[Optional[dict], Optional[str]]:
        """The Stripe refund, or None and the reason it was only recorded"""
        if not self.stripe:
            return None, "Payments are not configured; refund recorded for manual processing."

        location = self.repo.get_location(self.db, sale.get("locationId") or "") if sale.get("locationId") else None
        account_id = (location or {}).get("stripeAccountId")
        customer_id = sale.get("stripeCustomerId")
        if not account_id or not customer_id:
            return None, "No Stripe account or customer on this sale; refund recorded for manual processing."

        charges = await self.stripe.list_charges(account_id, customer_id, limit=RECENT_CHARGES)
        if not charges:
            return None, "No charge found for this customer; refund recorded for manual processing."

        # Most recent first; a customer with several charges refunds the latest
        refund = await self.stripe.create_refund(
            account_id,
            {
                "charge": charges[0]["id"],
                "amount": to_cents(request.amount),
                "metadata": {"saleId": request.saleId, "reason": request.reason or ""},
            },
        )
        return refund, None
