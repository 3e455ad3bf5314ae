"""
Stripe Connect Client

Thin async wrapper over the Stripe REST API. Every call that touches a
franchise location's funds is scoped with that location's connected account
via the Stripe-Account header.
"""

import logging
from typing import Any, Optional

import httpx

from ... import config

logger = logging.getLogger(__name__)


class StripeError(Exception):
    """Raised when Stripe answers with a non-2xx status"""

    def __init__(self, message: str, status_code: int = 0, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


class StripeNotConfigured:
    """Result of get_stripe_client() when no secret key is available"""

    reason = "STRIPE_SECRET_KEY is not configured"

    def __bool__(self) -> bool:
        return False


def encode_params(params: Optional[dict], prefix: Optional[str] = None) -> dict[str, str]:
    """
    Flatten nested params into Stripe's bracket notation.

    {"recurring": {"interval": "week"}, "expand": ["setup_intent"]} becomes
    {"recurring[interval]": "week", "expand[0]": "setup_intent"}
    """
    encoded: dict[str, str] = {}
    if not params:
        return encoded

    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            encoded.update(encode_params(value, name))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                item_name = f"{name}[{index}]"
                if isinstance(item, dict):
                    encoded.update(encode_params(item, item_name))
                else:
                    encoded[item_name] = _scalar(item)
        else:
            encoded[name] = _scalar(value)
    return encoded


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class StripeClient:
    """Async Stripe API client bound to one secret key"""

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = (base_url or config.STRIPE_API_URL).rstrip("/")
        self.transport = transport
        self.timeout = timeout

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        account: Optional[str] = None,
    ) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if account:
            headers["Stripe-Account"] = account

        encoded = encode_params(params)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as http_client:
                if method == "GET":
                    response = await http_client.get(
                        f"{self.base_url}{path}", params=encoded, headers=headers
                    )
                else:
                    response = await http_client.request(
                        method, f"{self.base_url}{path}", data=encoded, headers=headers
                    )
        except httpx.HTTPError as e:
            logger.error(f"Stripe {method} {path} transport error: {str(e)}")
            raise StripeError(f"Stripe request failed: {str(e)}") from e

        if response.status_code >= 400:
            try:
                error = response.json().get("error", {})
            except ValueError:
                error = {}
            message = error.get("message") or response.text
            logger.error(f"Stripe {method} {path} failed ({response.status_code}): {message}")
            raise StripeError(message, response.status_code, error.get("code"))

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Stripe {method} {path} returned a non-JSON body ({response.status_code})")
            raise StripeError("Stripe returned an unreadable response", response.status_code) from e

    # ── Connected accounts ────────────────────────────────────────────────

    async def create_account(self, params: dict) -> dict:
        return await self.request("POST", "/accounts", params)

    async def retrieve_account(self, account_id: str) -> dict:
        return await self.request("GET", f"/accounts/{account_id}")

    async def create_account_link(self, params: dict) -> dict:
        return await self.request("POST", "/account_links", params)

    # ── Customers and payment methods ─────────────────────────────────────

    async def list_customers(self, account: str, email: str, limit: int = 1) -> list[dict]:
        result = await self.request("GET", "/customers", {"email": email, "limit": limit}, account)
        return result.get("data", [])

    async def create_customer(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/customers", params, account)

    async def update_customer(self, account: str, customer_id: str, params: dict) -> dict:
        return await self.request("POST", f"/customers/{customer_id}", params, account)

    async def list_payment_methods(self, account: str, customer_id: str, pm_type: str) -> list[dict]:
        result = await self.request(
            "GET", "/payment_methods", {"customer": customer_id, "type": pm_type}, account
        )
        return result.get("data", [])

    async def retrieve_payment_method(self, account: str, payment_method_id: str) -> dict:
        return await self.request("GET", f"/payment_methods/{payment_method_id}", account=account)

    async def attach_payment_method(self, account: str, payment_method_id: str, customer_id: str) -> dict:
        return await self.request(
            "POST", f"/payment_methods/{payment_method_id}/attach", {"customer": customer_id}, account
        )

    async def detach_payment_method(self, account: str, payment_method_id: str) -> dict:
        return await self.request("POST", f"/payment_methods/{payment_method_id}/detach", account=account)

    async def create_setup_intent(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/setup_intents", params, account)

    # ── Checkout ──────────────────────────────────────────────────────────

    async def create_checkout_session(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/checkout/sessions", params, account)

    async def retrieve_checkout_session(self, account: str, session_id: str) -> dict:
        return await self.request(
            "GET", f"/checkout/sessions/{session_id}", {"expand": ["setup_intent"]}, account
        )

    async def list_checkout_sessions(self, account: str, limit: int = 5, status: str = "complete") -> list[dict]:
        result = await self.request(
            "GET", "/checkout/sessions", {"limit": limit, "status": status}, account
        )
        return result.get("data", [])

    # ── Billing ───────────────────────────────────────────────────────────

    async def create_product(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/products", params, account)

    async def create_price(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/prices", params, account)

    async def create_invoice_item(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/invoiceitems", params, account)

    async def create_subscription(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/subscriptions", params, account)

    async def retrieve_subscription(self, account: str, subscription_id: str) -> dict:
        return await self.request("GET", f"/subscriptions/{subscription_id}", account=account)

    async def pay_invoice(self, account: str, invoice_id: str, params: Optional[dict] = None) -> dict:
        return await self.request("POST", f"/invoices/{invoice_id}/pay", params, account)

    async def list_charges(self, account: str, customer_id: str, limit: int = 10) -> list[dict]:
        result = await self.request(
            "GET", "/charges", {"customer": customer_id, "limit": limit}, account
        )
        return result.get("data", [])

    async def create_refund(self, account: str, params: dict) -> dict:
        return await self.request("POST", "/refunds", params, account)


# Constructed on first use and kept for the lifetime of the process
_client: Optional[StripeClient] = None


def get_stripe_client():
    """
    Return the shared StripeClient, or StripeNotConfigured when no secret
    key is available at call time.
    """
    global _client
    if _client is not None:
        return _client

    api_key = config.get_stripe_secret_key()
    if not api_key:
        logger.warning("STRIPE_SECRET_KEY not set; payment operations will fail until configured")
        return StripeNotConfigured()

    _client = StripeClient(api_key)
    logger.info("Stripe client initialized")
    return _client


def reset_stripe_client() -> None:
    global _client
    _client = None
