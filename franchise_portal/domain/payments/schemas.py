"""Payment domain schemas - Pydantic models for validation"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator


class OnboardingStatus(str, Enum):
    NO_ACCOUNT = "no_account"
    PENDING_ONBOARDING = "pending_onboarding"
    ONBOARDED = "onboarded"


class PaymentMethodInfo(BaseModel):
    """Normalized card / BECS payment method"""

    id: str
    type: str  # "card" | "au_becs_debit"
    brand: Optional[str] = None
    last4: Optional[str] = None
    expMonth: Optional[int] = None
    expYear: Optional[int] = None

    @classmethod
    def from_stripe(cls, payment_method: dict) -> "PaymentMethodInfo":
        pm_type = payment_method.get("type")
        if pm_type == "card":
            card = payment_method.get("card") or {}
            return cls(
                id=payment_method["id"],
                type="card",
                brand=card.get("brand"),
                last4=card.get("last4"),
                expMonth=card.get("exp_month"),
                expYear=card.get("exp_year"),
            )
        becs = payment_method.get("au_becs_debit") or {}
        return cls(
            id=payment_method["id"],
            type="au_becs_debit",
            brand="BECS Direct Debit",
            last4=becs.get("last4"),
        )


class ConnectAccountRequest(BaseModel):
    """Schema for createConnectAccount"""

    locationId: str
    refreshUrl: Optional[str] = None
    returnUrl: Optional[str] = None


class LocationRequest(BaseModel):
    """Schema for getConnectAccountStatus"""

    locationId: str


class SetupSessionRequest(BaseModel):
    """Schema for createSetupSession"""

    locationId: str
    email: str
    name: Optional[str] = None
    parentId: Optional[str] = None
    successUrl: Optional[str] = None
    cancelUrl: Optional[str] = None


class PaymentMethodRequest(BaseModel):
    """Schema for confirmPaymentMethod / savePaymentMethodFromCheckout"""

    locationId: str
    email: Optional[str] = None
    sessionId: Optional[str] = None
    parentId: Optional[str] = None


class SubscriptionRequest(BaseModel):
    """Schema for createSubscription"""

    locationId: str
    email: str
    customerName: Optional[str] = None
    parentId: Optional[str] = None
    studentName: Optional[str] = None
    sessionId: Optional[str] = None
    membershipName: str = "Weekly Membership"
    basePrice: float
    feeAmount: float = 0
    joiningFee: float = 0
    metadata: Optional[dict[str, Any]] = None

    @field_validator("basePrice")
    @classmethod
    def validate_base_price(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("basePrice must be greater than zero")
        return v

    @field_validator("feeAmount", "joiningFee")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("amounts cannot be negative")
        return v


class RefundRequest(BaseModel):
    """Schema for processRefund"""

    saleId: str
    amount: float
    reason: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("amount must be greater than zero")
        return v
