from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from app.models.users import RequestDTO, normalize_email


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"

    def __str__(self):
        return self.value


class CustomerDetails(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class CheckoutSession(BaseModel):
    id: str
    object: Literal["checkout.session"] = "checkout.session"
    url: Optional[str] = None
    mode: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    customer_email: Optional[str] = None
    customer_details: Optional[CustomerDetails] = None
    metadata: Dict[str, Any] = {}

    model_config = ConfigDict(extra="ignore")

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_default(cls, v: Any) -> Any:
        return v or {}

    @property
    def is_paid(self) -> bool:
        return self.payment_status in (PaymentStatus.PAID, PaymentStatus.NO_PAYMENT_REQUIRED)

    @property
    def purchaser_email(self) -> Optional[str]:
        email = (self.customer_details.email if self.customer_details else None) or self.customer_email
        return normalize_email(email) if email else None

    @property
    def price_id(self) -> Optional[str]:
        return self.metadata.get("price_id") or self.metadata.get("priceId")


class CreateCheckoutDTO(RequestDTO):
    price_id: Optional[str] = None
    customer_email: Optional[EmailStr] = None
