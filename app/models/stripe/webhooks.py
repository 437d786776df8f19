from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class EventType(str, Enum):
    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    CHECKOUT_SESSION_ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"

    def __str__(self):
        return self.value


class EventData(BaseModel):
    object: Dict[str, Any]


class WebhookEvent(BaseModel):
    id: str
    type: str
    created: Optional[int] = None
    livemode: bool = False
    data: EventData

    model_config = ConfigDict(extra="ignore")

    @property
    def issues_license(self) -> bool:
        return self.type in (
            EventType.CHECKOUT_SESSION_COMPLETED.value,
            EventType.CHECKOUT_SESSION_ASYNC_PAYMENT_SUCCEEDED.value,
        )


class WebhookResult(BaseModel):
    received: bool = True
    duplicate: bool = False
    license_code: Optional[str] = None
    customer_email: Optional[str] = None
    ignored: bool = False

    @property
    def should_notify(self) -> bool:
        return bool(self.license_code and self.customer_email and not self.duplicate)

    def to_response(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {"received": self.received}
        if self.duplicate:
            response["duplicate"] = True
        if self.ignored:
            response["ignored"] = True
        return response
