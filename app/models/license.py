from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator, model_validator


class LicenseStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    REDEEMED = "redeemed"

    def __str__(self):
        return self.value

    @classmethod
    def normalize(cls, value: str | None) -> "LicenseStatus":
        if value is None:
            return cls.AVAILABLE
        value = str(value).strip().lower()
        return cls(LEGACY_STATUSES.get(value, value))

    def spellings(self) -> list[str]:
        """All stored spellings of this status, canonical first."""
        return [self.value] + [legacy for legacy, canonical in LEGACY_STATUSES.items() if canonical == self.value]


# synonyms written by older revisions of the schema
LEGACY_STATUSES = {
    "unused": "available",
    "sold": "reserved",
    "used": "redeemed",
}

TRANSITIONS = {
    LicenseStatus.AVAILABLE: {LicenseStatus.RESERVED, LicenseStatus.REDEEMED},
    LicenseStatus.RESERVED: {LicenseStatus.REDEEMED},
    LicenseStatus.REDEEMED: set(),
}

REDEEMABLE_STATUSES = (LicenseStatus.AVAILABLE, LicenseStatus.RESERVED)


def can_transition(current: LicenseStatus, target: LicenseStatus) -> bool:
    return target in TRANSITIONS[current]


class LicenseMetadata(BaseModel):
    stripe_session: Optional[str] = None
    customer_email: Optional[str] = None

    model_config = {"extra": "allow"}


class License(BaseModel):
    id: int | str
    code: str
    status: LicenseStatus
    user_id: Optional[str] = None
    redeemed_at: Optional[datetime] = None
    product_id: Optional[str] = None
    metadata: LicenseMetadata = LicenseMetadata()
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_columns(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("code") and data.get("license_key"):
                data["code"] = data["license_key"]
            data["status"] = LicenseStatus.normalize(data.get("status"))
            if data.get("user_id") is not None:
                data["user_id"] = str(data["user_id"])
            if data.get("metadata") is None:
                data["metadata"] = {}
        return data

    @field_validator("code")
    @classmethod
    def _strip_code(cls, v: str) -> str:
        return v.strip()

    @property
    def is_redeemable(self) -> bool:
        return self.status in REDEEMABLE_STATUSES


class RedemptionResult(BaseModel):
    license: License
    user_id: Optional[str] = None
    replayed: bool = False

    def to_response(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "message": "License activated",
            "license": self.license.code,
            "replayed": self.replayed,
        }
