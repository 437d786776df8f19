import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def normalize_email(email: str) -> str:
    return email.strip().lower()


class RequestDTO(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class RegisterDTO(RequestDTO):
    email: EmailStr
    password: str = Field(min_length=1)
    license_code: Optional[str] = None
    name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)


class LoginDTO(RequestDTO):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return normalize_email(v)


class RedeemDTO(RequestDTO):
    code: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    user_id: Optional[uuid.UUID] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else v

    @model_validator(mode="after")
    def _requires_user(self) -> "RedeemDTO":
        if not self.email and not self.user_id:
            raise ValueError("email or userId is required")
        return self


class User(BaseModel):
    id: uuid.UUID
    email: str
    password_hash: Optional[str] = None
    name: Optional[str] = None
    created_at: Optional[datetime] = None

    def public(self) -> Dict[str, Any]:
        return {"id": str(self.id), "email": self.email, "name": self.name}


class ValidateLicenseDTO(RequestDTO):
    license_key: str = Field(min_length=1)
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v else v
