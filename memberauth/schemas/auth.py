"""Auth request/response schemas."""
import re
from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

CONTACT_MIN_DIGITS = 10
CONTACT_MAX_DIGITS = 15


def _normalize_contact(value: str | None) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", value.strip())


class RegisterRequest(BaseModel):
    full_name: str
    email: EmailStr
    contact: str = ""
    dob: date

    @field_validator("full_name")
    @classmethod
    def full_name_present(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Full name is required.")
        return v

    @field_validator("contact")
    @classmethod
    def contact_valid(cls, v: str) -> str:
        if not (v or "").strip():
            return ""
        digits = _normalize_contact(v)
        if len(digits) < CONTACT_MIN_DIGITS:
            raise ValueError(f"Contact number must have at least {CONTACT_MIN_DIGITS} digits.")
        if len(digits) > CONTACT_MAX_DIGITS:
            raise ValueError(f"Contact number cannot exceed {CONTACT_MAX_DIGITS} digits.")
        return v.strip()

    @field_validator("dob")
    @classmethod
    def dob_in_past(cls, v: date) -> date:
        if v >= date.today():
            raise ValueError("Date of birth must be in the past.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr


class OtpRequest(BaseModel):
    """Email plus the code that was sent to it. The code is compared as-is."""
    email: EmailStr
    otp: str

    @field_validator("otp", mode="before")
    @classmethod
    def otp_as_text(cls, v):
        # Clients may send the code as a JSON number; a wrong code must still fail as InvalidOtp
        if isinstance(v, (int, float)):
            return str(v)
        return v


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: str
    full_name: str
    email: str
    contact: str | None = None
    dob: date


class AuthenticationResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    member: MemberResponse


class MessageResponse(BaseModel):
    message: str
