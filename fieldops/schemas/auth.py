from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List

from .common import ShiftWindow, ensure_data_uri, empty_to_none


class RegisterRequest(BaseModel):
    # Required fields are checked by the account service so the error
    # surfaces as a validation_error with a readable message
    name: Optional[str] = None
    surname: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    signature: Optional[str] = None

    @field_validator("name", "surname", "email", "phone", mode="before")
    @classmethod
    def strip_fields(cls, v):
        return empty_to_none(v)

    @field_validator("signature", mode="before")
    @classmethod
    def signature_uri(cls, v):
        return ensure_data_uri(v)


class LoginRequest(BaseModel):
    email: str
    password: Optional[str] = None


class SetPasswordRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)


class SetSignatureRequest(BaseModel):
    email: str
    password: str
    signature: str

    @field_validator("signature", mode="before")
    @classmethod
    def signature_uri(cls, v):
        v = ensure_data_uri(v)
        if v is None:
            raise ValueError("signature is required")
        return v


class UserOut(BaseModel):
    id: str
    name: str
    surname: str
    email: str
    phone: Optional[str] = None
    role: str
    custom_schedule: Optional[List[ShiftWindow]] = None
    has_password: bool
    has_signature: bool
    is_active: bool


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def known_role(cls, v):
        v = (v or "").strip().lower()
        if v == "user":
            v = "employee"
        if v not in {"admin", "employee"}:
            raise ValueError("role must be 'admin' or 'employee'")
        return v


class ScheduleUpdate(BaseModel):
    custom_schedule: Optional[List[ShiftWindow]] = None
