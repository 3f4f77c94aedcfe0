"""User and authentication schemas."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRegister(BaseModel):
    """Registration payload. Accepts camelCase names as sent by the web client."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: EmailStr
    password: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    phone_prefix: Optional[str] = None
    date_of_birth: Optional[date] = None
    rodo: bool = False


class UserLogin(BaseModel):
    # Any string; a malformed address must fail like an unknown one
    email: str
    password: str


class UserUpdate(BaseModel):
    """Partial profile update; only fields sent by the client are applied."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    phone_prefix: Optional[str] = None
    date_of_birth: Optional[date] = None


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., alias="currentPassword")
    new_password: str = Field(..., alias="newPassword")


class UserResponse(BaseModel):
    """Public profile; never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    phone_number: Optional[str] = None
    phone_prefix: Optional[str] = None
    date_of_birth: Optional[date] = None
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class UserEnvelope(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
