"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Field aliases keep the camelCase wire names clients already send.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
)
from pydantic.alias_generators import to_camel

# StringConstraints must precede BeforeValidator to show up in the JSON schema.
# Clients may send the code as a JSON number.
OtpCode = Annotated[
    str,
    StringConstraints(pattern=r"^\d{6}$"),
    BeforeValidator(lambda v: str(v).strip() if v is not None else v),
    Field(description="6-digit one-time code"),
]


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterEmailRequest(_Request):
    """Request model for starting registration."""

    email: EmailStr


class VerifyEmailRequest(_Request):
    verification_otp: OtpCode = Field(..., alias="verificationOTP")


class RegisterRequest(_Request):
    """Request model for completing registration."""

    username: str = Field(..., min_length=1, max_length=64)
    full_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, description="User password")
    bio: str | None = None


class LoginRequest(_Request):
    username_or_email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(_Request):
    refresh_token: str | None = None


class ChangePasswordRequest(_Request):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_new_password: str = Field(..., min_length=1)


class ForgotPasswordOtpRequest(_Request):
    username_or_email: str = Field(..., min_length=1)


class VerifyForgotPasswordOtpRequest(_Request):
    forgot_password_otp: OtpCode = Field(..., alias="forgotPasswordOTP")


class ResetPasswordRequest(_Request):
    new_password: str = Field(..., min_length=1)


class UpdateEmailRequest(_Request):
    new_email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyUpdateEmailRequest(_Request):
    update_email_otp: OtpCode = Field(..., alias="updateEmailOTP")


class UpdateProfileRequest(_Request):
    """Every field is optional; absent fields are left unchanged."""

    full_name: str | None = None
    bio: str | None = None
    username: str | None = None


class DeleteAccountRequest(_Request):
    password: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    """Public user profile; never carries password, refresh token or OTPs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., serialization_alias="_id")
    username: str
    email: str
    full_name: str
    bio: str
    avatar: str
    cover_image: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApiResponse(BaseModel):
    """Success envelope shared by every endpoint."""

    status: int
    data: Any = None
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    status: int
    message: str
