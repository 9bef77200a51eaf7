"""
Domain entities - User, pending registration and partial-write structs.

Entities are plain dataclasses. ``UserChanges`` is the explicit
optional-field struct for partial writes: a field left at ``UNSET`` is
not written, ``None`` clears it.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any

from .otp import OtpGrant

DEFAULT_BIO = "Welcome to my profile! Excited to connect and share with everyone."


class _Unset:
    """Marker for a field absent from a partial write."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class User:
    """Identity record as held by the credential store."""

    id: str
    username: str
    email: str
    full_name: str
    password: str  # bcrypt digest, never plaintext
    bio: str = DEFAULT_BIO
    avatar: str = ""
    cover_image: str = ""
    refresh_token: str | None = None
    forgot_password_otp: OtpGrant | None = None
    update_email_otp: OtpGrant | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_profile(self) -> "UserProfile":
        """Redacted view without password, refresh token or OTP fields."""
        return UserProfile(
            id=self.id,
            username=self.username,
            email=self.email,
            full_name=self.full_name,
            bio=self.bio,
            avatar=self.avatar,
            cover_image=self.cover_image,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """Public projection of a user."""

    id: str
    username: str
    email: str
    full_name: str
    bio: str
    avatar: str
    cover_image: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class NewUser:
    """Fields needed to create a user. ``password`` is plaintext until stored."""

    username: str
    email: str
    full_name: str
    password: str
    bio: str = DEFAULT_BIO
    avatar: str = ""
    cover_image: str = ""


@dataclass(frozen=True)
class UserChanges:
    """Partial write onto a user record; only set fields are applied."""

    username: str = UNSET
    email: str = UNSET
    full_name: str = UNSET
    bio: str = UNSET
    avatar: str = UNSET
    cover_image: str = UNSET
    password: str = UNSET
    refresh_token: str | None = UNSET
    forgot_password_otp: OtpGrant | None = UNSET
    update_email_otp: OtpGrant | None = UNSET

    def present(self) -> dict[str, Any]:
        """Return only the fields this write touches."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


@dataclass(frozen=True)
class ProfileChanges:
    """Optional profile fields a user may edit on their own account."""

    full_name: str | None = None
    bio: str | None = None
    username: str | None = None


@dataclass
class PendingRegistration:
    """Transient record holding the registration OTP for one email."""

    email: str
    otp: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class SessionTokens:
    """Access and refresh tokens, always issued together."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""

    tokens: SessionTokens
    user: UserProfile


@dataclass(frozen=True)
class RegistrationForm:
    """Profile fields submitted to complete registration."""

    username: str
    full_name: str
    password: str
    bio: str | None = None
