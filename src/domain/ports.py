"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from enum import Enum
from typing import Protocol

from .models import NewUser, PendingRegistration, User, UserChanges


class OtpPurpose(str, Enum):
    """Why an OTP email is being sent; selects the mail template."""

    REGISTRATION = "registration"
    EMAIL_CHANGE = "email_change"
    PASSWORD_RESET = "password_reset"


class UserRepository(Protocol):
    """Port interface for user persistence."""

    async def find_by_id(self, user_id: str) -> User | None: ...

    async def find_by_email(self, email: str) -> User | None: ...

    async def find_by_username(self, username: str) -> User | None: ...

    async def find_by_email_or_username(self, identifier: str) -> User | None:
        """
        Look a user up by either field.

        Args:
            identifier: Normalized email address or username

        Returns:
            The matching user, or None
        """
        ...

    async def create(self, new_user: NewUser) -> User:
        """
        Insert a user. ``new_user.password`` is already hashed.

        Raises:
            Conflict: Email or username already taken
            UpstreamFailure: Store write failed
        """
        ...

    async def update(self, user_id: str, changes: UserChanges) -> User | None:
        """
        Apply a partial write, bypassing full-record validation.

        Only fields present in ``changes`` are written; ``updated_at`` is
        refreshed. Returns the updated user, or None if it does not exist.
        """
        ...

    async def delete(self, user_id: str) -> User | None: ...


class PendingRegistrationRepository(Protocol):
    """Port interface for pending registrations, keyed by email."""

    async def find(self, email: str) -> PendingRegistration | None: ...

    async def create(self, email: str, otp: str) -> PendingRegistration: ...

    async def delete(self, email: str) -> bool:
        """Delete the registration for ``email``; True if one existed."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    async def send_otp(self, email: str, code: str, purpose: OtpPurpose) -> None:
        """
        Send a one-time code to an email address.

        Args:
            email: Recipient email address
            code: Six-digit OTP
            purpose: Which workflow the code belongs to

        Raises:
            Any exception on delivery failure; callers treat it as not sent.
        """
        ...


class AssetStore(Protocol):
    """Port interface for the external media host."""

    async def delete(self, url: str) -> None: ...
