"""
Email change domain service - Move an authenticated account to a new address.

The OTP and its expiry live on the user record; the new address travels
in an "update-email" proof token and is only written once the OTP sent to
it has been confirmed. The token also carries the expiry of the OTP it was
minted with, so a token from an earlier request cannot pair with a later code.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .credentials import CredentialStore
from .exceptions import AuthError, Conflict, Expired, InvalidInput, InvalidOtp, Unauthorized
from .models import UserChanges, UserProfile
from .notify import deliver_otp
from .otp import issue_otp
from .ports import EmailSender, OtpPurpose
from .tokens import TokenCodec, TokenPurpose
from .validation import normalize_email, require

logger = logging.getLogger(__name__)


@dataclass
class EmailChangeService:
    """Two-step email change for a signed-in user."""

    store: CredentialStore
    email_sender: EmailSender
    tokens: TokenCodec
    otp_ttl_minutes: int = 20

    async def begin_email_change(self, user_id: str, new_email: str, current_password: str) -> str:
        """
        Mail an OTP to ``new_email`` after re-checking the password.

        Returns:
            "update-email" proof token embedding the new address

        Raises:
            InvalidInput: Malformed address, or the address is already the user's
            Conflict: Address belongs to another user
            Unauthorized: Password does not match
            NotificationFailed: OTP could not be mailed
        """
        normalized_email = normalize_email(new_email)
        require(current_password, "Password")

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise Unauthorized()
        if normalized_email == user.email:
            raise InvalidInput("The new email cannot be the same as the current email.")
        if await self.store.find_user_by_email(normalized_email) is not None:
            raise Conflict("This email is already linked to an user.")
        if not await self.store.hasher.verify_async(current_password, user.password):
            logger.warning("Email change rejected, bad password: user_id=%s", user_id)
            raise Unauthorized("Incorrect password.")

        grant = issue_otp(self.otp_ttl_minutes)
        await self.store.update_user(user_id, UserChanges(update_email_otp=grant))

        await deliver_otp(self.email_sender, normalized_email, grant.code, OtpPurpose.EMAIL_CHANGE)
        return self.tokens.issue(
            normalized_email,
            TokenPurpose.UPDATE_EMAIL,
            extra_claims={"otp_expires_at": grant.expires_at.isoformat()},
        )

    async def confirm_email_change(self, user_id: str, token: str | None, otp: str) -> UserProfile:
        """
        Write the new address once the OTP checks out.

        The OTP fields are cleared on success, on expiry, and when the
        address write itself fails, so a consumed OTP cannot be replayed.

        Raises:
            TokenInvalid / TokenExpired: Bad "update-email" token
            Unauthorized: User no longer exists
            InvalidOtp: No OTP pending, code mismatch, or token from another request
            Expired: OTP past its stored expiry
        """
        claims = self.tokens.decode(token, TokenPurpose.UPDATE_EMAIL)
        new_email = claims["data"]

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise Unauthorized()

        grant = user.update_email_otp
        if (
            grant is None
            or not grant.matches(otp)
            or not _issued_with(claims, grant.expires_at)
        ):
            logger.warning("Email change OTP rejected: user_id=%s", user_id)
            raise InvalidOtp()
        if grant.is_expired():
            await self._clear_otp(user_id)
            raise Expired()

        try:
            updated = await self.store.update_user(
                user_id, UserChanges(email=new_email, update_email_otp=None)
            )
        except AuthError:
            await self._clear_otp(user_id)
            raise
        if updated is None:
            raise Unauthorized()

        logger.info("Email changed: user_id=%s", user_id)
        return updated.to_profile()

    async def _clear_otp(self, user_id: str) -> None:
        try:
            await self.store.update_user(user_id, UserChanges(update_email_otp=None))
        except AuthError:
            logger.exception("Could not clear email change OTP: user_id=%s", user_id)


def _issued_with(claims: dict, expires_at: datetime) -> bool:
    """True when the token was minted alongside the OTP that expires at ``expires_at``."""
    raw = claims.get("otp_expires_at")
    if not isinstance(raw, str):
        return False
    try:
        return datetime.fromisoformat(raw) == expires_at
    except ValueError:
        return False
