"""
Password reset domain service - Forgotten-password recovery without a session.

begin_reset -> "forgot-password" token -> confirm_reset_otp ->
"verified-reset" token -> complete_reset. The OTP pair is stored on the
user and cleared the moment it is checked, whether it passed or expired.
"""

import logging
from dataclasses import dataclass

from .credentials import CredentialStore
from .exceptions import Expired, InvalidOtp, NotFound, UpstreamFailure
from .models import UserChanges
from .notify import deliver_otp
from .otp import issue_otp
from .ports import EmailSender, OtpPurpose
from .tokens import TokenCodec, TokenPurpose
from .validation import normalize_identifier, require

logger = logging.getLogger(__name__)


@dataclass
class PasswordResetService:
    """Three-step password reset."""

    store: CredentialStore
    email_sender: EmailSender
    tokens: TokenCodec
    otp_ttl_minutes: int = 15

    async def begin_reset(self, username_or_email: str) -> str:
        """
        Store and mail a reset OTP for the matching user.

        Returns:
            "forgot-password" proof token embedding the user's email

        Raises:
            InvalidInput: Blank identifier
            NotFound: No such user
            NotificationFailed: OTP could not be mailed
        """
        identifier = normalize_identifier(username_or_email)
        user = await self.store.find_user_by_email_or_username(identifier)
        if user is None:
            raise NotFound("User not found.")

        grant = issue_otp(self.otp_ttl_minutes)
        await self.store.update_user(user.id, UserChanges(forgot_password_otp=grant))

        await deliver_otp(self.email_sender, user.email, grant.code, OtpPurpose.PASSWORD_RESET)
        return self.tokens.issue(user.email, TokenPurpose.FORGOT_PASSWORD)

    async def confirm_reset_otp(self, token: str | None, otp: str) -> str:
        """
        Check and consume the reset OTP.

        Returns:
            "verified-reset" proof token

        Raises:
            TokenInvalid / TokenExpired: Bad "forgot-password" token
            NotFound: User no longer exists
            InvalidOtp: No OTP pending or code mismatch
            Expired: OTP past its stored expiry (fields are still cleared)
        """
        email = self.tokens.verify(token, TokenPurpose.FORGOT_PASSWORD)

        user = await self.store.find_user_by_email(email)
        if user is None:
            raise NotFound("Session expired.")

        grant = user.forgot_password_otp
        if grant is None or not grant.matches(otp):
            logger.warning("Password reset OTP rejected: user_id=%s", user.id)
            raise InvalidOtp()

        await self.store.update_user(user.id, UserChanges(forgot_password_otp=None))
        if grant.is_expired():
            raise Expired()

        logger.info("Password reset OTP verified: user_id=%s", user.id)
        return self.tokens.issue(email, TokenPurpose.VERIFIED_RESET)

    async def complete_reset(self, token: str | None, new_password: str) -> None:
        """
        Overwrite the password; the old one is not required.

        Existing sessions are left as they are.

        Raises:
            TokenInvalid / TokenExpired: Bad "verified-reset" token
            InvalidInput: Blank password
            NotFound: User no longer exists
        """
        email = self.tokens.verify(token, TokenPurpose.VERIFIED_RESET)
        new_password = require(new_password, "Password")

        user = await self.store.find_user_by_email(email)
        if user is None:
            raise NotFound("Forgot password token is invalid or expired.")

        if await self.store.update_user(user.id, UserChanges(password=new_password)) is None:
            raise UpstreamFailure("Error while saving user")
        logger.info("Password reset: user_id=%s", user.id)
