"""
Registration domain service - Email-first account creation.

This module contains the three-step registration workflow. Progress is
carried between steps by proof tokens, never by server-side session state.

Registration Steps
==================

1. begin_registration(email)
   Email must not belong to a user. Any earlier pending registration for
   the email is replaced, a fresh OTP is stored and mailed, and a
   "register-email" token is returned.

2. confirm_registration_otp(token, otp)
   Needs a "register-email" token. The OTP must match the pending
   registration, which is then deleted (single use). Returns a
   "verified-email" token.

3. complete_registration(token, form)
   Needs a "verified-email" token. Creates the user with a hashed
   password and returns the redacted profile.

A step cannot be reached without a token only the previous step issues,
and the per-purpose secrets stop a token from one step (or one workflow)
being replayed at another.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .credentials import CredentialStore
from .exceptions import Conflict, InvalidOtp
from .models import DEFAULT_BIO, NewUser, PendingRegistration, RegistrationForm, UserProfile
from .notify import deliver_otp
from .otp import generate_otp
from .ports import EmailSender, OtpPurpose
from .tokens import TokenCodec, TokenPurpose
from .validation import normalize_email, normalize_username, require

logger = logging.getLogger(__name__)


@dataclass
class RegistrationService:
    """
    Domain service for user registration.

    Orchestrates the registration flow: email normalization, OTP
    generation and delivery, proof token chaining and user creation.
    """

    store: CredentialStore
    email_sender: EmailSender
    tokens: TokenCodec
    otp_ttl_minutes: int = 20

    async def begin_registration(self, email: str) -> str:
        """
        Start registration by mailing an OTP to ``email``.

        Args:
            email: User's email address (will be normalized)

        Returns:
            "register-email" proof token

        Raises:
            InvalidInput: Missing or malformed email
            Conflict: Email already belongs to a user
            NotificationFailed: OTP could not be mailed
        """
        normalized_email = normalize_email(email)

        if await self.store.find_user_by_email(normalized_email) is not None:
            raise Conflict("This email is already linked to an user.")

        # At most one pending registration per email; the newest OTP wins
        await self.store.delete_registration(normalized_email)
        code = generate_otp()
        await self.store.create_registration(normalized_email, code)

        await deliver_otp(self.email_sender, normalized_email, code, OtpPurpose.REGISTRATION)
        return self.tokens.issue(normalized_email, TokenPurpose.REGISTER_EMAIL)

    async def confirm_registration_otp(self, token: str | None, otp: str) -> str:
        """
        Verify the registration OTP and consume it.

        Returns:
            "verified-email" proof token

        Raises:
            TokenInvalid / TokenExpired: Bad "register-email" token
            InvalidOtp: No pending registration, stale one, or code mismatch
        """
        email = self.tokens.verify(token, TokenPurpose.REGISTER_EMAIL)

        pending = await self.store.find_registration(email)
        if pending is None or self._is_stale(pending) or not self._matches(pending, otp):
            logger.warning("Registration OTP rejected: email=%s", email)
            raise InvalidOtp("Invalid or expired OTP.")

        await self.store.delete_registration(email)
        logger.info("Registration email verified: email=%s", email)
        return self.tokens.issue(email, TokenPurpose.VERIFIED_EMAIL)

    async def complete_registration(self, token: str | None, form: RegistrationForm) -> UserProfile:
        """
        Create the user for a verified email.

        Raises:
            TokenInvalid / TokenExpired: Bad "verified-email" token
            InvalidInput: Blank fields or username outside the allow-list
            Conflict: Email or username already taken
        """
        email = self.tokens.verify(token, TokenPurpose.VERIFIED_EMAIL)

        full_name = require(form.full_name, "Full name").strip()
        password = require(form.password, "Password")
        username = normalize_username(form.username)

        if await self.store.find_user_by_email(email) is not None:
            raise Conflict("User with email already exists")
        if await self.store.find_user_by_username(username) is not None:
            raise Conflict("User with username already exists")

        bio = form.bio.strip() if form.bio and form.bio.strip() else DEFAULT_BIO
        user = await self.store.create_user(
            NewUser(
                username=username,
                email=email,
                full_name=full_name,
                password=password,
                bio=bio,
            )
        )
        logger.info("User registered: user_id=%s username=%s", user.id, user.username)
        return user.to_profile()

    def _is_stale(self, pending: PendingRegistration) -> bool:
        if pending.created_at is None:
            return False
        return datetime.now(UTC) > pending.created_at + timedelta(minutes=self.otp_ttl_minutes)

    def _matches(self, pending: PendingRegistration, otp: str) -> bool:
        return secrets.compare_digest(pending.otp.encode(), str(otp).strip().encode())
