"""
Session issuer - Access and refresh token lifecycle.

The access token is short-lived and carries the user id plus a profile
snippet. The refresh token carries only the user id and is stored
verbatim on the user, so it is valid only while it textually matches the
stored copy. Writing a new one (rotation) or clearing it (logout)
revokes every earlier refresh token regardless of its own expiry.

Concurrency note: rotation is a read-compare-write on a single user
record with last-writer-wins semantics. Two simultaneous refresh calls
presenting the same token can both pass the comparison; whichever write
lands second wins and the other caller's new refresh token is
immediately stale. This race is accepted.
"""

import logging
import secrets
from dataclasses import dataclass

from .credentials import CredentialStore
from .exceptions import InvalidInput, NotFound, Unauthorized
from .models import LoginResult, SessionTokens, User, UserChanges
from .tokens import TokenCodec, TokenPurpose
from .validation import normalize_identifier, require

logger = logging.getLogger(__name__)


@dataclass
class SessionIssuer:
    """Creates, validates and rotates session token pairs."""

    store: CredentialStore
    tokens: TokenCodec

    async def login(self, username_or_email: str, password: str) -> LoginResult:
        """
        Check credentials and issue a fresh token pair.

        Raises:
            InvalidInput: Blank identifier or password
            NotFound: No user with that username or email
            Unauthorized: Password does not match
        """
        identifier = normalize_identifier(username_or_email)
        require(password, "Password")

        user = await self.store.find_user_by_email_or_username(identifier)
        if user is None:
            raise NotFound("User not found, please check username or password!")

        if not await self.store.hasher.verify_async(password, user.password):
            logger.warning("Login rejected, bad password: user_id=%s", user.id)
            raise Unauthorized("Password is incorrect!")

        tokens = await self._issue_pair(user)
        logger.info("Session issued: user_id=%s", user.id)
        return LoginResult(tokens=tokens, user=user.to_profile())

    async def refresh(self, refresh_token: str | None) -> SessionTokens:
        """
        Rotate a token pair.

        Raises:
            Unauthorized: Bad, expired, unknown or superseded refresh token
        """
        if not refresh_token:
            raise Unauthorized("Unauthorized request!")

        user_id = self.tokens.verify(refresh_token, TokenPurpose.REFRESH)
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise Unauthorized("Invalid Refresh Token!")

        stored = user.refresh_token
        if stored is None or not secrets.compare_digest(stored.encode(), refresh_token.encode()):
            logger.warning("Refresh token reuse rejected: user_id=%s", user.id)
            raise Unauthorized("Refresh Token is expired or used.")

        tokens = await self._issue_pair(user)
        logger.info("Session rotated: user_id=%s", user.id)
        return tokens

    async def logout(self, user_id: str) -> None:
        """Clear the stored refresh token, revoking every refresh token issued so far."""
        await self.store.update_user(user_id, UserChanges(refresh_token=None))
        logger.info("Session revoked: user_id=%s", user_id)

    async def authenticate(self, access_token: str | None) -> User:
        """
        Resolve the caller of a request from its access token.

        Raises:
            Unauthorized: Missing, bad or expired token, or the user is gone
        """
        if not access_token:
            raise Unauthorized("Unauthorized request")

        user_id = self.tokens.verify(access_token, TokenPurpose.ACCESS)
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise Unauthorized("Invalid Access Token")
        return user

    async def change_password(
        self,
        user_id: str,
        old_password: str,
        new_password: str,
        confirm_new_password: str | None = None,
    ) -> None:
        """
        Replace the password after checking the old one.

        Only the password is rewritten. Sessions issued before the change
        stay valid; no forced logout happens here.

        Raises:
            InvalidInput: Blank fields or confirmation mismatch
            Unauthorized: Old password does not match
        """
        require(old_password, "Old password")
        require(new_password, "New password")
        if confirm_new_password is not None and new_password != confirm_new_password:
            raise InvalidInput("New password and confirmation password do not match.")

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise Unauthorized()
        if not await self.store.hasher.verify_async(old_password, user.password):
            raise Unauthorized("Invalid old password.")

        await self.store.update_user(user_id, UserChanges(password=new_password))
        logger.info("Password changed: user_id=%s", user_id)

    async def _issue_pair(self, user: User) -> SessionTokens:
        access_token = self.tokens.issue(
            user.id,
            TokenPurpose.ACCESS,
            extra_claims={
                "email": user.email,
                "username": user.username,
                "fullName": user.full_name,
            },
        )
        refresh_token = self.tokens.issue(user.id, TokenPurpose.REFRESH)

        if await self.store.update_user(user.id, UserChanges(refresh_token=refresh_token)) is None:
            raise Unauthorized("User no longer exists")
        return SessionTokens(access_token=access_token, refresh_token=refresh_token)
