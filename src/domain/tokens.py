"""
Token codec - Signed, expiring, single-purpose tokens.

Every workflow step and both session credentials get their own secret
and lifetime. A token carries one opaque payload (an email address or a
user id) plus its purpose and expiry, signed with HMAC via PyJWT.

Proof tokens chain the verification workflows together: a step can only
be reached by presenting a token the previous step issued, so no
workflow state is stored server-side.
"""

import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt

from .exceptions import TokenExpired, TokenInvalid


class TokenPurpose(str, Enum):
    """Purpose a token is minted for; each maps to its own secret."""

    REGISTER_EMAIL = "register-email"
    VERIFIED_EMAIL = "verified-email"
    UPDATE_EMAIL = "update-email"
    FORGOT_PASSWORD = "forgot-password"
    VERIFIED_RESET = "verified-reset"
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPolicy:
    """Signing secret and lifetime for one purpose."""

    secret: str
    ttl_seconds: int


@dataclass(frozen=True)
class TokenConfig:
    """Explicit per-purpose token configuration."""

    policies: dict[TokenPurpose, TokenPolicy]
    algorithm: str = "HS256"

    def policy(self, purpose: TokenPurpose) -> TokenPolicy:
        try:
            return self.policies[purpose]
        except KeyError:
            raise ValueError(f"No token policy configured for {purpose.value}") from None


@dataclass
class TokenCodec:
    """
    Issues and verifies purpose-bound tokens.

    The payload travels in the ``data`` claim. ``jti`` is random so two
    tokens issued in the same second for the same payload still differ.
    """

    config: TokenConfig
    claims: tuple[str, ...] = field(default=("data", "purpose", "exp", "iat"))

    def issue(
        self,
        payload: str,
        purpose: TokenPurpose,
        extra_claims: dict[str, Any] | None = None,
    ) -> str:
        """
        Sign a token for ``purpose`` embedding ``payload``.

        Args:
            payload: Email address or user id
            purpose: Which secret and ttl to use
            extra_claims: Additional non-authoritative claims (profile snippet)

        Returns:
            Encoded token string
        """
        policy = self.config.policy(purpose)
        now = datetime.now(UTC)
        to_encode: dict[str, Any] = dict(extra_claims or {})
        to_encode.update(
            {
                "data": payload,
                "purpose": purpose.value,
                "iat": now,
                "exp": now + timedelta(seconds=policy.ttl_seconds),
                "jti": secrets.token_hex(8),
            }
        )
        return jwt.encode(to_encode, policy.secret, algorithm=self.config.algorithm)

    def verify(self, token: str | None, purpose: TokenPurpose) -> str:
        """
        Verify ``token`` was issued for ``purpose`` and return its payload.

        Raises:
            TokenExpired: Signature is valid but the token is past its ttl
            TokenInvalid: Missing token, bad signature, bad structure or wrong purpose
        """
        claims = self.decode(token, purpose)
        return claims["data"]

    def decode(self, token: str | None, purpose: TokenPurpose) -> dict[str, Any]:
        """Verify ``token`` and return every claim it carries."""
        if not token:
            raise TokenInvalid("Token is required")

        policy = self.config.policy(purpose)
        try:
            claims = jwt.decode(
                token,
                policy.secret,
                algorithms=[self.config.algorithm],
                options={"require": list(self.claims)},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except jwt.PyJWTError:
            raise TokenInvalid() from None

        # Secrets already differ per purpose; the claim guards against shared secrets
        if claims.get("purpose") != purpose.value:
            raise TokenInvalid()
        if not isinstance(claims.get("data"), str) or not claims["data"]:
            raise TokenInvalid("Something went wrong while decoding the token")
        return claims

    def ttl_seconds(self, purpose: TokenPurpose) -> int:
        return self.config.policy(purpose).ttl_seconds
