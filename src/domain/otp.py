"""
One-time passcodes - six-digit numeric codes with an expiry.

Codes come from the fixed range 100000-999999, so every code is exactly
six digits and never has a leading zero.
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

OTP_MIN = 100000
OTP_MAX = 999999


@dataclass(frozen=True)
class OtpGrant:
    """An OTP together with the moment it stops being accepted."""

    code: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(UTC)) > self.expires_at

    def matches(self, candidate: str) -> bool:
        """Constant-time comparison against a submitted code."""
        return secrets.compare_digest(self.code.encode(), str(candidate).strip().encode())


def generate_otp() -> str:
    """Draw a code uniformly from the fixed six-digit range."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def issue_otp(ttl_minutes: int, now: datetime | None = None) -> OtpGrant:
    """Generate a code and pair it with an expiry ``ttl_minutes`` from now."""
    issued_at = now or datetime.now(UTC)
    return OtpGrant(code=generate_otp(), expires_at=issued_at + timedelta(minutes=ttl_minutes))
