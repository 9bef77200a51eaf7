"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging one-time codes instead of delivering mail.
"""

import logging

from src.domain.ports import OtpPurpose

logger = logging.getLogger(__name__)

_SUBJECTS = {
    OtpPurpose.REGISTRATION: "Verify your email",
    OtpPurpose.EMAIL_CHANGE: "Confirm your new email",
    OtpPurpose.PASSWORD_RESET: "Reset your password",
}


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints OTPs to stdout.
    """

    async def send_otp(self, email: str, code: str, purpose: OtpPurpose) -> None:
        """
        Log the OTP to console (simulates email delivery).

        Args:
            email: Recipient email address (normalized by domain layer)
            code: Six-digit OTP
            purpose: Workflow the code belongs to
        """
        logger.info(
            "[OTP] Purpose: %s Subject: %s Email: %s Code: %s",
            purpose.value,
            _SUBJECTS[purpose],
            email,
            code,
        )
