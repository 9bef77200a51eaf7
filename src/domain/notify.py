"""OTP delivery step shared by the verification workflows."""

import logging

from .exceptions import NotificationFailed
from .ports import EmailSender, OtpPurpose

logger = logging.getLogger(__name__)


async def deliver_otp(sender: EmailSender, email: str, code: str, purpose: OtpPurpose) -> None:
    """
    Send an already-persisted OTP.

    The OTP is only considered sent if this returns. A failed send is
    reported as NotificationFailed; the stored OTP is left in place and a
    retry of the whole step replaces it with a fresh one.
    """
    try:
        await sender.send_otp(email, code, purpose)
    except Exception as e:
        logger.error("OTP delivery failed: purpose=%s email=%s error=%s", purpose.value, email, e)
        raise NotificationFailed(f"Error while sending {purpose.value} email: {e}") from e
    logger.info("OTP sent: purpose=%s email=%s", purpose.value, email)
