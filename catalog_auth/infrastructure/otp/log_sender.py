import logging

from ...application.ports.otp_sender import OTPSender
from ...application.ports.otp_store import OtpIssued


class LoggingOTPSender(OTPSender):
    """Stand-in for SMS delivery: records that a code went out, never the code."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def send(self, issued: OtpIssued) -> None:
        self._logger.info(
            f"OTP dispatched to mobile ending {issued.mobile[-4:]}, expires at {issued.expires_at.isoformat()}"
        )
