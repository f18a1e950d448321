from typing import Protocol

from .otp_store import OtpIssued


class OTPSender(Protocol):
    def send(self, issued: OtpIssued) -> None:
        ...
