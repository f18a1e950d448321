from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class OtpIssued:
    mobile: str
    code: str
    expires_at: datetime
    # seconds until expires_at, measured on the issuing store's clock
    expires_in: int


class OTPStore(Protocol):
    def issue(self, mobile: str) -> OtpIssued:
        ...

    def verify_and_consume(self, mobile: str, candidate_code: str) -> None:
        """Raise OtpError unless the code matches; delete the record on success."""
        ...
