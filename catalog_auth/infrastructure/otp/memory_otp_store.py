import hmac
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from ...application.ports.otp_store import OTPStore, OtpIssued
from ...exceptions import OtpError, OtpFailure

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def numeric_code_generator(length: int = 4) -> Callable[[], str]:
    def generate() -> str:
        return "".join(secrets.choice("0123456789") for _ in range(length))
    return generate


def fixed_code_generator(code: str) -> Callable[[], str]:
    return lambda: code


@dataclass
class _OtpRecord:
    code: str
    expires_at: datetime


class InMemoryOTPStore(OTPStore):
    """Pending codes keyed by mobile number, for a single-process deployment.

    A newer ``issue`` for the same mobile replaces the pending record. Check
    and delete in ``verify_and_consume`` happen under one lock acquisition, so
    one issued code can be consumed at most once.
    """

    def __init__(self, ttl_seconds: int = 300, code_generator: Optional[Callable[[], str]] = None,
                 clock: Clock = utcnow) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._generate = code_generator or numeric_code_generator()
        self._clock = clock
        self._records: Dict[str, _OtpRecord] = {}
        self._lock = threading.Lock()

    def issue(self, mobile: str) -> OtpIssued:
        code = self._generate()
        now = self._clock()
        expires_at = now + self.ttl
        with self._lock:
            # Abandoned requests are reclaimed here; nothing else deletes them
            purged = self._purge_locked(now)
            self._records[mobile] = _OtpRecord(code=code, expires_at=expires_at)
        if purged:
            logger.info(f"Purged {purged} expired OTP records")
        logger.debug(f"OTP issued for mobile ending {mobile[-4:]}")
        return OtpIssued(mobile=mobile, code=code, expires_at=expires_at,
                         expires_in=int(self.ttl.total_seconds()))

    def verify_and_consume(self, mobile: str, candidate_code: str) -> None:
        now = self._clock()
        with self._lock:
            rec = self._records.get(mobile)
            if rec is None:
                raise OtpError(OtpFailure.NOT_FOUND)
            if now > rec.expires_at:
                raise OtpError(OtpFailure.EXPIRED)
            if not hmac.compare_digest(rec.code.encode(), (candidate_code or "").encode()):
                raise OtpError(OtpFailure.MISMATCH)
            del self._records[mobile]

    def _purge_locked(self, now: datetime) -> int:
        expired = [m for m, rec in self._records.items() if now > rec.expires_at]
        for mobile in expired:
            del self._records[mobile]
        return len(expired)

    def purge_expired(self) -> int:
        with self._lock:
            purged = self._purge_locked(self._clock())
        if purged:
            logger.info(f"Purged {purged} expired OTP records")
        return purged

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
