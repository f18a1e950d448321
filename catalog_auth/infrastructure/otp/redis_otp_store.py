import logging
from datetime import timedelta
from typing import Callable, Optional

import redis

from ...application.ports.otp_store import OTPStore, OtpIssued
from ...exceptions import OtpError, OtpFailure
from .memory_otp_store import Clock, numeric_code_generator, utcnow

logger = logging.getLogger(__name__)

# KEYS[1] = record key; ARGV[1] = candidate code; ARGV[2] = now (epoch seconds)
_CONSUME_SCRIPT = """
local rec = redis.call('HMGET', KEYS[1], 'code', 'expires_at')
if not rec[1] then
  return 'not_found'
end
if tonumber(ARGV[2]) > tonumber(rec[2]) then
  return 'expired'
end
if rec[1] ~= ARGV[1] then
  return 'mismatch'
end
redis.call('DEL', KEYS[1])
return 'ok'
"""

# Keys outlive their logical expiry so late attempts report EXPIRED, not NOT_FOUND
_KEY_GRACE_SECONDS = 300


class RedisOTPStore(OTPStore):
    """OTP records shared across worker processes.

    Each record is a hash under ``{prefix}{mobile}``. The check-and-delete in
    ``verify_and_consume`` runs as one Lua script on the server.
    """

    def __init__(self, client: "redis.Redis", ttl_seconds: int = 300,
                 code_generator: Optional[Callable[[], str]] = None,
                 clock: Clock = utcnow, prefix: str = "otp:") -> None:
        self.client = client
        self.ttl = timedelta(seconds=ttl_seconds)
        self.prefix = prefix
        self._generate = code_generator or numeric_code_generator()
        self._clock = clock
        self._consume = client.register_script(_CONSUME_SCRIPT)

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisOTPStore":
        return cls(redis.Redis.from_url(url), **kwargs)

    def _key(self, mobile: str) -> str:
        return f"{self.prefix}{mobile}"

    def issue(self, mobile: str) -> OtpIssued:
        code = self._generate()
        expires_at = self._clock() + self.ttl
        key = self._key(mobile)
        pipe = self.client.pipeline()
        pipe.delete(key)
        pipe.hset(key, mapping={"code": code, "expires_at": repr(expires_at.timestamp())})
        pipe.expire(key, int(self.ttl.total_seconds()) + _KEY_GRACE_SECONDS)
        pipe.execute()
        return OtpIssued(mobile=mobile, code=code, expires_at=expires_at,
                         expires_in=int(self.ttl.total_seconds()))

    def verify_and_consume(self, mobile: str, candidate_code: str) -> None:
        now = self._clock().timestamp()
        result = self._consume(keys=[self._key(mobile)], args=[candidate_code or "", repr(now)])
        if isinstance(result, bytes):
            result = result.decode()
        if result == "ok":
            return
        try:
            reason = OtpFailure(result)
        except ValueError:
            logger.error(f"Unexpected OTP consume result from redis: {result!r}")
            raise
        raise OtpError(reason)
