"""Signed access/refresh token pairs.

Tokens are JWTs. Each purpose has its own secret and lifetime, and the purpose
is also written into the signed payload (``type``), so an access token can
never pass as a refresh token or the other way round.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

import jwt

from ...exceptions import TokenError, TokenFailure

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "mobile", "type", "iat", "exp"]


class TokenPurpose(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class IdentityClaim:
    subject: str
    mobile: str


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int


@dataclass(frozen=True)
class SigningKey:
    secret: str
    ttl: timedelta


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    def __init__(self, keys: Dict[TokenPurpose, SigningKey], algorithm: str = "HS256",
                 issuer: str = "catalog-auth", clock: Callable[[], datetime] = _utcnow):
        missing = [p.value for p in TokenPurpose if p not in keys]
        if missing:
            raise ValueError(f"No signing key configured for: {', '.join(missing)}")
        self.keys = keys
        self.algorithm = algorithm
        self.issuer = issuer
        self._clock = clock

    def _encode(self, claim: IdentityClaim, purpose: TokenPurpose, now: datetime) -> str:
        key = self.keys[purpose]
        payload = {
            "sub": claim.subject,
            "mobile": claim.mobile,
            "type": purpose.value,
            "iat": now,
            "exp": now + key.ttl,
            "jti": uuid.uuid4().hex,
            "iss": self.issuer,
        }
        return jwt.encode(payload, key.secret, algorithm=self.algorithm)

    def issue_pair(self, claim: IdentityClaim) -> TokenPair:
        now = self._clock()
        pair = TokenPair(
            access_token=self._encode(claim, TokenPurpose.ACCESS, now),
            refresh_token=self._encode(claim, TokenPurpose.REFRESH, now),
            access_expires_in=int(self.keys[TokenPurpose.ACCESS].ttl.total_seconds()),
            refresh_expires_in=int(self.keys[TokenPurpose.REFRESH].ttl.total_seconds()),
        )
        logger.debug(f"Token pair issued for subject {claim.subject}")
        return pair


class TokenVerifier:
    def __init__(self, secrets: Dict[TokenPurpose, str], algorithm: str = "HS256",
                 issuer: str = "catalog-auth", leeway: int = 0):
        self.secrets = secrets
        self.algorithm = algorithm
        self.issuer = issuer
        self.leeway = leeway

    def verify(self, token: Optional[str], expected_purpose: TokenPurpose) -> IdentityClaim:
        """Return the claim embedded in ``token`` or raise TokenError.

        Signature is checked before expiry, so a token signed under another
        secret reports BAD_SIGNATURE even when it is also expired.
        """
        if not token:
            raise TokenError(TokenFailure.MISSING)
        secret = self.secrets.get(expected_purpose)
        if not secret:
            # A purpose without a secret can't have signed anything we accept
            raise TokenError(TokenFailure.BAD_SIGNATURE)

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenError(TokenFailure.EXPIRED)
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
            raise TokenError(TokenFailure.BAD_SIGNATURE)
        except (jwt.InvalidTokenError, UnicodeError) as e:
            logger.debug(f"Rejected malformed token: {e}")
            raise TokenError(TokenFailure.MALFORMED)

        if payload.get("type") != expected_purpose.value:
            raise TokenError(TokenFailure.WRONG_PURPOSE)

        subject, mobile = payload.get("sub"), payload.get("mobile")
        if not isinstance(subject, str) or not isinstance(mobile, str) or not subject or not mobile:
            raise TokenError(TokenFailure.MALFORMED)
        return IdentityClaim(subject=subject, mobile=mobile)
