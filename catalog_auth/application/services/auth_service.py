from dataclasses import dataclass
from typing import Optional
import logging

from ..ports.audit_logger import AuditLogger
from ..ports.otp_sender import OTPSender
from ..ports.otp_store import OTPStore, OtpIssued
from ..ports.user_directory import UserDirectory, UserDto
from .token_service import IdentityClaim, TokenIssuer, TokenPair, TokenPurpose, TokenVerifier
from ...exceptions import OtpError, TokenError, Unauthorized

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "Invalid or expired OTP"
INVALID_REFRESH_MESSAGE = "Invalid refresh token"
INVALID_ACCESS_MESSAGE = "Invalid or expired token"


@dataclass(frozen=True)
class AuthResult:
    user: UserDto
    tokens: TokenPair


class _NullAudit:
    def log(self, *args, **kwargs) -> None:
        return None


@dataclass
class AuthService:
    """OTP login and token renewal.

    Per mobile number the flow is unauthenticated -> OTP pending ->
    authenticated. Only the OTP store holds state; sessions live entirely in
    the token pair the client keeps, so logout is a transport concern.

    Every failure leaves this class as ``Unauthorized`` with a generic message.
    The specific reason is written to the audit log.
    """
    otp_store: OTPStore
    otp_sender: OTPSender
    user_directory: UserDirectory
    token_issuer: TokenIssuer
    token_verifier: TokenVerifier
    audit: Optional[AuditLogger] = None

    def __post_init__(self) -> None:
        if self.audit is None:
            self.audit = _NullAudit()

    def request_otp(self, mobile: str) -> OtpIssued:
        issued = self.otp_store.issue(mobile)
        self.otp_sender.send(issued)
        self.audit.log("otp_requested", mobile)
        return issued

    def verify_otp(self, mobile: str, code: str) -> AuthResult:
        try:
            self.otp_store.verify_and_consume(mobile, code)
        except OtpError as e:
            self.audit.log("otp_verify", mobile, success=False, reason=e.reason.value)
            raise Unauthorized(INVALID_OTP_MESSAGE) from None

        user = self.user_directory.resolve_or_create(mobile)
        tokens = self.token_issuer.issue_pair(IdentityClaim(subject=user.id, mobile=user.mobile))
        self.audit.log("otp_verify", mobile, user_id=user.id)
        return AuthResult(user=user, tokens=tokens)

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        try:
            claim = self.token_verifier.verify(refresh_token, TokenPurpose.REFRESH)
        except TokenError as e:
            self.audit.log("token_refresh", None, success=False, reason=e.reason.value)
            raise Unauthorized(INVALID_REFRESH_MESSAGE) from None

        # Rotation: the claim comes from the verified token, not the directory
        tokens = self.token_issuer.issue_pair(claim)
        self.audit.log("token_refresh", claim.mobile, user_id=claim.subject)
        return tokens

    def authenticate(self, access_token: Optional[str]) -> IdentityClaim:
        try:
            return self.token_verifier.verify(access_token, TokenPurpose.ACCESS)
        except TokenError as e:
            logger.info(f"Access token rejected: {e.reason.value}")
            raise Unauthorized(INVALID_ACCESS_MESSAGE) from None
