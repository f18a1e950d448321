from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class AuthError(Exception):
    """Base class for authentication failures."""


class OtpFailure(str, Enum):
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"


class OtpError(AuthError):
    def __init__(self, reason: OtpFailure):
        super().__init__(f"OTP verification failed: {reason.value}")
        self.reason = reason


class TokenFailure(str, Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    WRONG_PURPOSE = "wrong_purpose"


class TokenError(AuthError):
    def __init__(self, reason: TokenFailure):
        super().__init__(f"Token verification failed: {reason.value}")
        self.reason = reason


class Unauthorized(AuthError):
    """The only failure that crosses the orchestrator boundary.

    The message stays generic. The specific cause is logged where the
    failure is detected and never attached here.
    """

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


class RateLimitExceeded(Exception):
    def __init__(self, message: str = "Too many OTP requests. Please try again later."):
        super().__init__(message)
        self.message = message


def create_error_response(error_message: str) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


async def unauthorized_exception_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=create_error_response(exc.message)
    )


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=create_error_response(exc.message)
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail))
    )
