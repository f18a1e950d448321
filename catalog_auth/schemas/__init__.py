from .auth import (
    RequestOTPRequest, RequestOTPResponse, VerifyOTPRequest, VerifyOTPResponse,
    UserResponse, MessageResponse, MeResponse,
)

__all__ = [
    "RequestOTPRequest",
    "RequestOTPResponse",
    "VerifyOTPRequest",
    "VerifyOTPResponse",
    "UserResponse",
    "MessageResponse",
    "MeResponse",
]
