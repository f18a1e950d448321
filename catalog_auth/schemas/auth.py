# catalog_auth/schemas/auth.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

# 10-digit Indian mobile number
MOBILE_PATTERN = r"^[6-9]\d{9}$"


class RequestOTPRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mobile: str = Field(..., pattern=MOBILE_PATTERN, description="10-digit mobile number")


class RequestOTPResponse(BaseModel):
    message: str
    expires_in: int
    dev_otp: Optional[str] = Field(None, description="Only present when OTP dev mode is enabled")


class VerifyOTPRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mobile: str = Field(..., pattern=MOBILE_PATTERN, description="10-digit mobile number")
    otp: str = Field(..., min_length=1, max_length=10, description="Code received by SMS")


class UserResponse(BaseModel):
    id: str
    mobile: str


class VerifyOTPResponse(BaseModel):
    user: UserResponse
    message: str


class MessageResponse(BaseModel):
    message: str


class MeResponse(BaseModel):
    sub: str
    mobile: str
