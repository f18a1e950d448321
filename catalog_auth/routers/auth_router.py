# catalog_auth/routers/auth_router.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..application.ports.rate_limiter import RateLimiter
from ..application.services.auth_service import AuthService
from ..application.services.token_service import IdentityClaim, TokenPair
from ..config import Settings
from ..exceptions import RateLimitExceeded
from ..schemas import (
    RequestOTPRequest, RequestOTPResponse, VerifyOTPRequest, VerifyOTPResponse,
    UserResponse, MessageResponse, MeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"

bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.otp_rate_limiter


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _cookie_options(settings: Settings) -> dict:
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": settings.COOKIE_SECURE,
        "path": "/",
    }


def set_token_cookies(response: Response, tokens: TokenPair, settings: Settings) -> None:
    opts = _cookie_options(settings)
    response.set_cookie(key=ACCESS_COOKIE, value=tokens.access_token, max_age=tokens.access_expires_in, **opts)
    response.set_cookie(key=REFRESH_COOKIE, value=tokens.refresh_token, max_age=tokens.refresh_expires_in, **opts)


def get_current_claim(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> IdentityClaim:
    """Authenticate with the access token from the Authorization header or cookie."""
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(ACCESS_COOKIE)
    return auth_service.authenticate(token)


@router.post("/request-otp", response_model=RequestOTPResponse)
def request_otp(
    payload: RequestOTPRequest,
    auth_service: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_app_settings),
):
    if not limiter.allow(f"otp:{payload.mobile}"):
        logger.warning(f"OTP rate limit exceeded for mobile ending {payload.mobile[-4:]}")
        raise RateLimitExceeded()

    issued = auth_service.request_otp(payload.mobile)
    return RequestOTPResponse(
        message="OTP sent",
        expires_in=issued.expires_in,
        dev_otp=issued.code if settings.OTP_DEV_MODE else None,
    )


@router.post("/verify-otp", response_model=VerifyOTPResponse)
def verify_otp(
    payload: VerifyOTPRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    result = auth_service.verify_otp(payload.mobile, payload.otp)
    set_token_cookies(response, result.tokens, settings)
    return VerifyOTPResponse(
        user=UserResponse(id=result.user.id, mobile=result.user.mobile),
        message="Logged in",
    )


@router.post("/refresh", response_model=MessageResponse)
def refresh(
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    tokens = auth_service.refresh(request.cookies.get(REFRESH_COOKIE))
    set_token_cookies(response, tokens, settings)
    return MessageResponse(message="Refreshed")


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, settings: Settings = Depends(get_app_settings)):
    # Sessions are not tracked server-side; dropping the cookies is the logout
    opts = _cookie_options(settings)
    response.delete_cookie(ACCESS_COOKIE, **opts)
    response.delete_cookie(REFRESH_COOKIE, **opts)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=MeResponse)
def me(claim: IdentityClaim = Depends(get_current_claim)):
    return MeResponse(sub=claim.subject, mobile=claim.mobile)
