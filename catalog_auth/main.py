import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .application.services.auth_service import AuthService
from .application.services.token_service import SigningKey, TokenIssuer, TokenPurpose, TokenVerifier
from .config import Settings, get_settings
from .database import build_engine, create_db_and_tables
from .exceptions import (
    RateLimitExceeded, Unauthorized,
    http_exception_handler, rate_limit_exception_handler, unauthorized_exception_handler,
)
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.otp.log_sender import LoggingOTPSender
from .infrastructure.otp.memory_otp_store import InMemoryOTPStore, fixed_code_generator, numeric_code_generator
from .infrastructure.persistence.sqlalchemy.repositories.user_directory_sql import SqlUserDirectory
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from .middleware import ErrorHandlingMiddleware, LoggingMiddleware, SecurityMiddleware
from .routers import auth_router

logger = logging.getLogger(__name__)


def build_token_services(settings: Settings):
    issuer = TokenIssuer(
        keys={
            TokenPurpose.ACCESS: SigningKey(settings.JWT_ACCESS_SECRET, settings.access_token_ttl),
            TokenPurpose.REFRESH: SigningKey(settings.JWT_REFRESH_SECRET, settings.refresh_token_ttl),
        },
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
    )
    verifier = TokenVerifier(
        secrets={
            TokenPurpose.ACCESS: settings.JWT_ACCESS_SECRET,
            TokenPurpose.REFRESH: settings.JWT_REFRESH_SECRET,
        },
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
    )
    return issuer, verifier


def build_otp_components(settings: Settings):
    """OTP store and request limiter: Redis when REDIS_URL is set, else in-process."""
    if settings.OTP_FIXED_CODE:
        logger.warning("OTP_FIXED_CODE is set; every OTP will be the same code")
        generator = fixed_code_generator(settings.OTP_FIXED_CODE)
    else:
        generator = numeric_code_generator(settings.OTP_LENGTH)

    if settings.REDIS_URL:
        from .infrastructure.otp.redis_otp_store import RedisOTPStore
        from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter

        store = RedisOTPStore.from_url(settings.REDIS_URL, ttl_seconds=settings.OTP_TTL_SECONDS, code_generator=generator)
        limiter = RedisRateLimiter.from_url(
            settings.REDIS_URL, settings.OTP_RATE_LIMIT_MAX_REQUESTS, settings.OTP_RATE_LIMIT_WINDOW_SECONDS
        )
        logger.info("Using Redis OTP store and rate limiter")
    else:
        store = InMemoryOTPStore(ttl_seconds=settings.OTP_TTL_SECONDS, code_generator=generator)
        limiter = InMemoryRateLimiter(settings.OTP_RATE_LIMIT_MAX_REQUESTS, settings.OTP_RATE_LIMIT_WINDOW_SECONDS)
        logger.info("Using in-memory OTP store and rate limiter")
    return store, limiter


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Settings are loaded eagerly, so a missing or unsafe signing secret raises
    here and the server never starts accepting requests.
    """
    if settings is None:
        load_dotenv()
        settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT
    )

    engine = build_engine(settings)
    token_issuer, token_verifier = build_token_services(settings)
    otp_store, otp_limiter = build_otp_components(settings)

    auth_service = AuthService(
        otp_store=otp_store,
        otp_sender=LoggingOTPSender(),
        user_directory=SqlUserDirectory(engine),
        token_issuer=token_issuer,
        token_verifier=token_verifier,
        audit=StdAuditLogger(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME}...")
        # A broken database must abort startup rather than serve degraded
        create_db_and_tables(engine)
        logger.info("Database initialized successfully")
        yield
        logger.info(f"Shutting down {settings.APP_NAME}...")
        engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url=("/docs" if settings.DOCS_ENABLED else None),
        redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
        openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
    )

    app.state.settings = settings
    app.state.auth_service = auth_service
    app.state.otp_rate_limiter = otp_limiter

    app.add_exception_handler(Unauthorized, unauthorized_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_middleware(ErrorHandlingMiddleware, debug=settings.DEBUG)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(SecurityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=settings.allowed_methods_list,
        allow_headers=settings.allowed_headers_list,
    )

    app.include_router(auth_router.router)

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


def run() -> None:
    import uvicorn

    load_dotenv()
    settings = get_settings()
    uvicorn.run(
        "catalog_auth.main:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
