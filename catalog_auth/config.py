# catalog_auth/config.py
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache
from datetime import timedelta


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "Catalog Auth API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Database Settings
    DATABASE_URL: str = "sqlite:///./catalog_auth.db"

    # Token Settings (secrets have no defaults: startup must fail without them)
    JWT_ACCESS_SECRET: str = Field(min_length=32)
    JWT_REFRESH_SECRET: str = Field(min_length=32)
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "catalog-auth"
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(default=15, gt=0)
    JWT_REFRESH_EXPIRE_DAYS: int = Field(default=7, gt=0)

    # OTP Settings
    OTP_TTL_SECONDS: int = Field(default=300, gt=0)
    OTP_LENGTH: int = Field(default=4, ge=4, le=10)
    OTP_FIXED_CODE: Optional[str] = None
    OTP_DEV_MODE: bool = False
    OTP_RATE_LIMIT_MAX_REQUESTS: int = 5
    OTP_RATE_LIMIT_WINDOW_SECONDS: int = 900
    REDIS_URL: Optional[str] = None

    # Cookie Settings
    COOKIE_SECURE: bool = False

    # CORS Settings (comma-separated)
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://localhost:8080"
    ALLOWED_METHODS: str = "GET,POST,PUT,DELETE,OPTIONS"
    ALLOWED_HEADERS: str = "Content-Type,Authorization,Cookie"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @model_validator(mode="after")
    def _check_token_settings(self) -> "Settings":
        if self.JWT_ACCESS_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        if not self.JWT_ALGORITHM.startswith("HS"):
            raise ValueError("JWT_ALGORITHM must be an HMAC algorithm (HS256, HS384, HS512)")
        if self.OTP_FIXED_CODE:
            if not self.OTP_FIXED_CODE.isdigit() or len(self.OTP_FIXED_CODE) != self.OTP_LENGTH:
                raise ValueError("OTP_FIXED_CODE must be numeric and OTP_LENGTH digits long")
        return self

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.JWT_ACCESS_EXPIRE_MINUTES)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.JWT_REFRESH_EXPIRE_DAYS)

    # Helper methods for list envs
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def allowed_methods_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_METHODS)

    @property
    def allowed_headers_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_HEADERS)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
