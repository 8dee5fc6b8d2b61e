from pydantic_settings import BaseSettings
from typing import List, Optional
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    SECRET_KEY: str = "your-secret-key-change-in-production"
    JWT_SECRET: Optional[str] = None
    ALGORITHM: str = "HS256"
    # Lifetime of the signed session token (cookie or bearer), in minutes.
    SESSION_TTL_MINUTES: int = 60 * 24 * 7
    SESSION_COOKIE_NAME: str = "marketplace_session"
    SESSION_COOKIE_SECURE: bool = False
    DEBUG: bool = False

    # One-time login codes expire after this many minutes.
    OTP_TTL_MINUTES: int = 5

    # E-mail delivery for OTP codes.
    #
    # "console" only logs the code (local development); "http" POSTs a JSON
    # message to EMAIL_API_URL with EMAIL_API_KEY as a bearer token.
    EMAIL_PROVIDER: str = "console"
    EMAIL_API_URL: Optional[str] = None
    EMAIL_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "no-reply@marketplace.local"
    EMAIL_TIMEOUT_SECONDS: float = 10.0

    # Base domain appended to generated vendor subdomains, e.g.
    # "acme-store.shops.example.com".
    PLATFORM_BASE_DOMAIN: str = "yourdomain.com"

    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    # Create missing tables on startup instead of relying on Alembic.
    AUTO_CREATE_TABLES: bool = False

    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    class Config:
        env_file = None
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def secret_key(self) -> str:
        return self.JWT_SECRET or self.SECRET_KEY

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def session_cookie_max_age(self) -> int:
        return self.SESSION_TTL_MINUTES * 60


if not os.getenv("DATABASE_URL"):
    raise RuntimeError("DATABASE_URL is required.")

settings = Settings()
