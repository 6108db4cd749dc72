"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Dev endpoints (/dev/*) require this header value; only mounted when ENV=dev
    DEV_SECRET: str = ""

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./probatedesk.db"

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 12

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Public app URL (resume links, portal links in emails)
    APP_URL: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Rate Limiting
    RATE_LIMIT_API: int = 60  # General API, requests per minute
    RESUME_LINK_REQUESTS_PER_HOUR: int = 5  # Per email address
    REDIS_URL: str = ""

    # Case workflow timing
    RESUME_TOKEN_TTL_HOURS: int = 24
    REMINDER_DELAY_DAYS: int = 21
    NOTICE_WAIT_DAYS: int = 21

    # Artifact storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    LOCAL_STORAGE_PATH: str = "/tmp/probatedesk-artifacts"
    S3_BUCKET: str = "probatedesk-artifacts"
    S3_REGION: str = "ca-central-1"
    S3_ENDPOINT_URL: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    # Email (Resend)
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "ProbateDesk <notifications@probatedesk.com>"

    # SMS (Twilio)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_FROM_NUMBER: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only outside dev/test."""
        return self.ENV not in ("dev", "test")

    @property
    def app_url(self) -> str:
        return self.APP_URL.rstrip("/")


settings = Settings()
