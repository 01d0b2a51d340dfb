from datetime import date

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite:///./focus_progress.db"
    APP_ENV: str = "development"
    SECRET_KEY: str = "changeme-secret-key"

    # Identity tokens (HS256 JWT). The cookie is checked when no
    # Authorization header is present.
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30 * 24 * 60
    IDENTITY_COOKIE_NAME: str = "access_token"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

    # Yearly rollups start here when the project has no visible records.
    YEARLY_LOOKBACK_FLOOR: date = date(2020, 1, 1)
    RANGE_MAX_DAYS: int = 365
    RECENT_SESSIONS_LIMIT: int = 50

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
