from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field("development")
    api_title: str = Field("Glow by Hanka API")
    log_level: str = Field("INFO")

    database_url: str = Field("sqlite:///portfolio.db")
    database_echo: bool = Field(False)

    jwt_secret: str = Field("change-me-to-a-long-random-secret-value")
    jwt_algorithm: str = Field("HS256")
    jwt_expiration_hours: int = Field(24)

    frontend_url: str = Field("http://localhost:5173")

    upload_dir: str = Field("./uploads")
    max_file_size: int = Field(5 * 1024 * 1024)
    max_request_size: int = Field(10 * 1024 * 1024)

    rate_limit_enabled: bool = Field(True)
    api_rate_limit: str = Field("100/15 minutes")
    login_rate_limit: str = Field("5/15 minutes")

    smtp_host: str = Field("smtp.gmail.com")
    smtp_port: int = Field(465)
    smtp_user: str | None = Field(None)
    smtp_password: str | None = Field(None)
    smtp_from: str | None = Field(None)
    contact_email: str | None = Field(None)
    smtp_timeout: float = Field(15.0)
    smtp_verify_on_startup: bool = Field(False)

    admin_username: str = Field("admin")
    admin_password: str = Field("admin123")
    admin_email: str = Field("admin@glowbyhanka.cz")

    @field_validator("database_url")
    @classmethod
    def _normalise_postgres_scheme(cls, value: str) -> str:
        # Hosted Postgres providers hand out postgres:// which SQLAlchemy rejects
        if value.startswith("postgres://"):
            return value.replace("postgres://", "postgresql://", 1)
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"
