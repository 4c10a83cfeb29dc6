"""Core configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    app_version: str = "0.1.0"

    # Database
    database_url: str = "sqlite+aiosqlite:///./inkwell.db"
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_pool_timeout: int = 5
    database_connect_timeout: int = 45

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # OpenTelemetry
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    otel_service_name: str = "inkwell-api"
    otel_sample_ratio: float = 1.0

    # Auth
    jwt_secret: str = "secret-jwt-key"
    jwt_algorithm: str = "HS256"
    access_token_expires_minutes: int = 15
    refresh_token_expires_days: int = 30
    bcrypt_rounds: int = 12
    password_reset_expires_minutes: int = 15
    password_reset_url: str = "http://localhost:3000/reset-password"

    # AWS S3
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    s3_bucket_name: str = "inkwell-uploads"
    s3_presign_expires: int = 30 * 60

    # Pagination
    pagination_default_limit: int = 20
    pagination_max_limit: int = 100

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def s3_base_url(self) -> str:
        """Public base URL of the upload bucket."""
        return f"https://{self.s3_bucket_name}.s3.{self.aws_region}.amazonaws.com"


# Global settings instance
settings = Settings()
