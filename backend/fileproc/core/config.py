"""
Pydantic Settings: centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "fileproc_user"
    POSTGRES_PASSWORD: str = "fileproc_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "fileproc_db"

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg)."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def DATABASE_URL_SYNC(self) -> str:
        """Sync URL for Alembic migrations (psycopg2)."""
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Redis / Celery ────────────────────────
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── File Storage ──────────────────────────
    STORAGE_BACKEND: str = "local"          # local | s3
    STORAGE_LOCAL_ROOT: str = "storage/app"
    STORAGE_ENDPOINT: str = "http://localhost:9000"
    STORAGE_ACCESS_KEY: str = "minioadmin"
    STORAGE_SECRET_KEY: str = "minioadmin"
    STORAGE_BUCKET_NAME: str = "fileproc"
    STORAGE_REGION: str = "us-east-1"
    STORAGE_TIMEOUT_SECONDS: float = 30.0

    # ── Uploads ───────────────────────────────
    UPLOAD_MAX_SIZE: int = 10 * 1024 * 1024  # 10MB

    # ── Processing ────────────────────────────
    PROCESSING_TIMEOUT_SECONDS: float = 120.0
    PROCESSING_MAX_ATTEMPTS: int = 3
    PROCESSING_RETRY_BACKOFF_SECONDS: int = 10
    PROCESSING_RETRY_BACKOFF_MAX_SECONDS: int = 600
    STALE_PROCESSING_MINUTES: int = 30
    RETENTION_DAYS: int = 30

    # ── Logging ───────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    API_PREFIX: str = "/api/v1"
    PUBLIC_BASE_URL: str = ""

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"


settings = Settings()
