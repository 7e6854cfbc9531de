from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Union
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000,http://127.0.0.1:3000"

    # Index store
    REDIS_URL: str = "redis://127.0.0.1:6379/0"
    REDIS_CONNECT_RETRIES: int = 3
    REDIS_RETRY_DELAY: float = 0.5

    # Security
    JWT_SECRET: str = "dev-jwt-secret-change-me-very-long-32-chars-minimum"
    ACCESS_TOKEN_EXPIRES_MIN: int = 7 * 24 * 60

    # Storage
    STORAGE_DRIVER: str = "local"
    STORAGE_DIR: str = "./storage"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""

    # Uploads
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    KEEP_ORIGINAL_FILENAME: bool = False

    # Reconciliation
    BLOB_LIST_LIMIT: int = 100
    REUPLOAD_FETCH_TIMEOUT: float = 30.0

    # Observability
    SENTRY_DSN: str = ""
    METRICS_ENABLED: bool = False

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    AUTH_RATE_LIMIT: str = "10/minute"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @property
    def is_production(self) -> bool:
        return (self.APP_ENV or "").strip().lower() == "production"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
