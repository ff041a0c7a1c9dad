"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    APP_NAME: str = "QR Menu"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # API
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    # Public origin of the diner-facing frontend, used in menu and table links
    PUBLIC_BASE_URL: str = "http://localhost:8080"

    # Database
    DATABASE_URL: str = "sqlite:///./qrmenu.db"
    DB_ECHO: bool = False
    VERIFY_SCHEMA_ON_STARTUP: bool = True

    # JWT
    JWT_SECRET_KEY: str = "jwt-secret-key-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours

    # Anonymous diner identity
    DEVICE_COOKIE_NAME: str = "device_id"
    DEVICE_HEADER: str = "X-Device-ID"
    DEVICE_COOKIE_MAX_AGE_DAYS: int = 30

    # Tables
    MAX_TABLES: int = 500

    # Image storage
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    MEDIA_ROOT: str = "media"
    MEDIA_URL: str = "/media"
    MAX_IMAGE_BYTES: int = 5 * 1024 * 1024
    S3_BUCKET: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY: Optional[str] = None
    S3_SECRET_KEY: Optional[str] = None
    S3_PUBLIC_BASE_URL: Optional[str] = None
    S3_PREFIX: str = "menu-images"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
