"""
Configuration management for the portfolio API.
Uses Pydantic Settings for environment variable management.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_TITLE: str = "Portfolio Content API"
    API_VERSION: str = "0.1.0"
    API_DESCRIPTION: str = "Backend API for portfolio collections, content and image processing"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8080",
    ]

    LOG_LEVEL: str = "INFO"

    # Database Configuration
    # Empty value falls back to a local ./portfolio.db SQLite file
    DATABASE_URL: str = ""

    # Object storage (S3 or any S3-compatible endpoint)
    AWS_REGION: str = "us-west-2"
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_S3_BUCKET: str = ""
    S3_ENDPOINT_URL: str = ""
    # Public CDN domain substituted into stored URLs (e.g. d1234.cloudfront.net)
    CDN_DOMAIN: str = ""

    # Admin Password, bcrypt hashed (see generate_password_hash.py)
    ADMIN_PASSWORD_HASH: str = ""

    # JWT Configuration
    # SECRET_KEY should be a long random string (e.g., generated with: openssl rand -hex 32)
    JWT_SECRET_KEY: str = "your-secret-key-change-this-in-production-use-openssl-rand-hex-32"
    JWT_EXPIRE_MINUTES: int = 60

    RATE_LIMIT_ENABLED: bool = True

    # Collection defaults
    DEFAULT_CONTENT_PER_PAGE: int = 50

    # Image processing
    IMAGE_MAX_DIMENSION: int = 2500
    WEBP_QUALITY: int = 85
    DEFAULT_AUTHOR: str = "Zechariah Edens"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()
