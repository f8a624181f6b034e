"""
Configuration management for the Account Service application.
Handles environment variables and application settings for account management.
"""

from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Account Service"
    ENVIRONMENT: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]
    ALLOWED_HOSTS: List[str] = ["localhost", "127.0.0.1"]

    # Database - MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "account_service"
    MONGODB_USERNAME: Optional[str] = None
    MONGODB_PASSWORD: Optional[str] = None
    ACCOUNTS_COLLECTION: str = "accounts"

    # MongoDB Environment Variables (from .env)
    MONGO_URI: Optional[str] = None
    MONGO_DB_NAME: Optional[str] = None

    # JWT
    ACCESS_TOKEN_SECRET: str = "access-token-secret-change-in-production"
    REFRESH_TOKEN_SECRET: str = "refresh-token-secret-change-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 10

    # Security
    BCRYPT_ROUNDS: int = 12

    # Media upload (Cloudinary)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    CLOUDINARY_UPLOAD_URL: str = "https://api.cloudinary.com/v1_1/{cloud_name}/auto/upload"
    MEDIA_UPLOAD_TIMEOUT: float = 30.0
    UPLOAD_TEMP_DIR: str = "./public/temp"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"; production always uses json

    # Cookie Configuration
    COOKIE_DOMAIN: Optional[str] = None  # None = host-only cookie
    COOKIE_SAMESITE: str = "lax"  # "none", "lax", or "strict"
    COOKIE_SECURE: bool = True  # Must be True when samesite="none"
    COOKIE_HTTPONLY: bool = True
    COOKIE_PATH: str = "/"

    def get_cookie_kwargs(self) -> Dict[str, Any]:
        """
        Get the shared attributes for the accessToken/refreshToken cookies.

        The same attributes must be used when setting and clearing a cookie,
        otherwise browsers keep the original one.
        """
        cookie_kwargs: Dict[str, Any] = {
            "secure": self.COOKIE_SECURE,
            "httponly": self.COOKIE_HTTPONLY,
            "samesite": self.COOKIE_SAMESITE,
            "path": self.COOKIE_PATH,
        }
        if self.COOKIE_DOMAIN:
            cookie_kwargs["domain"] = self.COOKIE_DOMAIN
        return cookie_kwargs

    def get_media_upload_url(self) -> Optional[str]:
        """Get the Cloudinary upload endpoint, or None when media is not configured."""
        if not self.CLOUDINARY_CLOUD_NAME:
            return None
        return self.CLOUDINARY_UPLOAD_URL.format(cloud_name=self.CLOUDINARY_CLOUD_NAME)

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",")]
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of {allowed_envs}")
        return v

    @field_validator("COOKIE_SAMESITE")
    @classmethod
    def validate_samesite(cls, v):
        """Validate cookie SameSite setting."""
        allowed = ["none", "lax", "strict"]
        if v.lower() not in allowed:
            raise ValueError(f"COOKIE_SAMESITE must be one of {allowed}")
        return v.lower()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Create global settings instance
settings = Settings()


def get_mongodb_url() -> str:
    """
    Get MongoDB connection URL with authentication if credentials are provided.

    Returns:
        str: MongoDB connection URL
    """
    if settings.MONGO_URI:
        return settings.MONGO_URI

    if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
        base_url = settings.MONGODB_URL.replace("mongodb://", "")
        if "@" not in base_url:  # No existing auth in URL
            return f"mongodb://{settings.MONGODB_USERNAME}:{settings.MONGODB_PASSWORD}@{base_url}"

    return settings.MONGODB_URL


def get_mongodb_database_name() -> str:
    """
    Get MongoDB database name.

    Returns:
        str: MongoDB database name
    """
    if settings.MONGO_DB_NAME:
        return settings.MONGO_DB_NAME

    return settings.MONGODB_DATABASE


def is_production() -> bool:
    """Check if running in production environment."""
    return settings.ENVIRONMENT == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return settings.ENVIRONMENT == "development"
