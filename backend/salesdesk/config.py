"""
Configuration settings for SalesDesk Catalog.

Loads environment variables from .env file and provides typed configuration.
"""

from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Database Configuration
    DATABASE_URL: str = Field(
        default="sqlite:///./data/catalog.db", description="Relational store URL"
    )
    DATABASE_ECHO: bool = Field(
        default=False, description="Echo SQL queries (for debugging)"
    )

    # Asset (blob store) Configuration
    ASSET_ROOT: str = Field(
        default="./data/assets", description="Root directory of the local blob store"
    )
    ASSET_BASE_URL: str = Field(
        default="http://localhost:8000/assets",
        description="Public base URL under which buckets are served",
    )
    ASSET_BUCKET: str = Field(
        default="product-images", description="Bucket holding product images"
    )
    MAX_IMAGE_SIZE: int = Field(
        default=5 * 1024 * 1024,  # 5 MB
        description="Maximum product image size in bytes",
    )

    # SKU allocation
    SKU_ALLOCATION_MAX_RETRIES: int = Field(
        default=5, description="Re-scan attempts after a SKU unique-constraint violation"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global settings instance
settings = Settings()
