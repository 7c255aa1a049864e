"""
Application Configuration
Loads settings from environment variables
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from .env file"""
    
    # Application
    APP_ENV: str = "development"
    APP_NAME: str = "CV Studio"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    
    # Database
    DATABASE_URL: str = "sqlite:///./cvstudio.db"
    STORE_BACKEND: str = "database"  # "database" or "memory"
    
    # JWT
    JWT_SECRET_KEY: str = "temp-jwt-secret-change-later"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    
    # File Upload
    MAX_UPLOAD_SIZE: int = 5242880  # 5MB
    ALLOWED_IMAGE_TYPES: str = "image/jpeg,image/png,image/jpg,image/webp"
    
    # Storage (Supabase)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    STORAGE_BUCKET: str = "backgrounds"
    
    # AI services (Gemini)
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_API_KEY: Optional[str] = None
    PASSPORT_MODEL: str = "gemini-3-flash-preview"
    BACKGROUND_REMOVAL_MODEL: str = "gemini-2.5-flash-image"
    AI_TIMEOUT_SECONDS: float = 60.0
    
    # Composition
    ASSET_FETCH_TIMEOUT: float = 10.0
    ASSET_ALLOWED_HOSTS: str = ""  # comma separated, storage host is always allowed
    BATCH_DELAY_SECONDS: float = 0.6
    FONT_DIR: str = "fonts"

    # Layout editor sessions
    EDITOR_SESSION_TTL_MINUTES: int = 120
    EDITOR_MAX_SESSIONS_PER_OWNER: int = 5
    
    # Record defaults
    DEFAULT_AGENCY_NAME: str = "PIXEL"
    DEFAULT_PLACE_OF_ISSUE: str = "ADDIS ABABA"
    
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def allowed_image_types(self) -> set:
        return {t.strip() for t in self.ALLOWED_IMAGE_TYPES.split(",") if t.strip()}


# Create global settings instance
settings = Settings()
