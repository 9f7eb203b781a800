from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # MongoDB Configuration
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "yardsale_db"
    
    # JWT Configuration
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 43200  # 30 days
    
    # First admin, created on startup when the admins collection is empty
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""
    
    # Product actions reachable without an admin token ("reserve", "offer", "unreserve")
    PUBLIC_PRODUCT_ACTIONS: List[str] = ["reserve", "offer"]
    
    # Image Storage
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    MAX_IMAGE_SIZE_MB: int = 10
    
    # Application Settings
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    API_V1_PREFIX: str = "/api"
    PROJECT_NAME: str = "Yard Sale"
    
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
