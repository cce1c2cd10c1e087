"""Application configuration using pydantic-settings."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys
    gemini_api_key: str = ""

    # Server
    port: int = 3001
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "*"  # Comma-separated origins or "*" for all

    # Rate Limiting (AI routes only)
    rate_limit_enabled: bool = True
    ai_rate_limit: str = "60/hour"

    # Gemini Settings
    gemini_text_model: str = "gemini-2.5-flash"
    gemini_vision_model: str = "gemini-2.5-pro"
    model_timeout_seconds: float = 60.0
    qa_temperature: float = 0.7
    ideation_temperature: float = 0.8
    extraction_temperature: float = 0.2
    extraction_max_tokens: int = 1000

    # Firebase
    firebase_credentials_path: Optional[str] = None
    firebase_storage_bucket: Optional[str] = None
    recipes_collection: str = "recipes"
    favorites_collection: str = "favorites"

    # Images
    max_image_bytes: int = 10 * 1024 * 1024  # 10MB
    vision_max_dim: int = 1400
    vision_jpeg_quality: int = 78

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Get list of CORS origins."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
