"""
Core settings and environment variables for Traffic Buddy.
Uses pydantic-settings for type-safe environment variable loading.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Create a .env file in the root directory to configure these.
    """

    # Application
    APP_NAME: str = "Traffic Buddy"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public base URL used to build capture, join and resolve links
    SERVER_URL: str = "http://localhost:8000"

    # CORS - Frontend URLs allowed to access this API
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Firebase/Firestore
    FIREBASE_PROJECT_ID: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # Path to service account JSON
    FIREBASE_STORAGE_BUCKET: Optional[str] = None

    # In-memory repositories for local development without Firebase credentials
    USE_MOCK_DB: bool = False
    # Divisions loaded into the in-memory backend at startup
    DIVISIONS_SEED_FILE: Optional[str] = "divisions_seed.json"

    # Twilio WhatsApp transport (simulated when credentials are missing)
    TWILIO_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_WHATSAPP_FROM: str = "whatsapp:+918788649885"

    # SMTP email copy for divisions (simulated when host is missing)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_SSL: bool = False
    EMAIL_FROM: str = "noreply@trafficbuddy.local"
    EMAIL_FALLBACK_RECIPIENT: Optional[str] = None

    # Conversation and jurisdiction policy
    SESSION_TIMEOUT_MINUTES: int = 60
    SESSION_SAVE_RETRIES: int = 3
    CAPTURE_LINK_TTL_MINUTES: int = 5
    LOCATION_CACHE_TTL_HOURS: int = 24
    MAX_OFFICERS_TO_NOTIFY: int = 2

    # Fill in a readable address for coordinate-only reports (Nominatim)
    REVERSE_GEOCODING_ENABLED: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
