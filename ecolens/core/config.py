from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings class. Reads environment variables first, then .env file.

    List-valued fields (e.g. MODEL_CANDIDATES) are read from the environment as JSON,
    e.g. MODEL_CANDIDATES='["gemini-2.5-flash", "gemini-1.5-pro"]'.
    """

    # --- Project Metadata ---
    PROJECT_NAME: str = "EcoLens Enforcement API"
    VERSION: str = "1.0.0"

    # --- Database Settings ---
    POSTGRES_USER: str = "ecolens"
    POSTGRES_PASSWORD: str = "ecolens"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "ecolens"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts when set
    DATABASE_URL_OVERRIDE: Optional[str] = None

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        # The 'postgresql+asyncpg' prefix is essential for async SQLAlchemy
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # --- Security/JWT Settings ---
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # --- Model Invocation ---
    GEMINI_API_KEY: str = ""
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    # Priority order: newest/most capable first
    MODEL_CANDIDATES: List[str] = [
        "gemini-2.5-flash",
        "gemini-2.0-flash",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
    ]
    MODEL_RATE_LIMIT_COOLDOWN_SECONDS: float = 1.5
    MODEL_TIMEOUT_SECONDS: float = 30.0

    # --- Authority Search (TomTom POI) ---
    TOMTOM_API_KEY: str = ""
    TOMTOM_BASE_URL: str = "https://api.tomtom.com/search/2/search"
    POI_SEARCH_RADIUS_METERS: int = 5000
    POI_SEARCH_LIMIT: int = 5
    POI_TIMEOUT_SECONDS: float = 5.0
    # YAML file replacing the built-in intent profiles (queries, allow-lists, labels)
    AUTHORITY_RULES_FILE: Optional[str] = None
    AUTHORITY_EXTRA_BLOCKLIST: List[str] = []

    # --- Reverse Geocoding ---
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/reverse"
    GEOCODER_USER_AGENT: str = "ecolens-enforcement-api"
    GEOCODER_TIMEOUT_SECONDS: float = 5.0

    # --- Mail ---
    MAIL_USERNAME: str = ""
    MAIL_PASSWORD: str = ""
    MAIL_FROM: str = "no-reply@ecolens.in"
    MAIL_FROM_NAME: str = "EcoLens Enforcer"
    MAIL_PORT: int = 587
    MAIL_SERVER: str = "smtp.gmail.com"
    MAIL_STARTTLS: bool = True
    MAIL_SSL_TLS: bool = False
    MAIL_SUPPRESS_SEND: bool = False
    AUTHORITY_ALERT_RECIPIENT: str = "authority-desk@ecolens.in"

    # --- Storage ---
    MEDIA_ROOT: str = "media"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = None

    # Pydantic Settings configuration: tells it where to look for .env files
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings object.
    Ensures settings are loaded only once per application run.
    """
    return Settings()


settings = get_settings()
