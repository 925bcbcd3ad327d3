"""Environment config loader"""
from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings read from the environment and .env"""

    # Google Maps Platform (Places Autocomplete / Place Details)
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    PLACES_BASE_URL: str = "https://maps.googleapis.com/maps/api/place"

    # OAuth2 provider (authorization-code flow, Google by default)
    OAUTH_CLIENT_ID: Optional[str] = None
    OAUTH_CLIENT_SECRET: Optional[str] = None
    OAUTH_AUTHORIZE_URL: str = "https://accounts.google.com/o/oauth2/v2/auth"
    OAUTH_TOKEN_URL: str = "https://oauth2.googleapis.com/token"
    OAUTH_USERINFO_URL: str = "https://openidconnect.googleapis.com/v1/userinfo"
    OAUTH_SCOPES: str = "openid email profile"

    # Session cookie
    SESSION_SECRET_KEY: str = "change-me"
    SESSION_COOKIE_NAME: str = "favorite_places_session"

    # Absolute origin used to build the OAuth redirect URI; request origin when unset
    PUBLIC_BASE_URL: Optional[str] = None

    # Storage
    DATABASE_PATH: str = "./data/favorite_places.duckdb"

    # Place search
    SEARCH_DEBOUNCE_MS: int = 300
    SEARCH_RADIUS_M: int = 50_000

    # Map defaults (Hanoi)
    DEFAULT_CENTER_LAT: float = 21.0278
    DEFAULT_CENTER_LNG: float = 105.8342

    # Outbound HTTP
    HTTP_TIMEOUT: float = 10.0

    # Server
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = True
    PORT: int = 3001

    class Config:
        env_file = ".env"
        case_sensitive = True

    def missing_required(self) -> List[str]:
        """Names of provider credentials that are not configured."""
        required = {
            "GOOGLE_MAPS_API_KEY": self.GOOGLE_MAPS_API_KEY,
            "OAUTH_CLIENT_ID": self.OAUTH_CLIENT_ID,
            "OAUTH_CLIENT_SECRET": self.OAUTH_CLIENT_SECRET,
        }
        return [name for name, value in required.items() if not value]


@lru_cache
def get_settings() -> Settings:
    """Return the cached Settings instance"""
    return Settings()
