"""
Configuración centralizada de la aplicación
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "Top-up Storefront API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Catalog, checkout and back-office API for the top-up storefront"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = False

    # Database
    DATABASE_URL: str

    # Auth
    AUTH_SECRET: str
    MEMBER_TOKEN_TTL_MINUTES: int = 60 * 24 * 7

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://shop.example.com" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173"

    # Checkout
    MESSENGER_PAGE_ID: str = "DiginixPh"
    CURRENCY_SYMBOL: str = "₱"

    # Realtime order feed
    ORDER_FEED_LIMIT: int = 100
    ORDER_FEED_LISTEN: bool = False
    ORDER_NOTIFY_CHANNEL: str = "orders_changes"

    LOG_LEVEL: str = "INFO"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
