"""
Application configuration with automatic environment detection
"""
import os
from typing import List
from dotenv import load_dotenv

load_dotenv()

class Settings:
    """Application settings read from the environment"""

    # Environment detection
    ENV = os.getenv("ENV", "DEV").upper()
    IS_PRODUCTION = ENV == "PROD" or ENV == "PRODUCTION"
    IS_DEVELOPMENT = not IS_PRODUCTION

    # Server configuration
    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fulfillment_bridge.db")

    # Encryption (stored Admin API tokens)
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY", "your-32-character-encryption-key!!")

    # Shopify app credentials. The secret signs both webhooks and dashboard session tokens.
    SHOPIFY_API_KEY = os.getenv("SHOPIFY_API_KEY", "")
    SHOPIFY_API_SECRET = os.getenv("SHOPIFY_API_SECRET", "")
    SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2025-01")
    SESSION_TOKEN_ALGORITHM = "HS256"

    # Public URL of this app; the orders/create webhook and fulfillment service call back here
    APP_URL = os.getenv("APP_URL", "http://localhost:8000").strip().rstrip("/")
    # Rate callback for the carrier service (served by the fulfillment backend)
    CARRIER_SERVICE_CALLBACK_URL = os.getenv(
        "CARRIER_SERVICE_CALLBACK_URL", "http://localhost:4000/carrier-service"
    )
    FULFILLMENT_SERVICE_NAME = os.getenv("FULFILLMENT_SERVICE_NAME", "Custom Fulfillment Service")
    CARRIER_SERVICE_NAME = os.getenv("CARRIER_SERVICE_NAME", "Custom Carrier Service")

    # External decision / calculation / tracking services
    FULFILLMENT_BACKEND_URL = os.getenv("FULFILLMENT_BACKEND_URL", "http://localhost:4000").strip().rstrip("/")
    FULFILLMENT_BACKEND_PORT = int(os.getenv("FULFILLMENT_BACKEND_PORT", 4000))
    HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG").upper()

    @property
    def ORDER_WEBHOOK_URL(self) -> str:
        return f"{self.APP_URL}/webhooks/orders/create"

    @property
    def ALLOWED_ORIGINS(self) -> List[str]:
        """CORS origins from ALLOWED_ORIGINS (comma-separated); Shopify admin is always allowed."""
        origins = ["https://admin.shopify.com"]
        env_origins = os.getenv("ALLOWED_ORIGINS", "")
        for origin in env_origins.split(","):
            origin = origin.strip()
            if origin and origin not in origins:
                origins.append(origin)
        return origins

    def __str__(self):
        return f"Settings(ENV={self.ENV}, IS_PRODUCTION={self.IS_PRODUCTION})"

# Global settings instance
settings = Settings()
