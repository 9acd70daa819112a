from pydantic_settings import BaseSettings
from dotenv import load_dotenv
import os
from pydantic import ConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    # Admin access
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "authenticated_admin_token")

    # Product cache freshness window, in milliseconds
    PRODUCTS_CACHE_DURATION: int = int(os.getenv("PRODUCTS_CACHE_DURATION", "120000"))

    # Remote store (PostgREST / Supabase). Both empty -> in-memory store
    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    STORE_TIMEOUT: float = float(os.getenv("STORE_TIMEOUT", "10"))

    # Other settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8085"))

    @property
    def remote_store_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)

    @property
    def cors_origins(self) -> list:
        """Split CORS_ORIGINS on commas, ignoring blanks"""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
