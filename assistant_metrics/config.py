"""
Assistant Metrics Configuration

All environment variables and settings for the metrics API and dashboard.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # APP
    # ==========================================================================
    app_name: str = "Assistant Metrics"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # SUPABASE
    # ==========================================================================
    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str | None = None  # Password login; falls back to service key

    # ==========================================================================
    # DASHBOARD
    # ==========================================================================
    dashboard_rpc_name: str = "get_dashboard_metrics"
    dashboard_refresh_seconds: int = 30  # Client-side poll interval
    default_query_limit: int = 100
    max_query_limit: int = 1000

    # ==========================================================================
    # SESSION
    # ==========================================================================
    session_cookie_name: str = "sb-access-token"
    session_cookie_secure: bool = True
    session_cookie_max_age: int = 3600

    # ==========================================================================
    # SERVER
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
