"""
Application settings loaded from environment variables or a .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Trace review dashboard settings (env prefix TRACE_REVIEW_)."""

    model_config = SettingsConfigDict(
        env_prefix="TRACE_REVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Trace store
    database_url: str = "sqlite:///./traces.db"

    # Statistics: "server" uses the SQL aggregation, "client" the pandas aggregator
    stats_source: str = "server"
    default_window_days: int = 30

    # Reviewer capability (sign-in itself is handled upstream)
    signed_in: bool = True
    reviewer_role: str = "Reviewer"

    # Synchronization
    prefetch_enabled: bool = True

    # Logging and monitoring
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    slow_operation_threshold: float = 1.0

    # Gradio server
    server_name: str = "127.0.0.1"
    server_port: int = 7860


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
