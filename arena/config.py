"""
Configuration settings for Company Arena API Service.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # API Settings
    app_name: str = "Company Arena API"
    app_version: str = "0.1.0"
    debug: bool = False
    
    # Database
    database_url: str = "sqlite:///./arena.db"
    store_timeout_seconds: float = 5.0  # Busy/checkout timeout for every store call
    
    # Rating Configuration
    elo_k_factor: int = 32
    default_score: int = 500
    min_score: int = 100
    
    # Rate Limiting (soft limit, see VoteService)
    rate_limit_max: int = 300  # Votes per identity per window
    rate_limit_window_seconds: int = 3600
    
    # Votes
    vote_retention_days: int = 90
    return_next_opponent: bool = True
    
    # Leaderboard
    leaderboard_page_size: int = 200
    
    # Pruning of expired votes
    prune_scheduler_enabled: bool = True
    prune_interval_minutes: int = 60
    
    # CORS
    allowed_origins: str = "*"
    
    # Logging
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        env_prefix = "ARENA_"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
