"""
Configuration module for the Silent Auction admin panel.

Loads environment variables and provides configuration constants.
All sensitive values should be in .env file (never commit to git).
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_KEY = "placeholder-key"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SupabaseConfig:
    """Supabase connection configuration."""
    url: str
    key: str  # Anon key (RLS enforced) or service role key

    @property
    def is_configured(self) -> bool:
        """True when both values are set and are not the placeholders."""
        return bool(
            self.url and self.key
            and self.url != PLACEHOLDER_URL
            and self.key != PLACEHOLDER_KEY
        )

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        return cls(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_KEY", ""),
        )


@dataclass
class AppConfig:
    """Main application configuration."""
    # Local fallback snapshot (offline continuity only)
    snapshot_dir: str = ".auction_snapshot"

    # Recovery job while the remote store or change feed is unavailable
    resync_interval_seconds: int = 30

    # Change feed
    enable_change_feed: bool = True
    feed_connect_timeout: float = 10.0

    # Web panel
    secret_key: str = "dev-secret-key-change-in-production"
    approved_users_table: str = "approved_users"

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            snapshot_dir=os.getenv("SNAPSHOT_DIR", ".auction_snapshot"),
            resync_interval_seconds=int(os.getenv("RESYNC_INTERVAL_SECONDS", "30")),
            enable_change_feed=_env_flag("ENABLE_CHANGE_FEED", "true"),
            feed_connect_timeout=float(os.getenv("FEED_CONNECT_TIMEOUT", "10")),
            secret_key=os.getenv("FLASK_SECRET_KEY", "dev-secret-key-change-in-production"),
            approved_users_table=os.getenv("APPROVED_USERS_TABLE", "approved_users"),
        )


# Global configuration instances (lazy loaded)
_supabase_config: Optional[SupabaseConfig] = None
_app_config: Optional[AppConfig] = None


def get_supabase_config() -> SupabaseConfig:
    """Get Supabase configuration (cached)."""
    global _supabase_config
    if _supabase_config is None:
        _supabase_config = SupabaseConfig.from_env()
    return _supabase_config


def get_app_config() -> AppConfig:
    """Get app configuration (cached)."""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config
