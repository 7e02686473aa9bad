"""Configuration loading and saving.

Config file location: ~/.config/news-junkie/config.toml

Schema:
    [supabase]
    url = "https://<project>.supabase.co"
    anon_key = "..."

    [auth]
    access_token = "..."  # optional; anonymous reads without it
    user_id = "..."       # optional; needed for posting and following

    [feed]
    page_size = 30

The supabase settings can be overridden with environment variables:
    NEWS_JUNKIE_SUPABASE_URL
    NEWS_JUNKIE_ANON_KEY
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import tomli_w

from .query import DEFAULT_PAGE_SIZE

CONFIG_DIR = Path.home() / ".config" / "news-junkie"
CONFIG_FILE = CONFIG_DIR / "config.toml"


@dataclass
class AuthConfig:
    access_token: str | None = None
    user_id: str | None = None


@dataclass
class AppConfig:
    supabase_url: str
    anon_key: str
    auth: AuthConfig = field(default_factory=AuthConfig)
    page_size: int = DEFAULT_PAGE_SIZE


def load_config(config_path: Path = CONFIG_FILE) -> AppConfig:
    """Load and validate config from TOML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    supabase_data = data.get("supabase", {})
    url = os.environ.get("NEWS_JUNKIE_SUPABASE_URL") or supabase_data.get("url", "")
    anon_key = os.environ.get("NEWS_JUNKIE_ANON_KEY") or supabase_data.get("anon_key", "")

    if not url or not anon_key:
        raise ValueError("Config missing required supabase.url and supabase.anon_key")

    auth_data = data.get("auth", {})
    feed_data = data.get("feed", {})

    page_size = int(feed_data.get("page_size", DEFAULT_PAGE_SIZE))
    if page_size < 1:
        raise ValueError("feed.page_size must be at least 1")

    return AppConfig(
        supabase_url=url,
        anon_key=anon_key,
        auth=AuthConfig(
            access_token=auth_data.get("access_token") or None,
            user_id=auth_data.get("user_id") or None,
        ),
        page_size=page_size,
    )


def save_config(config: AppConfig, config_path: Path = CONFIG_FILE) -> None:
    """Write config to TOML file with restricted permissions."""
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict = {
        "supabase": {
            "url": config.supabase_url,
            "anon_key": config.anon_key,
        },
        "feed": {
            "page_size": config.page_size,
        },
    }

    auth = {}
    if config.auth.access_token:
        auth["access_token"] = config.auth.access_token
    if config.auth.user_id:
        auth["user_id"] = config.auth.user_id
    if auth:
        data["auth"] = auth

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    # Restrict permissions: file contains an access token
    os.chmod(config_path, 0o600)


def config_exists(config_path: Path = CONFIG_FILE) -> bool:
    """Check if config file exists."""
    return config_path.exists()
