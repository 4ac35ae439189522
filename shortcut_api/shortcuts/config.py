from __future__ import annotations

import os
from dotenv import load_dotenv
from pydantic import BaseModel

# Load environment variables from .env (if present)
load_dotenv()


class Settings(BaseModel):
    # Site collections, keyed by short namespace name (e.g. "o", "en", ".us")
    site_url_template: str = os.getenv(
        "SHORTCUTS_SITE_URL_TEMPLATE",
        "https://data.trovu.net/data/shortcuts/{name}.yml",
    )

    # Per-account collections and account configs hosted on Github
    github_shortcuts_url_template: str = os.getenv(
        "SHORTCUTS_GITHUB_URL_TEMPLATE",
        "https://raw.githubusercontent.com/{github}/trovu-data-user/master/shortcuts.yml",
    )
    github_config_url_template: str = os.getenv(
        "SHORTCUTS_GITHUB_CONFIG_URL_TEMPLATE",
        "https://raw.githubusercontent.com/{github}/trovu-data-user/master/config.yml",
    )

    # Used when the caller gives no language / country
    default_language: str = os.getenv("SHORTCUTS_DEFAULT_LANGUAGE", "en")
    default_country: str = os.getenv("SHORTCUTS_DEFAULT_COUNTRY", "us")

    # Max number of collection fetches in flight per session
    fetch_concurrency: int = int(os.getenv("SHORTCUTS_FETCH_CONCURRENCY", "8"))
    fetch_timeout: float = float(os.getenv("SHORTCUTS_FETCH_TIMEOUT", "10.0"))

    # Max number of populated environments kept by the API (least recently used evicted)
    environment_cache_size: int = int(os.getenv("SHORTCUTS_ENVIRONMENT_CACHE_SIZE", "128"))

    log_level: str = os.getenv("SHORTCUTS_LOG_LEVEL", "INFO")

    # API key for this FastAPI server (sent via X-API-Key header)
    api_key: str = os.getenv("SHORTCUTS_API_KEY", "")

    # CORS origins (comma-separated or "*")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")


settings = Settings()
