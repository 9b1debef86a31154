# frontend/config.py
# Environment-aware configuration for the project dashboard frontend

import logging
import os
from typing import Literal

logger = logging.getLogger(__name__)

# Environment detection - normalize to lowercase
_raw_env = os.environ.get("ENV", "local").lower()
ENV: Literal["local", "staging", "production"] = _raw_env if _raw_env in ("local", "staging", "production") else "local"  # type: ignore

IS_LOCAL = (ENV == "local")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "production")
IS_DEV = IS_LOCAL

# Placeholder project URL shipped in sample configs; treated as "not configured"
DEMO_SUPABASE_URL = "https://demo.supabase.co"

SUPABASE_URL = os.environ.get("SUPABASE_URL", "").strip().rstrip("/")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "").strip()

# Identity endpoints live on the Supabase project unless overridden
# (e.g. the API's built-in identity routes during local development)
IDENTITY_URL = os.environ.get("IDENTITY_URL", "").strip().rstrip("/") or SUPABASE_URL

# Local persisted container for demo data and the remote session
LOCAL_STORAGE_PATH = os.environ.get("LOCAL_STORAGE_PATH", ".dashboard-storage.json")

REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "20"))


def is_demo_mode(supabase_url: str = None) -> bool:
    """
    Demonstration mode runs entirely on local storage.

    Selected when no Supabase project URL is configured, or when the URL is
    the shipped placeholder.
    """
    url = SUPABASE_URL if supabase_url is None else supabase_url.strip().rstrip("/")
    return not url or url == DEMO_SUPABASE_URL


def validate_api_url(url: str, env: str) -> None:
    """
    Validate a base URL according to environment security rules.

    Raises:
        ValueError: If URL violates security constraints for the environment
    """
    if not url:
        raise ValueError("API base URL cannot be empty")

    # Production/staging must use HTTPS and never localhost
    if env in ("staging", "production"):
        if not url.startswith("https://"):
            raise ValueError(f"Production/staging must use HTTPS. Got: {url}")
        if "127.0.0.1" in url or "localhost" in url:
            raise ValueError(f"Production/staging cannot use localhost URLs. Got: {url}")


def get_api_base_url() -> str:
    """
    Get API base URL with strict priority and validation.

    Priority:
    1. BACKEND_URL environment variable
    2. API_BASE_URL environment variable
    3. <SUPABASE_URL>/functions/v1/server when a Supabase project is configured
    4. Local dev default (http://127.0.0.1:8000) ONLY if ENV == "local"
    5. Raise error for staging/production with no configured URL
    """
    for var in ("BACKEND_URL", "API_BASE_URL"):
        value = os.environ.get(var, "").strip()
        if value:
            url = value.rstrip("/")
            validate_api_url(url, ENV)
            return url

    if not is_demo_mode():
        url = f"{SUPABASE_URL}/functions/v1/server"
        validate_api_url(url, ENV)
        return url

    if ENV == "local":
        return "http://127.0.0.1:8000"

    raise RuntimeError(
        f"Backend URL not configured for {ENV.upper()} environment. "
        f"Set BACKEND_URL or SUPABASE_URL. Production/staging MUST use HTTPS."
    )


def get_identity_url() -> str:
    """Base URL of the GoTrue-compatible identity service (no trailing slash)."""
    if IDENTITY_URL:
        validate_api_url(IDENTITY_URL, ENV)
    return IDENTITY_URL


def log_config() -> None:
    logger.info("[CONFIG] Environment: %s", ENV)
    logger.info("[CONFIG] Mode: %s", "demo" if is_demo_mode() else "remote")
    if not is_demo_mode():
        try:
            logger.info("[CONFIG] Backend URL: %s", get_api_base_url())
        except (RuntimeError, ValueError) as e:
            logger.error("[CONFIG] CRITICAL: %s", e)
