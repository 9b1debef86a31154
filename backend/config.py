# backend/config.py
# Environment-aware configuration for the project dashboard API

import logging
import os
from typing import Literal

logger = logging.getLogger(__name__)

# Environment detection
ENV: Literal["dev", "staging", "prod"] = os.environ.get("ENV", "dev")  # type: ignore
IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

# Hosted identity service (GoTrue / Supabase Auth).
# Both values set -> delegate auth to the hosted service.
# Otherwise the API runs its own local identity service (dev and tests).
SUPABASE_URL = os.environ.get("SUPABASE_URL", "").strip().rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip()
USE_HOSTED_IDENTITY = bool(SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY)
IDENTITY_TIMEOUT = int(os.environ.get("IDENTITY_TIMEOUT", "10"))

# Local identity service (JWT)
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_MINUTES = int(os.environ.get("ACCESS_TOKEN_MINUTES", "60"))

# Key-value storage
# KV_DATABASE_URL (Postgres) takes precedence, then KV_DATABASE_PATH (SQLite file).
# Neither set -> in-memory store (data is lost on restart).
KV_DATABASE_URL = os.environ.get("KV_DATABASE_URL", "").strip()
KV_DATABASE_PATH = os.environ.get("KV_DATABASE_PATH", "").strip()

# CORS: the dashboard is served from a different origin than the API
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

# Demo account ensured at startup
SEED_DEMO_USER = os.environ.get("SEED_DEMO_USER", "1") != "0"
DEMO_EMAIL = os.environ.get("DEMO_EMAIL", "demo@example.com")
DEMO_PASSWORD = os.environ.get("DEMO_PASSWORD", "demo123")
DEMO_NAME = os.environ.get("DEMO_NAME", "Demo User")


def configure_logging() -> None:
    """Configure root logging once; verbose in dev."""
    logging.basicConfig(
        level=logging.DEBUG if IS_DEV else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def log_config() -> None:
    logger.info("[CONFIG] Environment: %s", ENV)
    logger.info("[CONFIG] Identity: %s", "hosted (%s)" % SUPABASE_URL if USE_HOSTED_IDENTITY else "local (JWT)")
    if KV_DATABASE_URL:
        logger.info("[CONFIG] KV store: SQLAlchemy")
    elif KV_DATABASE_PATH:
        logger.info("[CONFIG] KV store: SQLite (%s)", KV_DATABASE_PATH)
    else:
        logger.info("[CONFIG] KV store: in-memory")
    if not USE_HOSTED_IDENTITY and not IS_DEV and SECRET_KEY == "dev-secret-key-change-me":
        logger.warning("[CONFIG] SECRET_KEY is the development default outside dev")
