"""
backend/dependencies.py

Backend wiring for the FastAPI app: builds the KV store and identity service
from configuration once, and exposes them to routes as dependencies.
"""

from __future__ import annotations

from fastapi import Request

from backend import config
from backend.identity import IdentityService, LocalIdentityService, SupabaseIdentityService
from backend.kv_store import KVStore, create_kv_store


def build_kv_store() -> KVStore:
    return create_kv_store(config.KV_DATABASE_URL, config.KV_DATABASE_PATH)


def build_identity(kv: KVStore) -> IdentityService:
    """Hosted GoTrue when configured, otherwise the local JWT identity service sharing the KV store."""
    if config.USE_HOSTED_IDENTITY:
        return SupabaseIdentityService(
            config.SUPABASE_URL,
            config.SUPABASE_SERVICE_ROLE_KEY,
            timeout=config.IDENTITY_TIMEOUT,
        )
    return LocalIdentityService(
        kv,
        secret_key=config.SECRET_KEY,
        algorithm=config.ALGORITHM,
        token_minutes=config.ACCESS_TOKEN_MINUTES,
    )


def get_kv_store(request: Request) -> KVStore:
    return request.app.state.kv_store


def get_identity(request: Request) -> IdentityService:
    return request.app.state.identity
