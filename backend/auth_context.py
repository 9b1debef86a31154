"""
backend/auth_context.py

Shared authentication primitives for FastAPI dependency injection.

Contains:
- ApiError: error carried to the client as {"error": message}
- AuthContext: the authenticated actor for one request
- require_auth_context: FastAPI dependency for bearer-token enforcement

This module MUST NOT import backend.main to avoid circular dependencies.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

import requests
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from backend.dependencies import get_identity
from backend.identity import IdentityService

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our own 401 body, not FastAPI's
security = HTTPBearer(auto_error=False)


class ApiError(Exception):
    """An error response with a JSON body of the form {"error": message}."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@contextmanager
def internal_errors(action: str, message: Optional[str] = None) -> Generator[None, None, None]:
    """
    Convert unexpected exceptions inside a handler into a generic 500.

    ApiError passes through untouched. Anything else is logged with its
    traceback and reported as "Internal server error while <action>"
    unless an explicit message is given.
    """
    try:
        yield
    except ApiError:
        raise
    except Exception:
        logger.exception("[API] Unexpected error while %s", action)
        raise ApiError(500, message or f"Internal server error while {action}")


# ---------------------------------------------------------
# AuthContext
# ---------------------------------------------------------
class AuthContext(BaseModel):
    """
    The authenticated actor for the current request.
    This is the ONLY source of truth for the owning user id in protected endpoints;
    never trust userId from request bodies.
    """

    user_id: str
    email: str
    name: str = ""

    @property
    def namespace(self) -> str:
        return f"user:{self.user_id}"

    def projects_prefix(self) -> str:
        return f"{self.namespace}:projects:"

    def project_key(self, project_id: str) -> str:
        return f"{self.namespace}:projects:{project_id}"

    def preferences_key(self) -> str:
        return f"{self.namespace}:preferences"


def require_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityService = Depends(get_identity),
) -> AuthContext:
    """
    Resolve the bearer token to an AuthContext.

    Raises:
        ApiError(401): "No token provided" or "Invalid token"
        ApiError(500): identity service unreachable or failing
    """
    if credentials is None or not credentials.credentials:
        raise ApiError(401, "No token provided")

    try:
        user = identity.get_user(credentials.credentials)
    except requests.RequestException as e:
        logger.error("[AUTH] Identity service unavailable: %s", type(e).__name__)
        raise ApiError(500, "Internal server error during authentication")

    if user is None or not user.id:
        raise ApiError(401, "Invalid token")

    logger.debug("[AUTH] Authenticated: user_id=%s", user.id)
    return AuthContext(user_id=user.id, email=user.email, name=user.name)
