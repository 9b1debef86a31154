"""
backend/identity_routes.py

GoTrue-compatible subset of the Supabase Auth API, served by the
LocalIdentityService when no hosted identity service is configured:

    POST /auth/v1/token?grant_type=password   sign in
    GET  /auth/v1/user                        current user
    PUT  /auth/v1/user                        update email / user metadata
    POST /auth/v1/logout                      revoke the session

Only mounted by create_app() for a LocalIdentityService.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel

from backend.auth_context import security
from backend.dependencies import get_identity
from backend.identity import IdentityError, LocalIdentityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/v1", tags=["identity"])


class PasswordGrant(BaseModel):
    email: str
    password: str


class UserUpdate(BaseModel):
    email: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _gotrue_error(status_code: int, error: str, description: str) -> JSONResponse:
    return JSONResponse({"error": error, "error_description": description}, status_code=status_code)


def _token(credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    return credentials.credentials if credentials else ""


@router.post("/token")
def token(
    req: PasswordGrant,
    grant_type: str = Query("password"),
    identity: LocalIdentityService = Depends(get_identity),
):
    if grant_type != "password":
        return _gotrue_error(400, "unsupported_grant_type", f"Unsupported grant type: {grant_type}")
    try:
        return identity.sign_in(req.email, req.password)
    except IdentityError as e:
        return _gotrue_error(e.status_code, "invalid_grant", e.message)


@router.get("/user")
def get_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: LocalIdentityService = Depends(get_identity),
):
    user = identity.get_user(_token(credentials))
    if user is None:
        return _gotrue_error(401, "invalid_token", "Invalid token")
    return user.to_dict()


@router.put("/user")
def update_user(
    req: UserUpdate,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: LocalIdentityService = Depends(get_identity),
):
    try:
        user = identity.update_user(_token(credentials), data=req.data, email=req.email)
    except IdentityError as e:
        return _gotrue_error(e.status_code, "invalid_request", e.message)
    return user.to_dict()


@router.post("/logout", status_code=204)
def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: LocalIdentityService = Depends(get_identity),
):
    identity.sign_out(_token(credentials))
    return Response(status_code=204)
