"""
backend/identity.py

Identity service used by the API to authenticate bearer tokens and create accounts.

- SupabaseIdentityService: hosted GoTrue (Supabase Auth) over its REST API.
- LocalIdentityService: self-contained accounts stored in the KV store, with
  SHA-256 password hashes and HS256 JWT access tokens. Used for local
  development and tests; also backs the GoTrue-compatible routes in
  backend/identity_routes.py so the dashboard speaks one protocol either way.

Tokens and passwords are never logged.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

import jwt
import requests

from domains.projects.models.project import now_iso
from backend.kv_store import KVStore

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Raised when the identity service rejects a request (duplicate email, bad credentials, ...)."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class IdentityUser:
    """A user as reported by the identity service (GoTrue user object subset)."""

    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    last_sign_in_at: Optional[str] = None

    @property
    def name(self) -> str:
        return self.user_metadata.get("name") or ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IdentityUser":
        return cls(
            id=str(data.get("id", "")),
            email=data.get("email") or "",
            user_metadata=dict(data.get("user_metadata") or {}),
            created_at=data.get("created_at"),
            last_sign_in_at=data.get("last_sign_in_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "user_metadata": dict(self.user_metadata),
            "created_at": self.created_at,
            "last_sign_in_at": self.last_sign_in_at,
            "aud": "authenticated",
            "role": "authenticated",
        }


class IdentityService(Protocol):
    """What the request router needs from an identity provider."""

    def get_user(self, access_token: str) -> Optional[IdentityUser]:
        ...

    def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> IdentityUser:
        ...


def _error_message(resp: requests.Response, default: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip() or default
    if isinstance(data, dict):
        for key in ("msg", "message", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return default


class SupabaseIdentityService:
    """GoTrue REST client authenticated with the service-role key."""

    def __init__(self, base_url: str, service_role_key: str, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout

    def _admin_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
            "Content-Type": "application/json",
        }

    def get_user(self, access_token: str) -> Optional[IdentityUser]:
        """
        Resolve an access token to its user.

        Returns None for tokens the service rejects. Transport errors propagate
        (an unreachable identity service is a server error, not a bad token).
        """
        resp = requests.get(
            f"{self.base_url}/auth/v1/user",
            headers={"Authorization": f"Bearer {access_token}", "apikey": self.service_role_key},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            logger.debug("[AUTH] Identity service rejected token: HTTP %s", resp.status_code)
            return None
        return IdentityUser.from_dict(resp.json())

    def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> IdentityUser:
        # Email is confirmed immediately since no mail server is configured
        resp = requests.post(
            f"{self.base_url}/auth/v1/admin/users",
            json={"email": email, "password": password, "user_metadata": metadata, "email_confirm": True},
            headers=self._admin_headers(),
            timeout=self.timeout,
        )
        if resp.status_code not in (200, 201):
            raise IdentityError(_error_message(resp, "Failed to create user"), status_code=400)
        return IdentityUser.from_dict(resp.json())


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def verify_password(password: str, password_hash: str) -> bool:
    return secrets.compare_digest(hash_password(password), password_hash)


class LocalIdentityService:
    """
    Minimal self-hosted identity provider.

    KV layout:
        auth:users:<user_id>        -> user record (incl. password_hash)
        auth:emails:<email>         -> user_id
        auth:revoked:<session_id>   -> true once signed out
    """

    def __init__(
        self,
        kv: KVStore,
        secret_key: str,
        algorithm: str = "HS256",
        token_minutes: int = 60,
    ):
        self.kv = kv
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_minutes = token_minutes

    # ---------------------------------------------------------
    # Storage helpers
    # ---------------------------------------------------------
    @staticmethod
    def _normalize_email(email: str) -> str:
        return email.strip().lower()

    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.kv.get(f"auth:users:{user_id}")

    def _save(self, record: Dict[str, Any]) -> None:
        self.kv.set(f"auth:users:{record['id']}", record)

    def _user(self, record: Dict[str, Any]) -> IdentityUser:
        return IdentityUser.from_dict(record)

    def get_user_by_email(self, email: str) -> Optional[IdentityUser]:
        user_id = self.kv.get(f"auth:emails:{self._normalize_email(email)}")
        if not user_id:
            return None
        record = self._load(user_id)
        return self._user(record) if record else None

    # ---------------------------------------------------------
    # Tokens
    # ---------------------------------------------------------
    def _issue_session(self, record: Dict[str, Any]) -> Dict[str, Any]:
        session_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        expires = now + timedelta(minutes=self.token_minutes)
        access_token = jwt.encode(
            {
                "sub": record["id"],
                "email": record["email"],
                "session_id": session_id,
                "aud": "authenticated",
                "iat": now,
                "exp": expires,
            },
            self.secret_key,
            algorithm=self.algorithm,
        )
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": self.token_minutes * 60,
            "expires_at": int(expires.timestamp()),
            "refresh_token": secrets.token_urlsafe(32),
            "user": self._user(record).to_dict(),
        }

    def _decode(self, access_token: str) -> Optional[Dict[str, Any]]:
        try:
            payload = jwt.decode(
                access_token, self.secret_key, algorithms=[self.algorithm], audience="authenticated"
            )
        except jwt.ExpiredSignatureError:
            logger.debug("[AUTH] Token expired")
            return None
        except jwt.InvalidTokenError:
            logger.debug("[AUTH] Invalid token")
            return None
        if self.kv.get(f"auth:revoked:{payload.get('session_id')}"):
            logger.debug("[AUTH] Token belongs to a revoked session")
            return None
        return payload

    # ---------------------------------------------------------
    # IdentityService
    # ---------------------------------------------------------
    def get_user(self, access_token: str) -> Optional[IdentityUser]:
        payload = self._decode(access_token)
        if not payload or not payload.get("sub"):
            return None
        record = self._load(payload["sub"])
        return self._user(record) if record else None

    def create_user(self, email: str, password: str, metadata: Dict[str, Any]) -> IdentityUser:
        email_norm = self._normalize_email(email)
        if self.kv.get(f"auth:emails:{email_norm}"):
            raise IdentityError("A user with this email address has already been registered", status_code=422)
        record = {
            "id": str(uuid.uuid4()),
            "email": email_norm,
            "password_hash": hash_password(password),
            "user_metadata": dict(metadata or {}),
            "created_at": now_iso(),
            "last_sign_in_at": None,
        }
        self._save(record)
        self.kv.set(f"auth:emails:{email_norm}", record["id"])
        logger.info("[AUTH] User created: id=%s", record["id"])
        return self._user(record)

    # ---------------------------------------------------------
    # GoTrue-compatible operations (used by identity_routes)
    # ---------------------------------------------------------
    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        user_id = self.kv.get(f"auth:emails:{self._normalize_email(email)}")
        record = self._load(user_id) if user_id else None
        if not record or not verify_password(password, record.get("password_hash", "")):
            raise IdentityError("Invalid login credentials", status_code=400)
        record["last_sign_in_at"] = now_iso()
        self._save(record)
        logger.info("[AUTH] Sign-in: user_id=%s", record["id"])
        return self._issue_session(record)

    def update_user(
        self, access_token: str, data: Optional[Dict[str, Any]] = None, email: Optional[str] = None
    ) -> IdentityUser:
        payload = self._decode(access_token)
        record = self._load(payload["sub"]) if payload else None
        if not record:
            raise IdentityError("Invalid token", status_code=401)
        if email:
            email_norm = self._normalize_email(email)
            owner = self.kv.get(f"auth:emails:{email_norm}")
            if owner and owner != record["id"]:
                raise IdentityError("Email is already taken", status_code=422)
            if email_norm != record["email"]:
                self.kv.delete(f"auth:emails:{record['email']}")
                self.kv.set(f"auth:emails:{email_norm}", record["id"])
                record["email"] = email_norm
        if data:
            record["user_metadata"] = {**record.get("user_metadata", {}), **data}
        self._save(record)
        return self._user(record)

    def sign_out(self, access_token: str) -> None:
        payload = self._decode(access_token)
        if payload and payload.get("session_id"):
            self.kv.set(f"auth:revoked:{payload['session_id']}", True)
            logger.info("[AUTH] Session revoked: user_id=%s", payload.get("sub"))


def ensure_demo_user(identity: IdentityService, email: str, password: str, name: str) -> None:
    """Create the shared demo account if the identity service does not have it yet."""
    try:
        identity.create_user(email, password, {"name": name})
        logger.info("[DEMO] Demo user created")
    except IdentityError as e:
        logger.debug("[DEMO] Demo user not created: %s", e.message)
    except requests.RequestException as e:
        logger.warning("[DEMO] Could not reach identity service to create demo user: %s", type(e).__name__)
