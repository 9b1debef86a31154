"""
frontend/session.py

Session Adapter: who is signed in, and how they got there.

Two interchangeable implementations behind one contract:
- DemoSessionAdapter: accounts simulated in the local container (no network)
- RemoteSessionAdapter: GoTrue-compatible identity service + the API's /signup

Adapter calls never raise; failures come back as AuthResult.error.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from domains.projects.models.actor import Actor, DemoActor, Session
from domains.projects.models.project import now_iso
from domains.projects.models.samples import DEMO_ACTOR

try:
    from frontend.api_client import api_request, response_message
    from frontend.local_storage import LocalStorage
    from frontend.validation import validate_email, validate_name, validate_password, validate_signup
except ModuleNotFoundError:
    from api_client import api_request, response_message
    from local_storage import LocalStorage
    from validation import validate_email, validate_name, validate_password, validate_signup

logger = logging.getLogger(__name__)

DEMO_USERS_KEY = "dashboard-demo-users"
CURRENT_DEMO_USER_KEY = "dashboard-current-demo-user"
REMOTE_SESSION_KEY = "dashboard-remote-session"

DEMO_SESSION_SECONDS = 3600


@dataclass
class AuthResult:
    error: Optional[str] = None
    session: Optional[Session] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SessionAdapter(Protocol):
    def sign_in(self, email: str, password: str) -> AuthResult:
        ...

    def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        ...

    def sign_out(self, session: Optional[Session]) -> None:
        ...

    def update_profile(self, session: Optional[Session], fields: Dict[str, Any]) -> AuthResult:
        ...

    def restore(self) -> Optional[Session]:
        ...


# ---------------------------------------------------------
# Demonstration mode
# ---------------------------------------------------------
class DemoSessionAdapter:
    """
    Accounts live in the local container under dashboard-demo-users; the
    signed-in actor id under dashboard-current-demo-user.

    Passwords are stored and compared as plaintext. This mode exists for
    trying the dashboard out and must never hold real credentials.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def _load_actors(self) -> List[DemoActor]:
        stored = self.storage.get_item(DEMO_USERS_KEY)
        if not stored:
            stamp = now_iso()
            return [DemoActor.model_validate({**DEMO_ACTOR, "createdAt": stamp, "lastLogin": stamp})]
        return [DemoActor.model_validate(a) for a in stored]

    def _save_actors(self, actors: List[DemoActor]) -> None:
        self.storage.set_item(DEMO_USERS_KEY, [a.model_dump(by_alias=True) for a in actors])

    def list_actors(self) -> List[Actor]:
        """Accounts shown in the demo notice (without passwords)."""
        return [a.to_actor() for a in self._load_actors()]

    @staticmethod
    def _session_for(actor: DemoActor) -> Session:
        return Session(
            access_token=f"mock-access-token-{actor.id}",
            refresh_token=f"mock-refresh-token-{actor.id}",
            expires_at=int(time.time()) + DEMO_SESSION_SECONDS,
            actor=actor.to_actor(),
        )

    def sign_in(self, email: str, password: str) -> AuthResult:
        actors = self._load_actors()
        for actor in actors:
            if actor.email == email and actor.password == password:
                actor.last_login = now_iso()
                self._save_actors(actors)
                self.storage.set_item(CURRENT_DEMO_USER_KEY, actor.id)
                logger.info("[AUTH] Demo sign-in: user_id=%s", actor.id)
                return AuthResult(session=self._session_for(actor))
        return AuthResult(error="Invalid email or password")

    def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        error = validate_name(name) or validate_email(email)
        if error:
            return AuthResult(error=error)

        actors = self._load_actors()
        # Duplicates are reported before password rules
        if any(a.email == email for a in actors):
            return AuthResult(error="An account with this email already exists")

        error = validate_password(password)
        if error:
            return AuthResult(error=error)

        taken = {a.id for a in actors}
        ms = int(time.time() * 1000)
        while f"demo-user-{ms}" in taken:
            ms += 1

        stamp = now_iso()
        actor = DemoActor(
            id=f"demo-user-{ms}",
            email=email,
            name=name.strip(),
            password=password,
            created_at=stamp,
            last_login=stamp,
        )
        actors.append(actor)
        self._save_actors(actors)
        logger.info("[AUTH] Demo account created: user_id=%s", actor.id)
        return AuthResult()

    def sign_out(self, session: Optional[Session]) -> None:
        self.storage.remove_item(CURRENT_DEMO_USER_KEY)

    def update_profile(self, session: Optional[Session], fields: Dict[str, Any]) -> AuthResult:
        if session is None:
            return AuthResult(error="No user logged in")

        actors = self._load_actors()
        actor = next((a for a in actors if a.id == session.actor.id), None)
        if actor is None:
            return AuthResult(error="User not found")

        email = fields.get("email")
        name = fields.get("name")
        if email and validate_email(email):
            return AuthResult(error=validate_email(email))
        if email and any(a.email == email and a.id != actor.id for a in actors):
            return AuthResult(error="Email is already taken")

        if name:
            actor.name = name.strip()
        if email:
            actor.email = email
        self._save_actors(actors)
        return AuthResult(session=self._session_for(actor))

    def restore(self) -> Optional[Session]:
        current_id = self.storage.get_item(CURRENT_DEMO_USER_KEY)
        if not current_id:
            return None
        actor = next((a for a in self._load_actors() if a.id == current_id), None)
        return self._session_for(actor) if actor else None


# ---------------------------------------------------------
# Remote mode
# ---------------------------------------------------------
class RemoteSessionAdapter:
    """
    Identity calls go to {identity_url}/auth/v1/... with the anon key in the
    apikey header; account creation goes through the API's /signup so the
    service-role key never leaves the server.
    """

    def __init__(self, identity_url: str, api_base_url: str, anon_key: str, storage: LocalStorage):
        self.identity_url = identity_url.rstrip("/")
        self.api_base_url = api_base_url.rstrip("/")
        self.anon_key = anon_key
        self.storage = storage

    def _session_from_token_response(self, data: Dict[str, Any]) -> Session:
        expires_at = data.get("expires_at") or int(time.time()) + int(data.get("expires_in") or 3600)
        return Session(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=int(expires_at),
            actor=Actor.from_identity_user(data.get("user") or {}),
        )

    def _persist(self, session: Session) -> None:
        self.storage.set_item(REMOTE_SESSION_KEY, session.model_dump(by_alias=True))

    def sign_in(self, email: str, password: str) -> AuthResult:
        resp = api_request(
            "POST",
            f"{self.identity_url}/auth/v1/token",
            api_key=self.anon_key,
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if resp is None:
            return AuthResult(error="An unexpected error occurred during sign in")
        if resp.status_code != 200:
            return AuthResult(error=response_message(resp, "Failed to sign in"))
        try:
            session = self._session_from_token_response(resp.json())
        except (ValueError, KeyError) as e:
            logger.error("[AUTH] Malformed token response: %s", type(e).__name__)
            return AuthResult(error="An unexpected error occurred during sign in")
        self._persist(session)
        logger.info("[AUTH] Sign-in: user_id=%s", session.actor.id)
        return AuthResult(session=session)

    def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        error = validate_signup(email, password, name)
        if error:
            return AuthResult(error=error)

        resp = api_request(
            "POST",
            f"{self.api_base_url}/signup",
            token=self.anon_key,
            json={"email": email, "password": password, "name": name},
        )
        if resp is None:
            return AuthResult(error="An unexpected error occurred during signup")
        if not resp.ok:
            return AuthResult(error=(resp.text or "").strip() or "Failed to create account")
        return AuthResult()

    def sign_out(self, session: Optional[Session]) -> None:
        self.storage.remove_item(REMOTE_SESSION_KEY)
        if session is None:
            return
        resp = api_request(
            "POST",
            f"{self.identity_url}/auth/v1/logout",
            token=session.access_token,
            api_key=self.anon_key,
        )
        if resp is None or not resp.ok:
            logger.warning("[AUTH] Sign-out was not confirmed by the identity service")

    def update_profile(self, session: Optional[Session], fields: Dict[str, Any]) -> AuthResult:
        if session is None:
            return AuthResult(error="No user logged in")
        resp = api_request(
            "PUT",
            f"{self.identity_url}/auth/v1/user",
            token=session.access_token,
            api_key=self.anon_key,
            json={"data": fields},
        )
        if resp is None:
            return AuthResult(error="An unexpected error occurred")
        if resp.status_code != 200:
            return AuthResult(error=response_message(resp, "Failed to update profile"))
        try:
            actor = Actor.from_identity_user(resp.json())
        except ValueError:
            return AuthResult(error="An unexpected error occurred")
        updated = session.model_copy(update={"actor": actor})
        self._persist(updated)
        return AuthResult(session=updated)

    def restore(self) -> Optional[Session]:
        stored = self.storage.get_item(REMOTE_SESSION_KEY)
        if not stored:
            return None
        try:
            session = Session.model_validate(stored)
        except ValueError:
            self.storage.remove_item(REMOTE_SESSION_KEY)
            return None
        if session.is_expired:
            self.storage.remove_item(REMOTE_SESSION_KEY)
            return None
        return session
