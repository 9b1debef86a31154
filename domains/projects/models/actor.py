from __future__ import annotations

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Actor(BaseModel):
    """
    An authenticated user of the dashboard.
    This is what the session layer hands to the rest of the frontend.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    name: str = ""
    created_at: Optional[str] = Field(None, alias="createdAt")
    last_login: Optional[str] = Field(None, alias="lastLogin")

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        return self.email.split("@")[0] if self.email else "Unknown"

    @classmethod
    def from_identity_user(cls, user: Dict[str, Any]) -> "Actor":
        """Build an Actor from a GoTrue-style user object."""
        metadata = user.get("user_metadata") or {}
        return cls(
            id=str(user.get("id", "")),
            email=user.get("email") or "",
            name=metadata.get("name") or "",
            created_at=user.get("created_at"),
            last_login=user.get("last_sign_in_at"),
        )


class DemoActor(Actor):
    """Locally simulated account. The password is stored as entered (demo mode only)."""

    password: str

    def to_actor(self) -> Actor:
        return Actor.model_validate(self.model_dump(exclude={"password"}))


class Session(BaseModel):
    """An actor paired with an opaque access token while signed in."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    refresh_token: Optional[str] = Field(None, alias="refreshToken")
    expires_at: int = Field(..., alias="expiresAt")
    actor: Actor

    @property
    def is_expired(self) -> bool:
        return self.expires_at <= int(time.time())
