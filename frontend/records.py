"""
frontend/records.py

Record Store Adapter: list / create / update / delete projects for the
signed-in actor, plus the actor's preferences document.

- DemoRecordStore: whole per-actor list in the local container
  (dashboard-demo-projects-<actorId>), rewritten on every change
- RemoteRecordStore: one HTTP call to the API per operation

The session is passed explicitly to every call. No call raises; each
returns an OperationResult.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Protocol, TypeVar, Union

from pydantic import ValidationError

from domains.projects.models.actor import Session
from domains.projects.models.project import (
    Project,
    ProjectCreate,
    ProjectUpdate,
    apply_update,
    assignee_for,
    build_project,
)
from domains.projects.models.samples import sample_projects

try:
    from frontend.api_client import api_request
    from frontend.local_storage import LocalStorage
except ModuleNotFoundError:
    from api_client import api_request
    from local_storage import LocalStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEMO_PROJECTS_KEY = "dashboard-demo-projects"
DEMO_PREFERENCES_KEY = "dashboard-demo-preferences"
DEFAULT_PREFERENCES: Dict[str, Any] = {"theme": "system"}

NOT_AUTHENTICATED = "User not authenticated"


@dataclass
class OperationResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "OperationResult[T]":
        return cls(success=False, error=error)


class RecordStore(Protocol):
    def list(self, session: Optional[Session]) -> OperationResult[List[Project]]:
        ...

    def create(self, session: Optional[Session], fields: Union[ProjectCreate, Dict[str, Any]]) -> OperationResult[Project]:
        ...

    def update(
        self, session: Optional[Session], project_id: str, partial: Union[ProjectUpdate, Dict[str, Any]]
    ) -> OperationResult[Project]:
        ...

    def delete(self, session: Optional[Session], project_id: str) -> OperationResult[None]:
        ...

    def get_preferences(self, session: Optional[Session]) -> OperationResult[Dict[str, Any]]:
        ...

    def save_preferences(self, session: Optional[Session], preferences: Dict[str, Any]) -> OperationResult[Dict[str, Any]]:
        ...


def _validation_message(e: ValidationError) -> str:
    first = e.errors()[0] if e.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()))
    msg = str(first.get("msg", "Invalid project data"))
    return f"{field}: {msg}" if field else msg


def _as_create(fields: Union[ProjectCreate, Dict[str, Any]]) -> ProjectCreate:
    return fields if isinstance(fields, ProjectCreate) else ProjectCreate.model_validate(fields)


def _as_update(partial: Union[ProjectUpdate, Dict[str, Any]]) -> ProjectUpdate:
    return partial if isinstance(partial, ProjectUpdate) else ProjectUpdate.model_validate(partial)


# ---------------------------------------------------------
# Demonstration mode
# ---------------------------------------------------------
class DemoRecordStore:
    """
    Actors without a stored list see the sample projects until their first
    change, which persists the list. Last write wins.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    @staticmethod
    def _key(actor_id: str) -> str:
        return f"{DEMO_PROJECTS_KEY}-{actor_id}"

    def _load(self, actor_id: str) -> List[Project]:
        stored = self.storage.get_item(self._key(actor_id))
        if stored is None:
            return sample_projects(actor_id)
        try:
            return [Project.model_validate(p) for p in stored]
        except ValidationError:
            logger.warning("[PROJECTS] Stored demo projects are unreadable; showing samples")
            return sample_projects(actor_id)

    def _save(self, actor_id: str, projects: List[Project]) -> None:
        self.storage.set_item(self._key(actor_id), [p.to_json() for p in projects])

    def list(self, session: Optional[Session]) -> OperationResult[List[Project]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        return OperationResult.ok(self._load(session.actor.id))

    def create(self, session: Optional[Session], fields: Union[ProjectCreate, Dict[str, Any]]) -> OperationResult[Project]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        try:
            data = _as_create(fields)
        except ValidationError as e:
            return OperationResult.fail(_validation_message(e))

        actor = session.actor
        projects = self._load(actor.id)
        project = build_project(data, actor.id, assignee_for(actor.name, actor.email))
        projects.append(project)
        self._save(actor.id, projects)
        logger.info("[PROJECTS] Demo create: user_id=%s project_id=%s", actor.id, project.id)
        return OperationResult.ok(project)

    def update(
        self, session: Optional[Session], project_id: str, partial: Union[ProjectUpdate, Dict[str, Any]]
    ) -> OperationResult[Project]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        try:
            update = _as_update(partial)
        except ValidationError as e:
            return OperationResult.fail(_validation_message(e))

        projects = self._load(session.actor.id)
        for i, project in enumerate(projects):
            if project.id == project_id:
                try:
                    projects[i] = apply_update(project, update)
                except ValidationError as e:
                    return OperationResult.fail(_validation_message(e))
                self._save(session.actor.id, projects)
                return OperationResult.ok(projects[i])
        return OperationResult.fail("Project not found")

    def delete(self, session: Optional[Session], project_id: str) -> OperationResult[None]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        projects = self._load(session.actor.id)
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return OperationResult.fail("Project not found")
        self._save(session.actor.id, remaining)
        return OperationResult.ok()

    def get_preferences(self, session: Optional[Session]) -> OperationResult[Dict[str, Any]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        stored = self.storage.get_item(f"{DEMO_PREFERENCES_KEY}-{session.actor.id}")
        return OperationResult.ok(stored or dict(DEFAULT_PREFERENCES))

    def save_preferences(self, session: Optional[Session], preferences: Dict[str, Any]) -> OperationResult[Dict[str, Any]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        self.storage.set_item(f"{DEMO_PREFERENCES_KEY}-{session.actor.id}", preferences)
        return OperationResult.ok(preferences)


# ---------------------------------------------------------
# Remote mode
# ---------------------------------------------------------
class RemoteRecordStore:
    """HTTP client for the API's /projects and /user/preferences endpoints."""

    def __init__(self, api_base_url: str):
        self.api_base_url = api_base_url.rstrip("/")

    def _failure(self, resp, default: str) -> OperationResult:
        text = (resp.text or "").strip()
        logger.warning("[PROJECTS] API returned HTTP %s", resp.status_code)
        return OperationResult.fail(text or default)

    def list(self, session: Optional[Session]) -> OperationResult[List[Project]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        resp = api_request("GET", f"{self.api_base_url}/projects", token=session.access_token)
        if resp is None:
            return OperationResult.fail("Network error while loading projects")
        if not resp.ok:
            return self._failure(resp, "Failed to load projects")
        try:
            projects = [Project.model_validate(p) for p in resp.json().get("projects") or []]
        except ValueError:
            logger.error("[PROJECTS] Malformed project list from API")
            return OperationResult.fail("Failed to load projects")
        return OperationResult.ok(projects)

    def create(self, session: Optional[Session], fields: Union[ProjectCreate, Dict[str, Any]]) -> OperationResult[Project]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        try:
            data = _as_create(fields)
        except ValidationError as e:
            return OperationResult.fail(_validation_message(e))

        resp = api_request("POST", f"{self.api_base_url}/projects", token=session.access_token, json=data.to_json())
        if resp is None:
            return OperationResult.fail("Network error while creating project")
        if not resp.ok:
            return self._failure(resp, "Failed to create project")
        try:
            return OperationResult.ok(Project.model_validate(resp.json()["project"]))
        except (ValueError, KeyError):
            return OperationResult.fail("Failed to create project")

    def update(
        self, session: Optional[Session], project_id: str, partial: Union[ProjectUpdate, Dict[str, Any]]
    ) -> OperationResult[Project]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        try:
            update = _as_update(partial)
        except ValidationError as e:
            return OperationResult.fail(_validation_message(e))

        resp = api_request(
            "PUT", f"{self.api_base_url}/projects/{project_id}", token=session.access_token, json=update.changes()
        )
        if resp is None:
            return OperationResult.fail("Network error while updating project")
        if not resp.ok:
            return self._failure(resp, "Failed to update project")
        try:
            return OperationResult.ok(Project.model_validate(resp.json()["project"]))
        except (ValueError, KeyError):
            return OperationResult.fail("Failed to update project")

    def delete(self, session: Optional[Session], project_id: str) -> OperationResult[None]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        resp = api_request("DELETE", f"{self.api_base_url}/projects/{project_id}", token=session.access_token)
        if resp is None:
            return OperationResult.fail("Network error while deleting project")
        if not resp.ok:
            return self._failure(resp, "Failed to delete project")
        return OperationResult.ok()

    def get_preferences(self, session: Optional[Session]) -> OperationResult[Dict[str, Any]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        resp = api_request("GET", f"{self.api_base_url}/user/preferences", token=session.access_token)
        if resp is None:
            return OperationResult.fail("Network error while loading preferences")
        if not resp.ok:
            return self._failure(resp, "Failed to load preferences")
        try:
            return OperationResult.ok(resp.json().get("preferences") or dict(DEFAULT_PREFERENCES))
        except ValueError:
            return OperationResult.fail("Failed to load preferences")

    def save_preferences(self, session: Optional[Session], preferences: Dict[str, Any]) -> OperationResult[Dict[str, Any]]:
        if session is None:
            return OperationResult.fail(NOT_AUTHENTICATED)
        resp = api_request(
            "POST", f"{self.api_base_url}/user/preferences", token=session.access_token, json=preferences
        )
        if resp is None:
            return OperationResult.fail("Network error while saving preferences")
        if not resp.ok:
            return self._failure(resp, "Failed to save preferences")
        return OperationResult.ok(preferences)
