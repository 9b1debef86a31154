from __future__ import annotations

import threading
import time
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_AVATAR = (
    "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e"
    "?w=32&h=32&fit=crop&crop=face"
)


class ProjectStatus(str, Enum):
    planning = "Planning"
    in_progress = "In Progress"
    review = "Review"
    completed = "Completed"


class ProjectPriority(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    critical = "Critical"


def now_iso() -> str:
    """Return current UTC timestamp as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


_id_lock = threading.Lock()
_last_id_ms = 0


def new_project_id() -> str:
    """
    Generate a time-based project identifier (``proj_<epoch-millis>``).

    Identifiers are strictly increasing within the process, so two projects
    created in the same millisecond still get distinct ids.
    """
    global _last_id_ms
    with _id_lock:
        ms = max(int(time.time() * 1000), _last_id_ms + 1)
        _last_id_ms = ms
    return f"proj_{ms}"


def _check_due_date(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError("dueDate must be a calendar date (YYYY-MM-DD)")
    return value


class Assignee(BaseModel):
    """Denormalised copy of the person a project is assigned to."""

    name: str
    avatar: str = DEFAULT_AVATAR
    initials: str


class Project(BaseModel):
    """
    A project record as stored and exchanged over the wire.

    JSON uses camelCase names (dueDate, createdAt, updatedAt, userId);
    attributes are snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: ProjectStatus
    priority: ProjectPriority
    assignee: Assignee
    due_date: str = Field(..., alias="dueDate")
    progress: int = Field(0, ge=0, le=100)
    created_at: str = Field(..., alias="createdAt")
    updated_at: str = Field(..., alias="updatedAt")
    user_id: Optional[str] = Field(None, alias="userId")

    @field_validator("due_date")
    @classmethod
    def _valid_due_date(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_date(v)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProjectCreate(BaseModel):
    """Fields accepted when creating a project."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: ProjectStatus = ProjectStatus.planning
    priority: ProjectPriority = ProjectPriority.medium
    due_date: str = Field(..., alias="dueDate")
    assignee: Optional[Assignee] = None

    @field_validator("due_date")
    @classmethod
    def _valid_due_date(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_date(v)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name is required")
        return v

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ProjectUpdate(BaseModel):
    """
    Partial update. Only fields explicitly provided are merged; id, userId
    and createdAt are not accepted and so can never be overwritten.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    priority: Optional[ProjectPriority] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
    progress: Optional[int] = Field(None, ge=0, le=100)
    assignee: Optional[Assignee] = None

    @field_validator("name", "status", "priority", "due_date", "progress", "assignee", mode="before")
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        # Only runs for fields present in the payload; omitted fields keep their default
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("due_date")
    @classmethod
    def _valid_due_date(cls, v: Optional[str]) -> Optional[str]:
        return _check_due_date(v)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


def apply_update(project: Project, update: ProjectUpdate, updated_at: Optional[str] = None) -> Project:
    """
    Merge a partial update into a project and restamp updatedAt.

    The new updatedAt never goes backwards relative to the stored value.
    """
    stamp = updated_at or now_iso()
    merged = project.to_json()
    merged.update(update.changes())
    merged["updatedAt"] = max(stamp, project.updated_at)
    return Project.model_validate(merged)


def initials_for(name: str) -> str:
    return "".join(part[0] for part in name.split(" ") if part).upper()


def assignee_for(name: Optional[str], email: Optional[str]) -> Assignee:
    """Build the default assignee for a project created by the given actor."""
    display = name or email or "Unknown"
    return Assignee(name=display, avatar=DEFAULT_AVATAR, initials=initials_for(name or email or "UN"))


def build_project(
    data: ProjectCreate,
    user_id: Optional[str],
    default_assignee: Assignee,
    project_id: Optional[str] = None,
) -> Project:
    """Stamp a new project: fresh id, progress 0, both timestamps now."""
    stamp = now_iso()
    return Project(
        id=project_id or new_project_id(),
        name=data.name,
        description=data.description,
        status=data.status,
        priority=data.priority,
        assignee=data.assignee or default_assignee,
        due_date=data.due_date,
        progress=0,
        created_at=stamp,
        updated_at=stamp,
        user_id=user_id,
    )
