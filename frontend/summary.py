"""
frontend/summary.py

Dashboard analytics over the signed-in actor's projects: status breakdown,
average progress, recent activity, and the filter/search/sort behind the
project table.
"""

from __future__ import annotations

import math
from typing import Dict, List, Optional

import pandas as pd

from domains.projects.models.project import Project, ProjectStatus

ALL = "all"

SORT_FIELDS = ("name", "status", "priority", "assigneeName", "dueDate", "progress", "updatedAt")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def status_counts(projects: List[Project]) -> Dict[str, int]:
    counts = {s.value: 0 for s in ProjectStatus}
    for p in projects:
        counts[p.status] = counts.get(p.status, 0) + 1
    return counts


def status_breakdown(projects: List[Project]) -> Dict[str, Dict[str, int]]:
    """
    Count and whole-number percentage per status.

    Percentages are rounded independently (half up), so they need not sum to 100.
    """
    total = len(projects)
    breakdown = {}
    for status, count in status_counts(projects).items():
        pct = _round_half_up(count / total * 100) if total else 0
        breakdown[status] = {"count": count, "percent": pct}
    return breakdown


def average_progress(projects: List[Project]) -> int:
    if not projects:
        return 0
    return _round_half_up(sum(p.progress for p in projects) / len(projects))


def recent_activity(projects: List[Project], limit: int = 3) -> List[Project]:
    """Most recently updated first."""
    return sorted(projects, key=lambda p: p.updated_at, reverse=True)[:limit]


def filter_projects(
    projects: List[Project],
    search: str = "",
    status: str = ALL,
    priority: str = ALL,
) -> List[Project]:
    """Case-insensitive search on project and assignee name, plus exact status/priority filters."""
    term = (search or "").lower()
    result = []
    for p in projects:
        if term and term not in p.name.lower() and term not in p.assignee.name.lower():
            continue
        if status != ALL and p.status != status:
            continue
        if priority != ALL and p.priority != priority:
            continue
        result.append(p)
    return result


def _sort_value(project: Project, field: str):
    if field == "assigneeName":
        return project.assignee.name
    if field == "dueDate":
        return project.due_date
    if field == "progress":
        return project.progress
    if field == "updatedAt":
        return project.updated_at
    return getattr(project, field)


def sort_projects(projects: List[Project], field: str = "name", order: str = "asc") -> List[Project]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Unsupported sort field: {field}")
    # sorted() is stable, so equal keys keep their incoming order
    return sorted(projects, key=lambda p: _sort_value(p, field), reverse=(order == "desc"))


def to_dataframe(projects: List[Project], columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Flatten projects into the table shown on the dashboard."""
    rows = [
        {
            "id": p.id,
            "Project": p.name,
            "Status": p.status,
            "Priority": p.priority,
            "Assignee": p.assignee.name,
            "Due Date": p.due_date,
            "Progress": p.progress,
            "Updated": p.updated_at,
        }
        for p in projects
    ]
    df = pd.DataFrame(rows, columns=["id", "Project", "Status", "Priority", "Assignee", "Due Date", "Progress", "Updated"])
    if columns:
        df = df[columns]
    return df


def status_chart_data(projects: List[Project]) -> pd.DataFrame:
    counts = status_counts(projects)
    return pd.DataFrame({"Projects": list(counts.values())}, index=list(counts.keys()))
