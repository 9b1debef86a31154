# frontend/test_summary.py
# Dashboard analytics: status breakdown, averages, recent activity, table filter/sort

import pytest

from domains.projects.models.project import Project
from frontend.summary import (
    average_progress,
    filter_projects,
    recent_activity,
    sort_projects,
    status_breakdown,
    status_chart_data,
    to_dataframe,
)


def make(pid, name, status="Planning", priority="Medium", assignee="Ann Lee", due="2099-01-01", progress=0, updated="2024-01-01T00:00:00.000Z"):
    return Project.model_validate(
        {
            "id": pid,
            "name": name,
            "status": status,
            "priority": priority,
            "assignee": {"name": assignee, "initials": "".join(w[0] for w in assignee.split())},
            "dueDate": due,
            "progress": progress,
            "createdAt": "2024-01-01T00:00:00.000Z",
            "updatedAt": updated,
        }
    )


@pytest.fixture
def projects():
    return [
        make("p1", "Website Redesign", "In Progress", "High", "Alice Johnson", "2024-02-15", 65, "2024-01-15T00:00:00.000Z"),
        make("p2", "Mobile App", "Planning", "Medium", "Bob Smith", "2024-03-01", 20, "2024-01-10T00:00:00.000Z"),
        make("p3", "Database Migration", "Completed", "High", "Carol Wilson", "2024-01-30", 100, "2024-01-30T00:00:00.000Z"),
    ]


def test_status_breakdown_rounds_each_share(projects):
    breakdown = status_breakdown(projects)
    assert breakdown["In Progress"] == {"count": 1, "percent": 33}
    assert breakdown["Completed"] == {"count": 1, "percent": 33}
    assert breakdown["Review"] == {"count": 0, "percent": 0}


def test_status_breakdown_rounds_half_up():
    two = [make("a", "A", "Review"), make("b", "B", "Planning")]
    assert status_breakdown(two)["Review"]["percent"] == 50
    eight = [make(str(i), str(i), "Completed" if i < 5 else "Planning") for i in range(8)]
    # 5/8 = 62.5%
    assert status_breakdown(eight)["Completed"]["percent"] == 63


def test_empty_project_list():
    assert status_breakdown([])["Planning"] == {"count": 0, "percent": 0}
    assert average_progress([]) == 0
    assert recent_activity([]) == []


def test_average_progress(projects):
    # (65 + 20 + 100) / 3 = 61.67
    assert average_progress(projects) == 62


def test_recent_activity_most_recent_first(projects):
    assert [p.id for p in recent_activity(projects)] == ["p3", "p1", "p2"]
    assert [p.id for p in recent_activity(projects, limit=1)] == ["p3"]


def test_search_matches_name_or_assignee(projects):
    assert [p.id for p in filter_projects(projects, search="web")] == ["p1"]
    assert [p.id for p in filter_projects(projects, search="SMITH")] == ["p2"]
    assert filter_projects(projects, search="nothing") == []


def test_status_and_priority_filters(projects):
    assert [p.id for p in filter_projects(projects, priority="High")] == ["p1", "p3"]
    assert [p.id for p in filter_projects(projects, status="Completed", priority="High")] == ["p3"]
    assert len(filter_projects(projects, status="all", priority="all")) == 3


@pytest.mark.parametrize(
    "field,order,expected",
    [
        ("name", "asc", ["p3", "p2", "p1"]),
        ("name", "desc", ["p1", "p2", "p3"]),
        ("assigneeName", "asc", ["p1", "p2", "p3"]),
        ("dueDate", "asc", ["p3", "p1", "p2"]),
        ("progress", "desc", ["p3", "p1", "p2"]),
    ],
)
def test_sort(projects, field, order, expected):
    assert [p.id for p in sort_projects(projects, field, order)] == expected


def test_sort_rejects_unknown_field(projects):
    with pytest.raises(ValueError):
        sort_projects(projects, "color")


def test_dataframe_columns(projects):
    df = to_dataframe(projects)
    assert list(df.columns) == ["id", "Project", "Status", "Priority", "Assignee", "Due Date", "Progress", "Updated"]
    assert df["Progress"].tolist() == [65, 20, 100]
    assert to_dataframe([]).empty


def test_status_chart_data(projects):
    chart = status_chart_data(projects)
    assert chart.loc["Completed", "Projects"] == 1
    assert chart.loc["Review", "Projects"] == 0
