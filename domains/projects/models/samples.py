"""
Sample data shown to demonstration-mode accounts before they create anything.
"""

from __future__ import annotations

from typing import List

from domains.projects.models.project import Project


SAMPLE_PROJECTS = [
    {
        "id": "proj_1640995200000",
        "name": "Website Redesign",
        "description": "Complete overhaul of the company website",
        "status": "In Progress",
        "assignee": {
            "name": "Alice Johnson",
            "avatar": "https://images.unsplash.com/photo-1494790108755-2616b612b786?w=32&h=32&fit=crop&crop=face",
            "initials": "AJ",
        },
        "priority": "High",
        "dueDate": "2024-02-15",
        "progress": 65,
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-15T00:00:00.000Z",
    },
    {
        "id": "proj_1641081600000",
        "name": "Mobile App Development",
        "description": "Native mobile app for iOS and Android",
        "status": "Planning",
        "assignee": {
            "name": "Bob Smith",
            "avatar": "https://images.unsplash.com/photo-1599566150163-29194dcaad36?w=32&h=32&fit=crop&crop=face",
            "initials": "BS",
        },
        "priority": "Medium",
        "dueDate": "2024-03-01",
        "progress": 20,
        "createdAt": "2024-01-05T00:00:00.000Z",
        "updatedAt": "2024-01-10T00:00:00.000Z",
    },
    {
        "id": "proj_1641168000000",
        "name": "Database Migration",
        "description": "Migrate to new database infrastructure",
        "status": "Completed",
        "assignee": {
            "name": "Carol Wilson",
            "avatar": "https://images.unsplash.com/photo-1438761681033-6461ffad8d80?w=32&h=32&fit=crop&crop=face",
            "initials": "CW",
        },
        "priority": "High",
        "dueDate": "2024-01-30",
        "progress": 100,
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-30T00:00:00.000Z",
    },
]

DEMO_ACTOR = {
    "id": "demo-user-1",
    "email": "demo@example.com",
    "name": "Demo User",
    "password": "demo123",
}


def sample_projects(user_id: str) -> List[Project]:
    return [Project.model_validate({**p, "userId": user_id}) for p in SAMPLE_PROJECTS]
