"""
frontend/validation.py

Input rules applied before sign-up and profile updates. Each check returns
an error message, or None when the value is acceptable.
"""

import re
from typing import Optional

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

MIN_PASSWORD_LENGTH = 6


def validate_email(email: str) -> Optional[str]:
    if not EMAIL_RE.fullmatch(email or ""):
        return "Please enter a valid email address"
    return None


def validate_password(password: str) -> Optional[str]:
    password = password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    if not re.search(r"[a-z]", password):
        return "Password must contain at least one lowercase letter"
    if not re.search(r"[0-9]", password):
        return "Password must contain at least one number"
    return None


def validate_name(name: str) -> Optional[str]:
    if not (name or "").strip():
        return "Name is required"
    return None


def validate_signup(email: str, password: str, name: str) -> Optional[str]:
    """First failing rule in form order: name, email, password."""
    return validate_name(name) or validate_email(email) or validate_password(password)
