"""Input normalization and pattern checks shared by the workflows."""

import re

from .exceptions import InvalidInput

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def normalize_email(email: str | None) -> str:
    """Strip + lowercase, then check the address shape."""
    if email is None or not str(email).strip():
        raise InvalidInput("Email is required.")
    normalized = str(email).strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise InvalidInput("Invalid email address format.")
    return normalized


def normalize_identifier(identifier: str | None) -> str:
    """Username-or-email lookups are case-insensitive; both fields are stored lowercase."""
    if identifier is None or not str(identifier).strip():
        raise InvalidInput("Email or username is required.")
    return str(identifier).strip().lower()


def normalize_username(username: str | None) -> str:
    if username is None or not str(username).strip():
        raise InvalidInput("Username is required.")
    username = str(username).strip()
    if not USERNAME_PATTERN.match(username):
        raise InvalidInput(
            "Invalid username: only letters, numbers, hyphens, and underscores are allowed."
        )
    return username.lower()


def require(value: str | None, name: str) -> str:
    """Reject missing or blank fields."""
    if value is None or not str(value).strip():
        raise InvalidInput(f"{name} is required.")
    return str(value)
