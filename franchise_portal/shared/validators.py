"""Shared validation utilities"""

import re
from typing import Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim and lowercase an email address; blank input becomes None"""
    if not email or not isinstance(email, str):
        return None
    normalized = email.strip().lower()
    return normalized or None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Normalized email address

    Raises:
        ValueError: If email format is invalid
    """
    normalized = normalize_email(email)
    if normalized is None:
        return None
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Invalid email format")
    return normalized


def unique_recipients(*emails: Optional[str]) -> list[str]:
    """Deduplicate addresses after case/whitespace normalization, keeping order"""
    seen: list[str] = []
    for email in emails:
        normalized = normalize_email(email)
        if normalized and normalized not in seen:
            seen.append(normalized)
    return seen
