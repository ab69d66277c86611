"""
Repository identifier helpers ('owner/name').
"""

from __future__ import annotations

from gitcircles.core.exceptions import InvalidRepositoryError


def parse_repo(value: str) -> tuple[str, str]:
    """Split 'owner/name' into (owner, name); raises InvalidRepositoryError."""
    parts = (value or "").strip().split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise InvalidRepositoryError(value)
    return parts[0], parts[1]
