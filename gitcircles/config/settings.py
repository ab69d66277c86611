"""
Application settings assembled from the environment.

One frozen Settings object per call to get_settings(); the CLI builds it once
at startup and hands the pieces to the database factory and GitHub client.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from gitcircles.config.env import (
    get_database_path,
    get_github_api_url,
    get_github_raw_url,
    get_github_token,
    get_http_timeout_sec,
    get_sqlite_synchronous,
)


@dataclass(frozen=True)
class Settings:
    database_path: Path
    github_token: str | None
    github_api_url: str
    github_raw_url: str
    http_timeout_sec: float
    sqlite_synchronous: str


def get_settings(*, token: str | None = None) -> Settings:
    """
    Return the current application settings.

    token: explicit GitHub token (e.g. from --token); falls back to GITHUB_TOKEN.
    """
    return Settings(
        database_path=get_database_path(),
        github_token=get_github_token(token),
        github_api_url=get_github_api_url(),
        github_raw_url=get_github_raw_url(),
        http_timeout_sec=get_http_timeout_sec(),
        sqlite_synchronous=get_sqlite_synchronous(),
    )
