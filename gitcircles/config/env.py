"""
Environment variable loading and validation for GitCircles.

- GITCIRCLES_DB_PATH: storage file (default: ~/.gitcircles/db)
- GITHUB_TOKEN: personal access token used by collect / wallet sync
- GITHUB_API_URL: REST API base (default: https://api.github.com)
- GITHUB_RAW_URL: raw file host (default: https://raw.githubusercontent.com)
- GITCIRCLES_HTTP_TIMEOUT_SEC: per-request HTTP timeout (default: 30)
- GITCIRCLES_SQLITE_SYNCHRONOUS: OFF | NORMAL | FULL | EXTRA (default: FULL)
- Loads .env from the working directory, then the project root, when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from gitcircles.core.exceptions import DatabasePathError

# Project root: config is gitcircles/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_DB_DIRNAME = ".gitcircles"
DEFAULT_DB_FILENAME = "db"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_GITHUB_RAW_URL = "https://raw.githubusercontent.com"
DEFAULT_HTTP_TIMEOUT_SEC = 30.0
DEFAULT_SQLITE_SYNCHRONOUS = "FULL"
SQLITE_SYNCHRONOUS_MODES = frozenset({"OFF", "NORMAL", "FULL", "EXTRA"})


def load_gitcircles_env() -> None:
    """Load .env (cwd first, then project root). Safe to call multiple times; never overrides real env."""
    load_dotenv(Path.cwd() / ".env")
    load_dotenv(_ENV_PATH)


def get_database_path() -> Path:
    """
    Return the storage file path, creating its directory.
    Order: GITCIRCLES_DB_PATH > ~/.gitcircles/db.
    """
    load_gitcircles_env()
    raw = (os.getenv("GITCIRCLES_DB_PATH") or "").strip()
    if raw:
        path = Path(raw).expanduser()
    else:
        home = (os.getenv("HOME") or os.getenv("USERPROFILE") or "").strip()
        if not home:
            raise DatabasePathError("Cannot determine home directory")
        path = Path(home) / DEFAULT_DB_DIRNAME / DEFAULT_DB_FILENAME
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DatabasePathError(f"Cannot create database directory: {e}") from e
    return path


def get_github_token(explicit: str | None = None) -> str | None:
    """Explicit token wins; otherwise GITHUB_TOKEN; None when neither is set."""
    if explicit and explicit.strip():
        return explicit.strip()
    load_gitcircles_env()
    token = (os.getenv("GITHUB_TOKEN") or "").strip()
    return token or None


def get_github_api_url() -> str:
    load_gitcircles_env()
    return (os.getenv("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL).strip().rstrip("/")


def get_github_raw_url() -> str:
    load_gitcircles_env()
    return (os.getenv("GITHUB_RAW_URL") or DEFAULT_GITHUB_RAW_URL).strip().rstrip("/")


def get_http_timeout_sec() -> float:
    load_gitcircles_env()
    raw = (os.getenv("GITCIRCLES_HTTP_TIMEOUT_SEC") or "").strip()
    try:
        value = float(raw) if raw else DEFAULT_HTTP_TIMEOUT_SEC
    except ValueError:
        return DEFAULT_HTTP_TIMEOUT_SEC
    return value if value > 0 else DEFAULT_HTTP_TIMEOUT_SEC


def get_sqlite_synchronous() -> str:
    """
    Return a safe PRAGMA synchronous value. FULL keeps every single-key write
    durable on return; unknown values fall back to FULL.
    """
    load_gitcircles_env()
    raw = (os.getenv("GITCIRCLES_SQLITE_SYNCHRONOUS") or DEFAULT_SQLITE_SYNCHRONOUS).strip().upper()
    if raw not in SQLITE_SYNCHRONOUS_MODES:
        return DEFAULT_SQLITE_SYNCHRONOUS
    return raw
