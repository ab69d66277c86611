"""
Domain models for stored entities.

Repositories, merged pull requests, base-branch changes, projects, and the
wallet trio (current wallet, history entry, reverse index link). Plain frozen
dataclasses with no storage coupling; updates build a new value with
dataclasses.replace(). Relationships are identifier fields, resolved by a
second lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from gitcircles.utils.wallet_utils import WalletAddress

GITHUB_PLATFORM = "github"
WALLET_SOURCE_GITHUB_PROFILE_REPO = "github_profile_repo"


@dataclass(frozen=True)
class WalletSource:
    """Where an address was read from: the user's profile repo on a branch."""

    login: str
    branch: str
    type: str = WALLET_SOURCE_GITHUB_PROFILE_REPO


@dataclass(frozen=True)
class UserWallet:
    """Current address for one (platform, login)."""

    login: str
    platform: str
    address: WalletAddress
    source: WalletSource
    synced_at: datetime


@dataclass(frozen=True)
class WalletHistoryEntry:
    """One detected address change (including the first sync). Never mutated."""

    login: str
    platform: str
    address: WalletAddress
    source: WalletSource
    recorded_at: datetime


@dataclass(frozen=True)
class WalletLoginLink:
    """Reverse index entry: address -> login. Kept after the login moves to another address."""

    wallet: WalletAddress
    platform: str
    login: str
    linked_at: datetime


@dataclass(frozen=True)
class Repository:
    """Tracked repository; unique by (owner, name)."""

    owner: str
    name: str
    current_base_branch: str
    first_sync: datetime
    last_sync: datetime | None = None
    total_prs: int = 0
    project_id: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class MergedPullRequest:
    """Merged pull request; unique by (repository, number)."""

    number: int
    title: str
    author: str
    merged_at: datetime
    base_branch: str
    merge_commit_sha: str
    repository: str
    """'owner/name' of the repository the PR was merged into."""


@dataclass(frozen=True)
class BaseBranchChange:
    """Audit entry written when a repository is collected against a new base branch."""

    repository: str
    old_branch: str
    new_branch: str
    changed_at: datetime


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None


@dataclass(frozen=True)
class ProjectOwner:
    project_id: str
    github_username: str
    role: str
    """owner | admin | member"""
    added_at: datetime
