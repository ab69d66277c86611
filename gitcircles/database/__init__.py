"""
Storage layer: ordered key-value engine, record schema, and the Database facade
over repositories, pull requests, projects and wallet state.

SQLite via SQLiteEngine and get_database(); the engine is swappable.
"""

from gitcircles.database.database import Database, get_database
from gitcircles.database.engine import (
    Partition,
    SQLiteEngine,
    StorageEngine,
    WriteBatch,
)
from gitcircles.database.models import (
    BaseBranchChange,
    MergedPullRequest,
    Project,
    ProjectOwner,
    Repository,
    UserWallet,
    WalletHistoryEntry,
    WalletLoginLink,
    WalletSource,
)

__all__ = [
    "Database",
    "get_database",
    "Partition",
    "SQLiteEngine",
    "StorageEngine",
    "WriteBatch",
    "BaseBranchChange",
    "MergedPullRequest",
    "Project",
    "ProjectOwner",
    "Repository",
    "UserWallet",
    "WalletHistoryEntry",
    "WalletLoginLink",
    "WalletSource",
]
