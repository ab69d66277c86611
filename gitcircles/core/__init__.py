"""
Core shared pieces: exception taxonomy and clock helpers.
"""

from gitcircles.core.clock import utc_now
from gitcircles.core.exceptions import (
    AuthError,
    DatabasePathError,
    FetchError,
    GitCirclesError,
    InvalidKeyComponentError,
    InvalidRepositoryError,
    InvalidRoleError,
    InvalidWalletAddressError,
    ProjectHasRepositoriesError,
    ProjectNotFoundError,
    RecordCorruptedError,
    RepoNotAccessibleError,
    StorageError,
    TransportError,
    ValidationError,
)

__all__ = [
    "AuthError",
    "DatabasePathError",
    "FetchError",
    "GitCirclesError",
    "InvalidKeyComponentError",
    "InvalidRepositoryError",
    "InvalidRoleError",
    "InvalidWalletAddressError",
    "ProjectHasRepositoriesError",
    "ProjectNotFoundError",
    "RecordCorruptedError",
    "RepoNotAccessibleError",
    "StorageError",
    "TransportError",
    "ValidationError",
    "utc_now",
]
