"""
Application-level exceptions.

Taxonomy:
- ValidationError: bad caller input (address, owner/name, role, key component).
  Always raised before any write.
- StorageError: engine I/O or unreadable record; carries partition and key.
- FetchError: the remote profile/pull-request source failed.
- ProjectNotFoundError / ProjectHasRepositoriesError: project commands.

Not-found on reads is an absent result (None / []), never an exception.
"""

from __future__ import annotations


class GitCirclesError(Exception):
    """Base class for every error raised by gitcircles."""


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


class ValidationError(GitCirclesError):
    """Caller-recoverable input error."""


class InvalidWalletAddressError(ValidationError):
    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Invalid wallet address '{address}': {reason}")


class InvalidRepositoryError(ValidationError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid repository format: {value}. Expected 'owner/repo'")


class InvalidRoleError(ValidationError):
    def __init__(self, role: str, allowed: tuple[str, ...]) -> None:
        self.role = role
        super().__init__(f"Invalid role '{role}'. Must be one of: {', '.join(allowed)}")


class InvalidKeyComponentError(ValidationError):
    """A key component is empty or contains the key separator."""

    def __init__(self, component: str, value: str) -> None:
        self.component = component
        self.value = value
        super().__init__(f"Invalid {component} '{value}': must be non-empty and must not contain ':'")


# -----------------------------------------------------------------------------
# Storage
# -----------------------------------------------------------------------------


class StorageError(GitCirclesError):
    """Engine failure; partition and key identify the record involved."""

    def __init__(self, message: str, *, partition: str | None = None, key: str | None = None) -> None:
        self.partition = partition
        self.key = key
        context = ""
        if partition is not None:
            context = f" [partition={partition}"
            if key is not None:
                context += f" key={key}"
            context += "]"
        super().__init__(f"{message}{context}")


class RecordCorruptedError(StorageError):
    """Stored value could not be decoded into its entity."""


class DatabasePathError(GitCirclesError):
    pass


# -----------------------------------------------------------------------------
# External fetch
# -----------------------------------------------------------------------------


class FetchError(GitCirclesError):
    """Remote source returned something other than data or a clean 'not found'."""


class RepoNotAccessibleError(FetchError):
    def __init__(self, repo: str) -> None:
        self.repo = repo
        super().__init__(f"Repository {repo} is not accessible. Profile repositories must be public.")


class TransportError(FetchError):
    pass


class AuthError(GitCirclesError):
    pass


# -----------------------------------------------------------------------------
# Projects
# -----------------------------------------------------------------------------


class ProjectNotFoundError(GitCirclesError):
    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found")


class ProjectHasRepositoriesError(GitCirclesError):
    def __init__(self, project_id: str, count: int) -> None:
        self.project_id = project_id
        self.count = count
        super().__init__(
            f"Cannot delete project '{project_id}': {count} repositories are still linked. "
            "Remove repositories first."
        )
