"""
Projects: named groups of repositories with owners.

Repositories link to a project through Repository.project_id (set by
collect --project-id). A project with linked repositories cannot be deleted;
its owners are removed before the project record itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from gitcircles.core.clock import Clock, utc_now
from gitcircles.core.exceptions import (
    InvalidRoleError,
    ProjectHasRepositoriesError,
    ProjectNotFoundError,
)
from gitcircles.database.database import Database
from gitcircles.database.models import Project, ProjectOwner, Repository
from gitcircles.gitcircles_logging import get_logger

logger = get_logger(__name__)

PROJECT_ROLES = ("owner", "admin", "member")
DEFAULT_ROLE = "member"


def generate_project_id(name: str, now: datetime) -> str:
    """Slug of name (lowercase, non-alphanumerics as '-', trimmed) + '_' + unix seconds."""
    slug = "".join(c if c.isalnum() else "-" for c in name.lower()).strip("-")
    return f"{slug}_{int(now.timestamp())}"


def validate_role(role: str) -> str:
    if role not in PROJECT_ROLES:
        raise InvalidRoleError(role, PROJECT_ROLES)
    return role


@dataclass(frozen=True)
class ProjectDetails:
    project: Project
    owners: list[ProjectOwner]
    repositories: list[Repository]


class ProjectService:
    def __init__(self, db: Database, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    def _require(self, project_id: str) -> Project:
        project = self._db.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def create(self, name: str, description: str | None = None) -> Project:
        now = self._clock()
        project = Project(
            id=generate_project_id(name, now),
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self._db.upsert_project(project)
        logger.info("project_created", project_id=project.id, name=name)
        return project

    def list(self) -> list[Project]:
        return self._db.list_projects()

    def show(self, project_id: str) -> ProjectDetails | None:
        project = self._db.get_project(project_id)
        if project is None:
            return None
        return ProjectDetails(
            project=project,
            owners=self._db.get_project_owners(project_id),
            repositories=self._db.list_repositories_for_project(project_id),
        )

    def delete(self, project_id: str) -> Project:
        project = self._require(project_id)
        linked = self._db.list_repositories_for_project(project_id)
        if linked:
            raise ProjectHasRepositoriesError(project_id, len(linked))
        for owner in self._db.get_project_owners(project_id):
            self._db.remove_project_owner(project_id, owner.github_username)
        self._db.delete_project(project_id)
        logger.info("project_deleted", project_id=project_id)
        return project

    def add_owner(self, project_id: str, username: str, role: str = DEFAULT_ROLE) -> ProjectOwner:
        self._require(project_id)
        validate_role(role)
        owner = ProjectOwner(
            project_id=project_id,
            github_username=username,
            role=role,
            added_at=self._clock(),
        )
        self._db.add_project_owner(owner)
        logger.info("project_owner_added", project_id=project_id, username=username, role=role)
        return owner

    def remove_owner(self, project_id: str, username: str) -> None:
        self._require(project_id)
        self._db.remove_project_owner(project_id, username)
        logger.info("project_owner_removed", project_id=project_id, username=username)

    def projects_for_owner(self, username: str) -> list[Project]:
        return self._db.get_projects_for_owner(username)
