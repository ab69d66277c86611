"""
Tests for ProjectService: id generation, owners and roles, guarded delete.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from gitcircles.core.exceptions import (
    InvalidRoleError,
    ProjectHasRepositoriesError,
    ProjectNotFoundError,
)
from gitcircles.database.models import Repository
from gitcircles.projects import ProjectService, generate_project_id, validate_role

from conftest import T0


def test_generate_project_id():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert generate_project_id("My Cool Project!", now) == "my-cool-project_1704067200"
    assert generate_project_id("  Ergo  ", now) == "ergo_1704067200"


def test_validate_role():
    for role in ("owner", "admin", "member"):
        assert validate_role(role) == role
    with pytest.raises(InvalidRoleError, match="owner, admin, member"):
        validate_role("superuser")


def test_create_list_show(db, clock):
    service = ProjectService(db, clock=clock)
    project = service.create("Demo", "A demo project")
    assert project.id == f"demo_{int(T0.timestamp())}"
    assert project.created_at == project.updated_at == T0
    assert service.list() == [project]

    details = service.show(project.id)
    assert details.project == project
    assert details.owners == []
    assert details.repositories == []
    assert service.show("missing") is None


def test_add_and_remove_owner(db, clock):
    service = ProjectService(db, clock=clock)
    project = service.create("Demo")
    owner = service.add_owner(project.id, "alice", "admin")
    assert owner.role == "admin"
    service.add_owner(project.id, "bob")
    assert [(o.github_username, o.role) for o in service.show(project.id).owners] == [
        ("alice", "admin"),
        ("bob", "member"),
    ]
    assert service.projects_for_owner("alice") == [project]

    service.remove_owner(project.id, "alice")
    assert [o.github_username for o in service.show(project.id).owners] == ["bob"]


def test_invalid_role_writes_nothing(db, clock):
    service = ProjectService(db, clock=clock)
    project = service.create("Demo")
    with pytest.raises(InvalidRoleError):
        service.add_owner(project.id, "alice", "root")
    assert db.get_project_owners(project.id) == []


def test_owner_operations_require_project(db, clock):
    service = ProjectService(db, clock=clock)
    with pytest.raises(ProjectNotFoundError):
        service.add_owner("missing", "alice")
    with pytest.raises(ProjectNotFoundError):
        service.remove_owner("missing", "alice")


def test_delete_removes_owners(db, clock):
    service = ProjectService(db, clock=clock)
    project = service.create("Demo")
    service.add_owner(project.id, "alice", "owner")
    deleted = service.delete(project.id)
    assert deleted == project
    assert db.get_project(project.id) is None
    assert db.get_project_owners(project.id) == []


def test_delete_refused_while_repositories_linked(db, clock):
    service = ProjectService(db, clock=clock)
    project = service.create("Demo")
    db.upsert_repository(
        Repository(owner="acme", name="widgets", current_base_branch="main", first_sync=T0, project_id=project.id)
    )
    with pytest.raises(ProjectHasRepositoriesError) as exc:
        service.delete(project.id)
    assert exc.value.count == 1
    assert db.get_project(project.id) is not None


def test_delete_missing_project(db, clock):
    with pytest.raises(ProjectNotFoundError):
        ProjectService(db, clock=clock).delete("missing")
