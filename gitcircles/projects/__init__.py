from gitcircles.projects.service import (
    PROJECT_ROLES,
    ProjectDetails,
    ProjectService,
    generate_project_id,
    validate_role,
)

__all__ = ["PROJECT_ROLES", "ProjectDetails", "ProjectService", "generate_project_id", "validate_role"]
