"""Keystone project operations."""
from __future__ import annotations
import logging
from typing import Any, Optional

from .client import KeystoneClient, require_list
from .exceptions import AmbiguousResultError
from .models import EntityKind, PaginatedList

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for listing and looking up Keystone projects.

    ``get_project_by_name`` returns None when no project has the name, so
    "not found" is a normal result rather than an error.
    """

    def __init__(self, client: KeystoneClient):
        """Initialize project service.

        Args:
            client: Keystone client
        """
        self.client = client

    def list_projects(self, admin_token: str) -> PaginatedList:
        """List every project in the system.

        Args:
            admin_token: Token scoped to a project on which the caller is admin

        Returns:
            PaginatedList of projects
        """
        return self.client.list_resource(
            admin_token,
            "/projects",
            "projects",
            EntityKind.PROJECT,
            operation="keystone.list_projects",
            log_tag="api-calls.keystone.projects-list",
        )

    def list_user_projects(self, access_token: str, user_id: str) -> PaginatedList:
        """List the projects a user has some access to.

        Args:
            access_token: Token of the user (or an admin)
            user_id: User ID

        Returns:
            PaginatedList of projects
        """
        return self.client.list_resource(
            access_token,
            f"/users/{user_id}/projects",
            "projects",
            EntityKind.PROJECT,
            operation="keystone.list_user_projects",
            log_tag="api-calls.keystone.projects-list-user",
        )

    def get_project_by_name(self, admin_token: str, project_name: str) -> Optional[Any]:
        """Return the project with the given name.

        Only usable where project names are unique: two matches is an error,
        not a silent pick of the first one.

        Args:
            admin_token: Token scoped to a project on which the caller is admin
            project_name: Exact project name

        Returns:
            Normalized project, or None if no project has that name

        Raises:
            AmbiguousResultError: More than one project has that name
        """
        operation = "keystone.get_project_by_name"
        descriptor = self.client.build_request(
            admin_token,
            "/projects",
            True,
            params={"name": project_name},
            log_tag="api-calls.keystone.projects-get-by-name",
        )
        _, body = self.client.send("get", descriptor, operation)
        projects = require_list(body, "projects", operation)

        if len(projects) > 1:
            logger.warning(f"[{operation}] '{project_name}' matched {len(projects)} projects")
            raise AmbiguousResultError(operation, project_name, len(projects))
        if not projects:
            return None
        return self.client.mangle(EntityKind.PROJECT, projects[0])
