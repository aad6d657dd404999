"""Keystone role and role assignment operations."""
from __future__ import annotations
import logging
from typing import Any, Union

from .client import KeystoneClient
from .models import EntityKind, PaginatedList, SubjectKind

logger = logging.getLogger(__name__)


def _subject_kind(value: Union[SubjectKind, str]) -> SubjectKind:
    # Anything that is not a group is assigned as a user
    if str(value).strip().lower() == SubjectKind.GROUP.value:
        return SubjectKind.GROUP
    return SubjectKind.USER


class RoleService:
    """Service for Keystone roles and project role assignments.

    Assignment operations need a token scoped to the project with admin or
    project-admin rights.
    """

    def __init__(self, client: KeystoneClient):
        """Initialize role service.

        Args:
            client: Keystone client
        """
        self.client = client

    def list_roles(self, project_token: str) -> PaginatedList:
        """List the roles visible to a project-scoped token."""
        return self.client.list_resource(
            project_token,
            "/roles",
            "roles",
            EntityKind.ROLE,
            operation="keystone.list_roles",
            log_tag="api-calls.keystone.roles-get",
        )

    def list_role_assignments(self, project_token: str, project_id: str) -> PaginatedList:
        """List every role assignment on a project."""
        return self.client.list_resource(
            project_token,
            "/role_assignments",
            "role_assignments",
            EntityKind.ROLE_ASSIGNMENT,
            operation="keystone.list_role_assignments",
            log_tag="api-calls.keystone.role-assignments-list",
            params={"scope.project.id": project_id},
        )

    def _assignment_path(self, project_id: str, subject_id: str, subject_kind: Any, role_id: str) -> str:
        segment = _subject_kind(subject_kind).path_segment
        return f"/projects/{project_id}/{segment}/{subject_id}/roles/{role_id}"

    def add_role_assignment(
        self,
        project_token: str,
        project_id: str,
        subject_id: str,
        subject_kind: Union[SubjectKind, str],
        role_id: str,
    ) -> None:
        """Grant a role on a project to a user or group (idempotent PUT).

        Keystone answers with an empty body, so there is nothing to return.

        Args:
            project_token: Project-scoped admin token
            project_id: Project ID
            subject_id: User or group ID
            subject_kind: "user" or "group"
            role_id: Role ID
        """
        path = self._assignment_path(project_id, subject_id, subject_kind, role_id)
        descriptor = self.client.build_request(
            project_token, path, True, log_tag="api-calls.keystone.role-assignments-add"
        )
        self.client.send("put", descriptor, "keystone.add_role_assignment")
        logger.info(f"[role-assignment] Granted role '{role_id}' to {_subject_kind(subject_kind)} '{subject_id}' on '{project_id}'")

    def remove_role_assignment(
        self,
        project_token: str,
        project_id: str,
        subject_id: str,
        subject_kind: Union[SubjectKind, str],
        role_id: str,
    ) -> None:
        """Revoke a role on a project from a user or group (DELETE)."""
        path = self._assignment_path(project_id, subject_id, subject_kind, role_id)
        descriptor = self.client.build_request(
            project_token, path, True, log_tag="api-calls.keystone.role-assignments-remove"
        )
        self.client.send("delete", descriptor, "keystone.remove_role_assignment")
        logger.info(f"[role-assignment] Revoked role '{role_id}' from {_subject_kind(subject_kind)} '{subject_id}' on '{project_id}'")
