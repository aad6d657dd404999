"""Project metadata extension endpoints.

These endpoints are not part of upstream Keystone; they exist only on
deployments carrying the project metadata extension. The value lists are
not paginated, so they come back as plain tuples.
"""
from __future__ import annotations
from typing import Any, Mapping, Tuple

from .client import KeystoneClient, require_list
from .exceptions import MalformedResponseError
from .models import EntityKind


class MetaService:
    """Service for project metadata values and per-project metadata."""

    def __init__(self, client: KeystoneClient):
        """Initialize metadata service.

        Args:
            client: Keystone client
        """
        self.client = client

    def _list_values(self, auth_token: str, value_type: str, collection: str, kind: EntityKind, log_tag: str, operation: str) -> Tuple[Any, ...]:
        descriptor = self.client.build_request(auth_token, f"/meta_values/{value_type}", True, log_tag=log_tag)
        _, body = self.client.send("get", descriptor, operation)
        return tuple(self.client.mangle(kind, raw) for raw in require_list(body, collection, operation))

    def list_meta_environments(self, auth_token: str) -> Tuple[Any, ...]:
        """List the allowed values for the "environment" metadata key."""
        return self._list_values(
            auth_token,
            "environment",
            "environments",
            EntityKind.META_ENVIRONMENT,
            "api-calls.keystone.meta-environments-get",
            "keystone.list_meta_environments",
        )

    def list_meta_owning_groups(self, auth_token: str) -> Tuple[Any, ...]:
        """List the allowed values for the "owning_group" metadata key."""
        return self._list_values(
            auth_token,
            "owning_group",
            "owning_groups",
            EntityKind.META_OWNING_GROUP,
            "api-calls.keystone.meta-owninggroups-get",
            "keystone.list_meta_owning_groups",
        )

    def _project_meta(self, verb: str, project_token: str, project_id: str, json_value: Any, log_tag: str, operation: str) -> Any:
        descriptor = self.client.build_request(project_token, f"/projects/{project_id}/meta", json_value, log_tag=log_tag)
        _, body = self.client.send(verb, descriptor, operation)
        if not isinstance(body, Mapping) or not isinstance(body.get("meta"), Mapping):
            raise MalformedResponseError(operation, "missing 'meta' object")
        return self.client.mangle(EntityKind.PROJECT_META, body["meta"])

    def list_project_meta(self, project_token: str, project_id: str) -> Any:
        """Return the metadata of a project."""
        return self._project_meta(
            "get", project_token, project_id, True,
            "api-calls.keystone.projects-meta-get", "keystone.list_project_meta",
        )

    def update_project_meta(self, project_token: str, project_id: str, new_meta: Mapping[str, Any]) -> Any:
        """Replace the metadata of a project.

        Args:
            project_token: Project-scoped token
            project_id: Project ID
            new_meta: Key/value pairs, e.g. {"environment": "dev", "owning_group": "marketing"}

        Returns:
            The project's metadata as stored by the server
        """
        return self._project_meta(
            "put", project_token, project_id, {"meta": dict(new_meta)},
            "api-calls.keystone.projects-meta-update", "keystone.update_project_meta",
        )
