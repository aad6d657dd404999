"""Keystone identity API client library.

This package provides a modular, testable interface to Keystone v2 and v3.

Architecture:
- client.py: Per-instance configuration, request descriptors, dispatch, pagination
- transport.py: Transport contract and the requests-based default
- versions.py: Protocol version tag (v2/v3)
- auth.py: Credential envelopes, token extraction, TokenService
- projects.py: Project listing and lookup
- roles.py: Roles and project role assignments
- meta.py: Project metadata extension endpoints
- models.py: Canonical entities and PaginatedList
- mangler.py: Pluggable response normalization
- exceptions.py: Typed exceptions for error handling

Usage:
    from keystone_client.core.keystone import KeystoneClient, TokenService, ProjectService

    client = KeystoneClient("http://keystone:5000/v3", "v3")
    token = TokenService(client).get_token("alice", "secret")
    scoped = TokenService(client).get_project_token(token.token, "project-id")
    projects = ProjectService(client).list_projects(scoped.token)
    projects.next_link   # None on the last page
    ProjectService(client).get_project_by_name(scoped.token, "web")   # None if absent
"""
from .client import (
    KeystoneClient,
    REQUEST_TIMEOUT,
    token_fingerprint,
)
from .exceptions import (
    KeystoneError,
    KeystoneAPIError,
    MalformedResponseError,
    NormalizationError,
    AmbiguousResultError,
    UnknownVersionError,
    UnsupportedOperationError,
)
from .versions import ApiVersion
from .transport import (
    RequestDescriptor,
    RequestsTransport,
    Transport,
)
from .models import (
    EntityKind,
    SubjectKind,
    Token,
    ProjectToken,
    Project,
    Role,
    RoleAssignment,
    MetaEnvironment,
    MetaOwningGroup,
    ProjectMeta,
    PaginatedList,
)
from .mangler import (
    Mangler,
    DefaultMangler,
    PassthroughMangler,
)
from .auth import (
    TokenService,
    build_password_auth,
    build_project_scope_auth,
    extract_token,
    extract_scoped_token,
    get_token,
)
from .projects import ProjectService
from .roles import RoleService
from .meta import MetaService

__all__ = [
    # Client
    "KeystoneClient",
    "REQUEST_TIMEOUT",
    "token_fingerprint",
    "ApiVersion",

    # Transport
    "RequestDescriptor",
    "RequestsTransport",
    "Transport",

    # Exceptions
    "KeystoneError",
    "KeystoneAPIError",
    "MalformedResponseError",
    "NormalizationError",
    "AmbiguousResultError",
    "UnknownVersionError",
    "UnsupportedOperationError",

    # Entities
    "EntityKind",
    "SubjectKind",
    "Token",
    "ProjectToken",
    "Project",
    "Role",
    "RoleAssignment",
    "MetaEnvironment",
    "MetaOwningGroup",
    "ProjectMeta",
    "PaginatedList",

    # Normalization
    "Mangler",
    "DefaultMangler",
    "PassthroughMangler",

    # Services
    "TokenService",
    "ProjectService",
    "RoleService",
    "MetaService",

    # Auth helpers
    "build_password_auth",
    "build_project_scope_auth",
    "extract_token",
    "extract_scoped_token",
    "get_token",
]
