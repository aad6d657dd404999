"""Keystone response normalization ("mangling").

A mangler turns a raw Keystone JSON object into the representation callers
get back from the client. Any object with a ``mangle_object(kind, raw)``
method can be injected into ``KeystoneClient`` to replace the default.

Usage:
    # Canonical dataclasses (default)
    project = DefaultMangler.mangle_object(EntityKind.PROJECT, raw_project)

    # Raw server JSON, untouched
    client = KeystoneClient(url, mangler=PassthroughMangler())
"""
from __future__ import annotations
from typing import Any, Callable, Dict, Protocol, Union

from .exceptions import NormalizationError
from .models import (
    EntityKind,
    MetaEnvironment,
    MetaOwningGroup,
    Project,
    ProjectMeta,
    ProjectToken,
    Role,
    RoleAssignment,
    Token,
)

KindLike = Union[EntityKind, str]


class Mangler(Protocol):
    """Normalization strategy contract."""

    def mangle_object(self, kind: KindLike, raw: Any) -> Any:
        ...


def coerce_kind(kind: KindLike) -> EntityKind:
    """Accept ``EntityKind`` members or their names ("Project", "Role", ...)."""
    try:
        return EntityKind(kind)
    except ValueError:
        raise NormalizationError(kind, "unknown entity kind") from None


class DefaultMangler:
    """Maps raw Keystone objects onto the canonical dataclasses."""

    _BUILDERS: Dict[EntityKind, Callable[[Any], Any]] = {
        EntityKind.TOKEN: Token.from_raw,
        EntityKind.PROJECT_TOKEN: ProjectToken.from_raw,
        EntityKind.PROJECT: Project.from_raw,
        EntityKind.ROLE: Role.from_raw,
        EntityKind.ROLE_ASSIGNMENT: RoleAssignment.from_raw,
        EntityKind.META_ENVIRONMENT: MetaEnvironment.from_raw,
        EntityKind.META_OWNING_GROUP: MetaOwningGroup.from_raw,
        EntityKind.PROJECT_META: ProjectMeta.from_raw,
    }

    @staticmethod
    def mangle_object(kind: KindLike, raw: Any) -> Any:
        """Normalize one raw object.

        Args:
            kind: Entity kind (``EntityKind`` or its string name)
            raw: Server JSON object, or the ``to_dict()`` of a canonical entity

        Returns:
            Canonical entity for the kind

        Raises:
            NormalizationError: Unknown kind, or required fields missing

        Example:
            >>> role = DefaultMangler.mangle_object("Role", {"id": "r1", "name": "admin"})
            >>> role.name
            'admin'
        """
        return DefaultMangler._BUILDERS[coerce_kind(kind)](raw)


class PassthroughMangler:
    """No-op strategy: callers get the server JSON exactly as received."""

    @staticmethod
    def mangle_object(kind: KindLike, raw: Any) -> Any:
        coerce_kind(kind)
        return raw
