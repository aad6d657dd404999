"""Canonical Keystone entities.

Every entity is an immutable value object built fresh from one response.
``from_raw`` accepts the server's JSON object (or the output of ``to_dict``,
so re-normalizing a canonical entity is stable); ``to_dict`` gives back the
wire-like representation. Fields the model does not know about are kept in
``extra``; per-entity ``links`` blocks are dropped.

Usage:
    project = Project.from_raw({"id": "p1", "name": "web", "domain_id": "default"})
    project.to_dict()["name"]   # 'web'
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, TypeVar

from .exceptions import NormalizationError

T = TypeVar("T")


class EntityKind(str, Enum):
    """Entity kinds understood by the normalization strategy."""

    TOKEN = "Token"
    PROJECT_TOKEN = "ProjectToken"
    PROJECT = "Project"
    ROLE = "Role"
    ROLE_ASSIGNMENT = "RoleAssignment"
    META_ENVIRONMENT = "MetaEnvironment"
    META_OWNING_GROUP = "MetaOwningGroup"
    PROJECT_META = "ProjectMeta"

    def __str__(self) -> str:
        return self.value


class SubjectKind(str, Enum):
    """Subject of a role assignment."""

    USER = "user"
    GROUP = "group"

    def __str__(self) -> str:
        return self.value

    @property
    def path_segment(self) -> str:
        return f"{self.value}s"


def _require_mapping(kind: EntityKind, raw: Any) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise NormalizationError(kind, f"expected an object, got {type(raw).__name__}")
    return raw


def _require_str(kind: EntityKind, raw: Mapping[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value:
        raise NormalizationError(kind, f"missing '{key}'")
    return value


def _extra(raw: Mapping[str, Any], known: Iterable[str]) -> Dict[str, Any]:
    skip = set(known) | {"links"}
    return {key: value for key, value in raw.items() if key not in skip}


def _optional_mapping(kind: EntityKind, raw: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise NormalizationError(kind, f"'{key}' must be an object")
    return dict(value)


def _optional_list(kind: EntityKind, raw: Mapping[str, Any], key: str) -> Tuple[Any, ...]:
    value = raw.get(key)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise NormalizationError(kind, f"'{key}' must be an array")
    return tuple(value)


def _object_list(kind: EntityKind, raw: Mapping[str, Any], key: str) -> Tuple[Dict[str, Any], ...]:
    items = _optional_list(kind, raw, key)
    if not all(isinstance(item, Mapping) for item in items):
        raise NormalizationError(kind, f"'{key}' must hold objects")
    return tuple(dict(item) for item in items)


def _without_id(ref: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in ref.items() if key != "id"}


def _ref_id(value: Any) -> Optional[str]:
    """Return ``value["id"]`` for ``{"id": ...}`` references."""
    if isinstance(value, Mapping):
        return value.get("id")
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Tokens
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Token:
    """Unscoped token. ``token`` is the bearer value whatever its wire location."""

    token: str
    expires_at: Optional[str] = None
    issued_at: Optional[str] = None
    methods: Tuple[str, ...] = ()
    user: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    _kind = EntityKind.TOKEN
    _known = ("token", "expires_at", "expires", "issued_at", "methods", "user")

    @classmethod
    def from_raw(cls, raw: Any) -> "Token":
        raw = _require_mapping(cls._kind, raw)
        bearer = _require_str(cls._kind, raw, "token")
        return cls(
            token=bearer,
            # v2 calls it "expires"
            expires_at=raw.get("expires_at") or raw.get("expires"),
            issued_at=raw.get("issued_at"),
            methods=_optional_list(cls._kind, raw, "methods"),
            user=_optional_mapping(cls._kind, raw, "user"),
            extra=_extra(raw, cls._known),
            **cls._scope_fields(raw),
        )

    @classmethod
    def _scope_fields(cls, raw: Mapping[str, Any]) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(
            token=self.token,
            expires_at=self.expires_at,
            issued_at=self.issued_at,
            methods=list(self.methods),
            user=dict(self.user),
        )
        return data


@dataclass(frozen=True)
class ProjectToken(Token):
    """Token scoped to a single project."""

    project: Dict[str, Any] = field(default_factory=dict)
    roles: Tuple[Dict[str, Any], ...] = ()
    catalog: Tuple[Dict[str, Any], ...] = ()

    _kind = EntityKind.PROJECT_TOKEN
    _known = Token._known + ("project", "roles", "catalog")

    @classmethod
    def _scope_fields(cls, raw: Mapping[str, Any]) -> Dict[str, Any]:
        project = raw.get("project")
        if not isinstance(project, Mapping) or not project.get("id"):
            raise NormalizationError(cls._kind, "missing project scope")
        return {
            "project": dict(project),
            "roles": _object_list(cls._kind, raw, "roles"),
            "catalog": _object_list(cls._kind, raw, "catalog"),
        }

    @property
    def project_id(self) -> str:
        return self.project["id"]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            project=dict(self.project),
            roles=[dict(role) for role in self.roles],
            catalog=[dict(entry) for entry in self.catalog],
        )
        return data


# ─────────────────────────────────────────────────────────────────────────────
# Projects and roles
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Project:
    id: str
    name: str
    domain_id: Optional[str] = None
    enabled: bool = True
    description: Optional[str] = None
    parent_id: Optional[str] = None
    is_domain: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    _known = ("id", "name", "domain_id", "enabled", "description", "parent_id", "is_domain")

    @classmethod
    def from_raw(cls, raw: Any) -> "Project":
        kind = EntityKind.PROJECT
        raw = _require_mapping(kind, raw)
        return cls(
            id=_require_str(kind, raw, "id"),
            name=_require_str(kind, raw, "name"),
            domain_id=raw.get("domain_id"),
            enabled=bool(raw.get("enabled", True)),
            description=raw.get("description"),
            parent_id=raw.get("parent_id"),
            is_domain=bool(raw.get("is_domain", False)),
            extra=_extra(raw, cls._known),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({key: getattr(self, key) for key in self._known})
        return data


@dataclass(frozen=True)
class Role:
    id: str
    name: str
    domain_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "Role":
        kind = EntityKind.ROLE
        raw = _require_mapping(kind, raw)
        return cls(
            id=_require_str(kind, raw, "id"),
            name=_require_str(kind, raw, "name"),
            domain_id=raw.get("domain_id"),
            extra=_extra(raw, ("id", "name", "domain_id")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(id=self.id, name=self.name, domain_id=self.domain_id)
        return data


@dataclass(frozen=True)
class RoleAssignment:
    """Binding of a user or group to a role on a project (or domain).

    Whatever the references carry besides their ids (names from
    ``include_names``, the ``OS-INHERIT:inherited_to`` marker, system
    scopes) is kept in ``role_ref``, ``subject_ref`` and ``scope_extra``.
    """

    role_id: str
    subject_kind: SubjectKind
    subject_id: str
    project_id: Optional[str] = None
    domain_id: Optional[str] = None
    role_ref: Dict[str, Any] = field(default_factory=dict)
    subject_ref: Dict[str, Any] = field(default_factory=dict)
    scope_extra: Dict[str, Any] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "RoleAssignment":
        kind = EntityKind.ROLE_ASSIGNMENT
        raw = _require_mapping(kind, raw)

        role = raw.get("role")
        role_id = _ref_id(role)
        if not role_id:
            raise NormalizationError(kind, "missing role id")

        subject_kind = next((sk for sk in SubjectKind if _ref_id(raw.get(sk.value))), None)
        if subject_kind is None:
            raise NormalizationError(kind, "missing user or group subject")
        subject = raw[subject_kind.value]

        scope = _optional_mapping(kind, raw, "scope")
        scoped_ids: Dict[str, Optional[str]] = {}
        scope_extra: Dict[str, Any] = {}
        for key, value in scope.items():
            if key in ("project", "domain") and isinstance(value, Mapping):
                scoped_ids[key] = value.get("id")
                rest = _without_id(value)
                if rest:
                    scope_extra[key] = rest
            else:
                scope_extra[key] = value

        return cls(
            role_id=role_id,
            subject_kind=subject_kind,
            subject_id=subject["id"],
            project_id=scoped_ids.get("project"),
            domain_id=scoped_ids.get("domain"),
            role_ref=_without_id(role),
            subject_ref=_without_id(subject),
            scope_extra=scope_extra,
            extra=_extra(raw, ("role", subject_kind.value, "scope")),
        )

    @property
    def role_name(self) -> Optional[str]:
        return self.role_ref.get("name")

    @property
    def subject_name(self) -> Optional[str]:
        return self.subject_ref.get("name")

    @property
    def inherited_to(self) -> Optional[str]:
        return self.scope_extra.get("OS-INHERIT:inherited_to")

    def to_dict(self) -> Dict[str, Any]:
        scope: Dict[str, Any] = dict(self.scope_extra)
        for key, scoped_id in (("project", self.project_id), ("domain", self.domain_id)):
            if scoped_id:
                scope[key] = {"id": scoped_id, **scope.get(key, {})}
        data = dict(self.extra)
        data.update({
            "role": {"id": self.role_id, **self.role_ref},
            self.subject_kind.value: {"id": self.subject_id, **self.subject_ref},
            "scope": scope,
        })
        return data


# ─────────────────────────────────────────────────────────────────────────────
# Proprietary metadata extension
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class _MetaValue:
    id: str
    name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _kind = EntityKind.META_ENVIRONMENT

    @classmethod
    def from_raw(cls, raw: Any):
        raw = _require_mapping(cls._kind, raw)
        return cls(
            id=_require_str(cls._kind, raw, "id"),
            name=raw.get("name"),
            extra=_extra(raw, ("id", "name")),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update(id=self.id, name=self.name)
        return data


@dataclass(frozen=True)
class MetaEnvironment(_MetaValue):
    _kind = EntityKind.META_ENVIRONMENT


@dataclass(frozen=True)
class MetaOwningGroup(_MetaValue):
    _kind = EntityKind.META_OWNING_GROUP


@dataclass(frozen=True)
class ProjectMeta:
    """Key/value metadata attached to a project."""

    values: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "ProjectMeta":
        return cls(values=dict(_require_mapping(EntityKind.PROJECT_META, raw)))

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)

    def __getitem__(self, key: str) -> Any:
        return self.values[key]


# ─────────────────────────────────────────────────────────────────────────────
# Pagination
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class PaginatedList(Sequence[T]):
    """Ordered list result plus the server's pagination links.

    ``self_link`` is always set; ``previous_link`` and ``next_link`` are None
    when the server did not send them.
    """

    items: Tuple[T, ...]
    self_link: str
    previous_link: Optional[str] = None
    next_link: Optional[str] = None

    def __getitem__(self, index):
        return self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    @property
    def links(self) -> Dict[str, Optional[str]]:
        return {"self": self.self_link, "previous": self.previous_link, "next": self.next_link}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": [item.to_dict() if hasattr(item, "to_dict") else item for item in self.items],
            "links": self.links,
        }
