"""Keystone authentication: credential envelopes, token extraction, token service.

Keystone v3 returns the bearer token in the ``X-Subject-Token`` response
header; v2 returns it in the body as ``access.token.id``. Either way the
extracted value ends up in the token object's ``token`` field.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Mapping, Optional

from .client import KeystoneClient, token_fingerprint
from .exceptions import MalformedResponseError, UnsupportedOperationError
from .models import EntityKind
from .transport import RequestDescriptor
from .versions import ApiVersion

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN_NAME = "Default"
SUBJECT_TOKEN_HEADER = "X-Subject-Token"
PROJECT_TOKEN_PATH = "/auth/tokens"
TOKEN_PATHS = {
    ApiVersion.V3: "/auth/tokens",
    ApiVersion.V2: "/tokens",
}

# Bootstrap calls are built with this token, then their headers are cleared
_PLACEHOLDER_TOKEN = "unauthenticated"


# ─────────────────────────────────────────────────────────────────────────────
# Auth payloads
# ─────────────────────────────────────────────────────────────────────────────
def _v3_password_auth(username: str, password: str, tenant_name: Optional[str]) -> Dict[str, Any]:
    if tenant_name is not None:
        logger.debug("[auth] tenant_name is ignored by the v3 password method")
    return {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {
                        "domain": {"name": DEFAULT_DOMAIN_NAME},
                        "name": username,
                        "password": password,
                    }
                },
            }
        }
    }


def _v2_password_auth(username: str, password: str, tenant_name: Optional[str]) -> Dict[str, Any]:
    auth: Dict[str, Any] = {
        "passwordCredentials": {
            "username": username,
            "password": password,
        }
    }
    if tenant_name is not None:
        auth["tenantName"] = tenant_name
    return {"auth": auth}


_PASSWORD_AUTH_BUILDERS: Dict[ApiVersion, Callable[[str, str, Optional[str]], Dict[str, Any]]] = {
    ApiVersion.V3: _v3_password_auth,
    ApiVersion.V2: _v2_password_auth,
}


def build_password_auth(version: Any, username: str, password: str, tenant_name: Optional[str] = None) -> Dict[str, Any]:
    """Build the username/password credential envelope for a protocol version.

    Args:
        version: "v2"/"v3" or ApiVersion
        username: User name (v3: resolved in the "Default" domain)
        password: Password
        tenant_name: v2 only; omitted from the envelope when None

    Returns:
        Request body for the token endpoint

    Raises:
        UnknownVersionError: If version is not v2 or v3
    """
    return _PASSWORD_AUTH_BUILDERS[ApiVersion.parse(version)](username, password, tenant_name)


def build_project_scope_auth(
    version: Any,
    access_token: str,
    *,
    project_id: Optional[str] = None,
    domain_id: Optional[str] = None,
    project_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the token-exchange envelope scoping a token to one project.

    Exactly one selector must be given: ``project_id``, or ``domain_id`` with
    ``project_name``.

    Raises:
        UnknownVersionError: If version is not v2 or v3
        UnsupportedOperationError: For v2, which has no scoping envelope
        ValueError: If the project selector is missing or mixed
    """
    if ApiVersion.parse(version) is not ApiVersion.V3:
        raise UnsupportedOperationError("Project-scoped token exchange requires the v3 API")

    by_name = domain_id is not None or project_name is not None
    if (project_id is None) == (not by_name):
        raise ValueError("Give either project_id or domain_id + project_name")
    if by_name and (not domain_id or not project_name):
        raise ValueError("Scoping by name needs both domain_id and project_name")

    if project_id is not None:
        project: Dict[str, Any] = {"id": project_id}
    else:
        project = {"domain": {"id": domain_id}, "name": project_name}

    return {
        "auth": {
            "identity": {
                "methods": ["token"],
                "token": {"id": access_token},
            },
            "scope": {"project": project},
        }
    }


# ─────────────────────────────────────────────────────────────────────────────
# Token extraction
# ─────────────────────────────────────────────────────────────────────────────
def _header(headers: Any, name: str) -> Optional[str]:
    """Case-insensitive header lookup over any mapping."""
    if not headers:
        return None
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


def _negotiated_via_vary(headers: Any) -> bool:
    vary = _header(headers, "Vary") or ""
    return any(part.strip().lower() == "x-auth-token" for part in vary.split(","))


def _extract_v3(headers: Any, body: Mapping[str, Any], operation: str) -> Dict[str, Any]:
    token = body.get("token")
    if not isinstance(token, Mapping):
        raise MalformedResponseError(operation, "missing 'token' object")
    bearer = _header(headers, SUBJECT_TOKEN_HEADER)
    if not bearer:
        raise MalformedResponseError(operation, f"missing {SUBJECT_TOKEN_HEADER} header")
    return {**token, "token": bearer}


def _extract_v2(headers: Any, body: Mapping[str, Any], operation: str) -> Dict[str, Any]:
    access = body.get("access")
    token = access.get("token") if isinstance(access, Mapping) else None
    if not isinstance(token, Mapping) or not token.get("id"):
        raise MalformedResponseError(operation, "missing access.token.id")
    raw = {key: value for key, value in token.items() if key != "id"}
    if isinstance(access.get("user"), Mapping):
        raw["user"] = dict(access["user"])
    raw["token"] = token["id"]
    return raw


_TOKEN_EXTRACTORS = {
    ApiVersion.V3: _extract_v3,
    ApiVersion.V2: _extract_v2,
}


def extract_token(version: Any, headers: Any, body: Any, operation: str = "keystone.get_token") -> Dict[str, Any]:
    """Locate the bearer token in an auth response.

    The response must carry a ``token`` (v3) or ``access.token`` (v2) body
    field, and either the X-Subject-Token header or ``Vary: X-Auth-Token``.

    Args:
        version: Protocol version of the client
        headers: Response headers
        body: Parsed response body
        operation: Operation name for errors

    Returns:
        Raw token object with the bearer value under "token"

    Raises:
        MalformedResponseError: Token body, header or bearer value missing
        UnknownVersionError: If version is not v2 or v3
    """
    version = ApiVersion.parse(version)
    if not isinstance(body, Mapping):
        raise MalformedResponseError(operation, "response body is not an object")

    access = body.get("access")
    has_v2_token = isinstance(access, Mapping) and bool(access.get("token"))
    if not body.get("token") and not has_v2_token:
        raise MalformedResponseError(operation, "missing 'token' or 'access.token'")
    if not _header(headers, SUBJECT_TOKEN_HEADER) and not _negotiated_via_vary(headers):
        raise MalformedResponseError(operation, f"missing {SUBJECT_TOKEN_HEADER} header")

    return _TOKEN_EXTRACTORS[version](headers, body, operation)


def extract_scoped_token(headers: Any, body: Any, operation: str = "keystone.get_project_token") -> Dict[str, Any]:
    """Locate the bearer token in a project-scope exchange response (v3 shape only)."""
    if not isinstance(body, Mapping) or not isinstance(body.get("token"), Mapping):
        raise MalformedResponseError(operation, "missing 'token' object")
    bearer = _header(headers, SUBJECT_TOKEN_HEADER)
    if not bearer:
        raise MalformedResponseError(operation, f"missing {SUBJECT_TOKEN_HEADER} header")
    return {**body["token"], "token": bearer}


# ─────────────────────────────────────────────────────────────────────────────
# Token service
# ─────────────────────────────────────────────────────────────────────────────
class TokenService:
    """Service for obtaining generic and project-scoped tokens."""

    def __init__(self, client: KeystoneClient):
        """Initialize token service.

        Args:
            client: Keystone client
        """
        self.client = client

    def _unauthenticated(self, path: str, payload: Mapping[str, Any], log_tag: str) -> RequestDescriptor:
        descriptor = self.client.build_request(_PLACEHOLDER_TOKEN, path, payload, log_tag=log_tag)
        # Credentials travel in the body; no X-Auth-Token on bootstrap calls
        return replace(descriptor, headers={})

    def get_token(self, username: str, password: str, tenant_name: Optional[str] = None) -> Any:
        """Authenticate with username/password.

        Args:
            username: User name
            password: Password
            tenant_name: Tenant to scope to (v2 only)

        Returns:
            Normalized Token; its ``token`` field holds the bearer value

        Raises:
            KeystoneAPIError: Transport failure or error status
            MalformedResponseError: Token could not be located
        """
        operation = "keystone.get_token"
        version = self.client.api_version
        payload = build_password_auth(version, username, password, tenant_name)
        descriptor = self._unauthenticated(TOKEN_PATHS[ApiVersion.parse(version)], payload, "api-calls.keystone.tokens-get")

        response, body = self.client.send("post", descriptor, operation)
        raw = extract_token(version, getattr(response, "headers", None), body, operation)

        logger.info(f"✅ Token issued | user={username} | version={version} | token_hash={token_fingerprint(raw['token'])}")
        return self.client.mangle(EntityKind.TOKEN, raw)

    def get_project_token(self, access_token: str, project_id: str) -> Any:
        """Exchange a token for one scoped to the project with the given id."""
        payload = build_project_scope_auth(self.client.api_version, access_token, project_id=project_id)
        return self._exchange(payload, "keystone.get_project_token")

    get_project_token_by_id = get_project_token

    def get_project_token_by_name(self, access_token: str, domain_id: str, project_name: str) -> Any:
        """Exchange a token for one scoped to a project identified by domain and name."""
        payload = build_project_scope_auth(
            self.client.api_version, access_token, domain_id=domain_id, project_name=project_name
        )
        return self._exchange(payload, "keystone.get_project_token_by_name")

    def _exchange(self, payload: Mapping[str, Any], operation: str) -> Any:
        descriptor = self._unauthenticated(PROJECT_TOKEN_PATH, payload, "api-calls.keystone.tokens-get-project")
        response, body = self.client.send("post", descriptor, operation)
        raw = extract_scoped_token(getattr(response, "headers", None), body, operation)

        logger.info(f"✅ Project token issued | token_hash={token_fingerprint(raw['token'])}")
        return self.client.mangle(EntityKind.PROJECT_TOKEN, raw)


# ─────────────────────────────────────────────────────────────────────────────
# Standalone functions
# ─────────────────────────────────────────────────────────────────────────────
def get_token(
    url: str,
    username: str,
    password: str,
    tenant_name: Optional[str] = None,
    api_version: Optional[str] = None,
) -> Any:
    """Authenticate against ``url`` with a throwaway client."""
    service = TokenService(KeystoneClient(url, api_version))
    return service.get_token(username, password, tenant_name)
