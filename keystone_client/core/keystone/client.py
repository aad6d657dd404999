"""Low-level HTTP client for the Keystone identity API.

Holds the per-instance configuration (base URL, protocol version, timeout,
transport, mangler), builds request descriptors and runs the single transport
call behind every operation.
"""
from __future__ import annotations
import hashlib
import logging
from typing import Any, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from keystone_client.config.settings import settings

from .exceptions import KeystoneAPIError, MalformedResponseError, NormalizationError, request_error
from .mangler import DefaultMangler, KindLike, Mangler
from .models import PaginatedList
from .transport import RequestDescriptor, RequestsTransport, Transport
from .versions import ApiVersion

logger = logging.getLogger(__name__)

# Process-wide default, used when an instance has no timeout of its own
REQUEST_TIMEOUT = settings.request_timeout

AUTH_TOKEN_HEADER = "X-Auth-Token"
_VERBS = ("post", "get", "put", "delete")


def token_fingerprint(token: str) -> str:
    """Short SHA256 prefix of a bearer token, safe to log."""
    return hashlib.sha256(token.encode()).hexdigest()[:12]


def require_list(body: Any, key: str, operation: str) -> List[Any]:
    """Return ``body[key]`` if it is a list, else raise ``MalformedResponseError``."""
    if not isinstance(body, Mapping) or not isinstance(body.get(key), list):
        logger.warning(f"[{operation}] Response has no '{key}' array")
        raise MalformedResponseError(operation, f"missing '{key}' array")
    return body[key]


class KeystoneClient:
    """HTTP client for one Keystone endpoint and protocol version.

    The version is fixed for the lifetime of the instance. Timeout, transport
    and mangler can be replaced with the ``set_*`` methods, but not while
    operations are in flight.

    Usage:
        client = KeystoneClient("http://keystone:5000/v3", "v3")
        token = TokenService(client).get_token("alice", "secret")
        projects = ProjectService(client).list_projects(token.token)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_version: Union[ApiVersion, str, None] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[Transport] = None,
        mangler: Optional[Mangler] = None,
    ):
        """Initialize Keystone client.

        Args:
            base_url: Keystone base URL (defaults to KEYSTONE_URL); trailing slashes are stripped
            api_version: "v2" or "v3" (defaults to KEYSTONE_API_VERSION)
            timeout: Per-instance timeout in seconds, overrides the process-wide default
            transport: Object with post/get/put/delete (defaults to RequestsTransport)
            mangler: Normalization strategy (defaults to DefaultMangler)

        Raises:
            UnknownVersionError: If api_version is not v2 or v3
        """
        self.base_url = (base_url or settings.keystone_url).rstrip("/")
        self.api_version = ApiVersion.parse(api_version or settings.api_version)
        self.timeout = timeout
        self.transport: Transport = transport or RequestsTransport()
        self.mangler: Mangler = mangler or DefaultMangler()

    def set_timeout(self, timeout: Optional[float]) -> None:
        """Override the timeout for this instance (None restores the default)."""
        self.timeout = timeout

    def set_transport(self, transport: Transport) -> None:
        self.transport = transport

    def set_mangler(self, mangler: Mangler) -> None:
        self.mangler = mangler

    @property
    def effective_timeout(self) -> float:
        if self.timeout is not None:
            return self.timeout
        return REQUEST_TIMEOUT

    def build_request(
        self,
        auth_token: str,
        path: str,
        json_value: Union[Mapping[str, Any], bool] = True,
        *,
        params: Optional[Mapping[str, Any]] = None,
        log_tag: str = "",
    ) -> RequestDescriptor:
        """Build the descriptor for one call.

        Args:
            auth_token: Bearer token sent as X-Auth-Token (generic or project scoped)
            path: API path appended to the base URL (e.g. "/projects")
            json_value: Payload to send, or True when there is nothing to send
            params: Query string parameters, encoded into the URL
            log_tag: Identifier used in transport logs

        Returns:
            RequestDescriptor with the effective timeout resolved
        """
        url = f"{self.base_url}{path}"
        if params:
            url = f"{url}{'&' if '?' in path else '?'}{urlencode(params)}"
        return RequestDescriptor(
            url=url,
            headers={AUTH_TOKEN_HEADER: auth_token},
            json=json_value,
            timeout=self.effective_timeout,
            log_tag=log_tag,
        )

    def send(self, verb: str, descriptor: RequestDescriptor, operation: str) -> Tuple[Any, Any]:
        """Run one transport call and wait for its completion.

        Args:
            verb: One of post/get/put/delete
            descriptor: Request descriptor
            operation: Operation name carried by any resulting error

        Returns:
            (response, body) from the transport

        Raises:
            KeystoneAPIError: Transport error, error status, or a transport that
                did not complete exactly once
        """
        if verb not in _VERBS:
            raise ValueError(f"Unsupported HTTP verb: {verb}")

        outcomes: List[Tuple[Any, Any, Any]] = []

        def completion(error: Any, response: Any, body: Any) -> None:
            outcomes.append((error, response, body))

        logger.debug(f"[{operation}] {verb.upper()} {descriptor.url}")
        getattr(self.transport, verb)(descriptor, completion)

        if len(outcomes) != 1:
            raise KeystoneAPIError(
                operation, None, f"transport completed {len(outcomes)} times", descriptor.url
            )

        error, response, body = outcomes[0]
        if error is not None or response is None or response.status_code >= 400:
            exc = request_error(operation, error, response, body, descriptor.url)
            logger.warning(f"❌ {exc}")
            if isinstance(error, BaseException):
                raise exc from error
            raise exc
        return response, body

    def mangle(self, kind: KindLike, raw: Any) -> Any:
        """Normalize one raw object with this instance's mangler.

        Raises:
            NormalizationError: The mangler failed or produced nothing
        """
        try:
            result = self.mangler.mangle_object(kind, raw)
        except NormalizationError:
            raise
        except Exception as exc:
            raise NormalizationError(kind, f"mangler failed: {exc}") from exc
        if result is None:
            raise NormalizationError(kind, "mangler returned nothing")
        return result

    def list_resource(
        self,
        auth_token: str,
        path: str,
        collection: str,
        kind: KindLike,
        *,
        operation: str,
        log_tag: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> PaginatedList:
        """GET a paginated collection and normalize every element.

        The body must carry the ``collection`` array and ``links.self``; an
        empty array without links is still malformed.

        Args:
            auth_token: Bearer token
            path: Collection path (e.g. "/roles")
            collection: Array field in the body (e.g. "roles")
            kind: Entity kind for each element
            operation: Operation name for errors
            log_tag: Transport log identifier
            params: Query string parameters

        Returns:
            PaginatedList of normalized entities in server order
        """
        descriptor = self.build_request(auth_token, path, True, params=params, log_tag=log_tag)
        _, body = self.send("get", descriptor, operation)

        items = require_list(body, collection, operation)
        links = body.get("links")
        if not isinstance(links, Mapping) or not links.get("self"):
            logger.warning(f"[{operation}] Response has no links.self")
            raise MalformedResponseError(operation, "missing links.self")

        return PaginatedList(
            items=tuple(self.mangle(kind, raw) for raw in items),
            self_link=links["self"],
            previous_link=links.get("previous"),
            next_link=links.get("next"),
        )
