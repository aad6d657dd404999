"""HTTP transport for the Keystone client.

The client never talks to ``requests`` directly: it hands a ``RequestDescriptor``
and a completion callback to a transport object with ``post/get/put/delete``
methods. ``RequestsTransport`` is the default; tests and callers that need
instrumentation swap in their own object with the same four methods.
"""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

import requests

from keystone_client.config.settings import DEFAULT_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

# completion(error, response, body)
Completion = Callable[[Optional[BaseException], Any, Any], None]


@dataclass(frozen=True)
class RequestDescriptor:
    """Everything a transport needs to issue one call.

    Attributes:
        url: Absolute target URL, query string included
        headers: Request headers
        json: Payload to send as JSON, or True to send no body and parse the JSON response
        timeout: Timeout in seconds
        log_tag: Identifier for logs/metrics (e.g. api-calls.keystone.projects-list)
    """

    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Union[Mapping[str, Any], bool] = True
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    log_tag: str = ""

    @property
    def payload(self) -> Optional[Mapping[str, Any]]:
        """Request body, or None when ``json`` is only the response flag."""
        if isinstance(self.json, bool):
            return None
        return self.json


class Transport(Protocol):
    """Minimal verb-based transport contract.

    Each method must call ``completion`` exactly once.
    """

    def post(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        ...

    def get(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        ...

    def put(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        ...

    def delete(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        ...


class RequestsTransport:
    """Transport backed by a ``requests.Session``.

    Network failures (connection errors, timeouts) are reported through the
    completion's ``error`` argument; nothing is retried.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()

    def post(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        self._send("POST", descriptor, completion)

    def get(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        self._send("GET", descriptor, completion)

    def put(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        self._send("PUT", descriptor, completion)

    def delete(self, descriptor: RequestDescriptor, completion: Completion) -> None:
        self._send("DELETE", descriptor, completion)

    def _send(self, method: str, descriptor: RequestDescriptor, completion: Completion) -> None:
        started = time.monotonic()
        try:
            resp = self.session.request(
                method,
                descriptor.url,
                headers=descriptor.headers,
                json=descriptor.payload,
                timeout=descriptor.timeout,
            )
        except requests.RequestException as exc:
            logger.warning(f"[{descriptor.log_tag}] {method} {descriptor.url} failed: {exc}")
            completion(exc, None, None)
            return

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(f"[{descriptor.log_tag}] {method} {descriptor.url} -> {resp.status_code} ({elapsed_ms:.0f} ms)")
        completion(None, resp, self._parse_body(descriptor, resp))

    @staticmethod
    def _parse_body(descriptor: RequestDescriptor, resp: requests.Response) -> Any:
        if not resp.content:
            return None
        if descriptor.json is False:
            return resp.text
        try:
            return resp.json()
        except ValueError:
            return resp.text
