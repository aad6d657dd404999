"""Keystone-specific exceptions for error handling."""
from __future__ import annotations
from typing import Any, Optional


class KeystoneError(Exception):
    """Base exception for all Keystone operations."""
    pass


class KeystoneAPIError(KeystoneError):
    """Transport failure: the call errored or Keystone answered with an error status.

    Attributes:
        operation: Client operation that issued the call (e.g. keystone.list_roles)
        status_code: HTTP status code, or None when no response was received
        message: Error message from the response or the transport
        endpoint: URL that failed
    """

    def __init__(self, operation: str, status_code: Optional[int], message: str, endpoint: str):
        self.operation = operation
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        status = status_code if status_code is not None else "no response"
        super().__init__(f"{operation} [{status}] {endpoint}: {message}")


class MalformedResponseError(KeystoneError):
    """The call succeeded but the response is missing an expected field."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}: malformed response ({reason})")


class NormalizationError(MalformedResponseError):
    """A raw object could not be turned into its canonical entity."""

    def __init__(self, kind: Any, reason: str):
        self.kind = kind
        super().__init__(f"mangle.{kind}", reason)


class AmbiguousResultError(KeystoneError):
    """A by-name lookup matched more than one entity."""

    def __init__(self, operation: str, name: str, count: int):
        self.operation = operation
        self.name = name
        self.count = count
        super().__init__(f"{operation}: name '{name}' matched {count} entities")


class UnknownVersionError(KeystoneError, ValueError):
    """Configured protocol version is neither v2 nor v3."""

    def __init__(self, version: Any):
        self.version = version
        super().__init__(f"Unknown Keystone API version: {version!r}")


class UnsupportedOperationError(KeystoneError):
    """Operation cannot be expressed in the configured protocol version."""
    pass


def request_error(operation: str, error: Any, response: Any, body: Any, endpoint: str = "") -> KeystoneAPIError:
    """Build the uniform transport-failure error for an operation.

    Args:
        operation: Client operation name
        error: Exception or message reported by the transport, if any
        response: Transport response (may be None)
        body: Parsed response body (may be None)
        endpoint: Request URL, used when the response does not carry one

    Returns:
        KeystoneAPIError describing the failure
    """
    status_code = getattr(response, "status_code", None)
    endpoint = getattr(response, "url", None) or endpoint
    if error is not None:
        message = str(error)
    elif isinstance(body, dict) and isinstance(body.get("error"), dict):
        # Keystone error envelope: {"error": {"code", "title", "message"}}
        message = body["error"].get("message") or body["error"].get("title") or ""
    elif body is not None:
        message = str(body)
    else:
        message = getattr(response, "reason", "") or ""
    return KeystoneAPIError(operation, status_code, message, endpoint)
