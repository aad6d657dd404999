"""Pytest shared fixtures for Keystone client tests."""
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from keystone_client.core.keystone import KeystoneClient


BASE_URL = "http://keystone.test:5000/v3"
V2_BASE_URL = "http://keystone.test:5000/v2.0"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch):
    """Prevent unit tests from reaching a live Keystone."""

    def _fail(self, method, url, *args, **kwargs):
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")

    monkeypatch.setattr(requests.Session, "request", _fail)


# ─────────────────────────────────────────────────────────────────────────────
# Stub transport
# ─────────────────────────────────────────────────────────────────────────────
class StubResponse:
    def __init__(self, status_code: int = 200, headers: dict | None = None, url: str = ""):
        self.status_code = status_code
        self.headers = headers or {}
        self.url = url
        self.reason = "OK" if status_code < 400 else "Error"


class StubTransport:
    """Records every call and answers with queued (error, response, body) replies.

    With no queued reply it answers 204 with no body.
    """

    def __init__(self):
        self.calls = []
        self.replies = []

    def reply(self, body=None, status_code=200, headers=None, error=None):
        response = None if error is not None else StubResponse(status_code, headers)
        self.replies.append((error, response, body))
        return self

    def _answer(self, verb, descriptor, completion):
        self.calls.append((verb, descriptor))
        if self.replies:
            error, response, body = self.replies.pop(0)
        else:
            error, response, body = None, StubResponse(204), None
        if response is not None and not response.url:
            response.url = descriptor.url
        completion(error, response, body)

    def post(self, descriptor, completion):
        self._answer("post", descriptor, completion)

    def get(self, descriptor, completion):
        self._answer("get", descriptor, completion)

    def put(self, descriptor, completion):
        self._answer("put", descriptor, completion)

    def delete(self, descriptor, completion):
        self._answer("delete", descriptor, completion)

    @property
    def last(self):
        return self.calls[-1]


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def client(transport):
    """v3 client; the trailing slash is deliberately left on the URL."""
    return KeystoneClient(BASE_URL + "/", "v3", transport=transport)


@pytest.fixture
def v2_client(transport):
    return KeystoneClient(V2_BASE_URL, "v2", transport=transport)


# ─────────────────────────────────────────────────────────────────────────────
# Sample payloads
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture
def v3_token_body():
    return {
        "token": {
            "methods": ["password"],
            "user": {"id": "u-1", "name": "alice", "domain": {"id": "default", "name": "Default"}},
            "expires_at": "2026-10-19T12:00:00.000000Z",
            "issued_at": "2026-10-19T11:00:00.000000Z",
            "audit_ids": ["aud-1"],
        }
    }


@pytest.fixture
def v2_token_body():
    return {
        "access": {
            "token": {
                "id": "xyz",
                "expires": "2026-10-19T12:00:00Z",
                "issued_at": "2026-10-19T11:00:00.000000",
                "tenant": {"id": "t-1", "name": "demo"},
            },
            "user": {"id": "u-1", "name": "alice", "roles": [{"name": "member"}]},
            "serviceCatalog": [],
        }
    }


@pytest.fixture
def scoped_token_body():
    return {
        "token": {
            "methods": ["token"],
            "user": {"id": "u-1", "name": "alice"},
            "expires_at": "2026-10-19T12:00:00.000000Z",
            "issued_at": "2026-10-19T11:00:00.000000Z",
            "project": {"id": "p-1", "name": "web", "domain": {"id": "default", "name": "Default"}},
            "roles": [{"id": "r-1", "name": "admin"}],
            "catalog": [{"type": "identity", "endpoints": []}],
        }
    }


def project_json(project_id: str, name: str, **extra) -> dict:
    data = {
        "id": project_id,
        "name": name,
        "domain_id": "default",
        "enabled": True,
        "description": f"{name} project",
        "parent_id": "default",
        "is_domain": False,
        "links": {"self": f"{BASE_URL}/projects/{project_id}"},
    }
    data.update(extra)
    return data


@pytest.fixture
def make_project():
    return project_json
