"""Tests for token extraction and TokenService."""
import pytest
import requests

import keystone_client.core.keystone.client as client_module
import keystone_client.core.keystone.auth as auth_module
from keystone_client.core.keystone import (
    KeystoneAPIError,
    MalformedResponseError,
    NormalizationError,
    PassthroughMangler,
    ProjectToken,
    Token,
    TokenService,
    UnsupportedOperationError,
    build_password_auth,
    build_project_scope_auth,
    extract_scoped_token,
    extract_token,
)


# ─────────────────────────────────────────────────────────────────────────────
# extract_token
# ─────────────────────────────────────────────────────────────────────────────
def test_v3_bearer_comes_from_subject_header(v3_token_body):
    raw = extract_token("v3", {"X-Subject-Token": "abc"}, v3_token_body)
    assert raw["token"] == "abc"
    assert raw["user"]["name"] == "alice"


def test_v3_header_lookup_is_case_insensitive(v3_token_body):
    raw = extract_token("v3", {"x-subject-token": "abc"}, v3_token_body)
    assert raw["token"] == "abc"


def test_v3_requires_header_or_vary_marker(v3_token_body):
    with pytest.raises(MalformedResponseError):
        extract_token("v3", {"Content-Type": "application/json"}, v3_token_body)


def test_v3_vary_marker_without_header_is_still_an_error(v3_token_body):
    """The vary marker passes validation but v3 has no bearer value to extract."""
    with pytest.raises(MalformedResponseError):
        extract_token("v3", {"Vary": "X-Auth-Token"}, v3_token_body)


def test_v2_bearer_comes_from_body(v2_token_body):
    raw = extract_token("v2", {"Vary": "X-Auth-Token"}, v2_token_body)
    assert raw["token"] == "xyz"
    assert raw["user"]["id"] == "u-1"
    assert "id" not in raw


def test_v2_ignores_subject_header(v2_token_body):
    raw = extract_token("v2", {"X-Subject-Token": "from-header"}, v2_token_body)
    assert raw["token"] == "xyz"


def test_v2_still_requires_header_or_vary_marker(v2_token_body):
    with pytest.raises(MalformedResponseError):
        extract_token("v2", {}, v2_token_body)


@pytest.mark.parametrize("body", [None, "", {}, {"token": {}}, {"access": {}}])
def test_missing_token_body_is_malformed(body):
    with pytest.raises(MalformedResponseError):
        extract_token("v3", {"X-Subject-Token": "abc"}, body)


def test_v2_missing_token_id_is_malformed():
    body = {"access": {"token": {"expires": "2026-10-19T12:00:00Z"}}}
    with pytest.raises(MalformedResponseError):
        extract_token("v2", {"Vary": "X-Auth-Token"}, body)


def test_extract_scoped_token_requires_header(scoped_token_body):
    with pytest.raises(MalformedResponseError):
        extract_scoped_token({"Vary": "X-Auth-Token"}, scoped_token_body)
    assert extract_scoped_token({"X-Subject-Token": "s"}, scoped_token_body)["token"] == "s"


# ─────────────────────────────────────────────────────────────────────────────
# TokenService.get_token
# ─────────────────────────────────────────────────────────────────────────────
def test_get_token_v3(client, transport, v3_token_body):
    transport.reply(body=v3_token_body, status_code=201, headers={"X-Subject-Token": "abc"})

    token = TokenService(client).get_token("alice", "pw")

    assert isinstance(token, Token)
    assert token.token == "abc"
    assert token.user["id"] == "u-1"
    assert token.methods == ("password",)

    verb, descriptor = transport.last
    assert verb == "post"
    assert descriptor.url == "http://keystone.test:5000/v3/auth/tokens"
    assert descriptor.headers == {}
    assert descriptor.json == build_password_auth("v3", "alice", "pw")
    assert descriptor.timeout == client_module.REQUEST_TIMEOUT
    assert descriptor.log_tag == "api-calls.keystone.tokens-get"


def test_get_token_v2_with_tenant(v2_client, transport, v2_token_body):
    transport.reply(body=v2_token_body, headers={"Vary": "X-Auth-Token"})

    token = TokenService(v2_client).get_token("alice", "pw", "demo")

    assert token.token == "xyz"
    assert token.expires_at == "2026-10-19T12:00:00Z"
    assert token.extra["tenant"] == {"id": "t-1", "name": "demo"}

    _, descriptor = transport.last
    assert descriptor.url == "http://keystone.test:5000/v2.0/tokens"
    assert descriptor.json["auth"]["tenantName"] == "demo"
    assert descriptor.headers == {}


def test_get_token_never_returns_empty_bearer(client, transport, v3_token_body):
    transport.reply(body=v3_token_body, headers={"X-Subject-Token": ""})
    with pytest.raises(MalformedResponseError):
        TokenService(client).get_token("alice", "pw")


def test_get_token_reports_transport_failure(client, transport):
    boom = requests.ConnectionError("connection refused")
    transport.reply(error=boom)

    with pytest.raises(KeystoneAPIError) as exc_info:
        TokenService(client).get_token("alice", "pw")

    assert exc_info.value.operation == "keystone.get_token"
    assert exc_info.value.status_code is None
    assert exc_info.value.__cause__ is boom


def test_get_token_reports_error_status(client, transport):
    transport.reply(
        body={"error": {"code": 401, "title": "Unauthorized", "message": "The request you have made requires authentication."}},
        status_code=401,
    )

    with pytest.raises(KeystoneAPIError) as exc_info:
        TokenService(client).get_token("alice", "wrong")

    assert exc_info.value.status_code == 401
    assert "requires authentication" in exc_info.value.message


def test_get_token_with_passthrough_mangler(client, transport, v3_token_body):
    client.set_mangler(PassthroughMangler())
    transport.reply(body=v3_token_body, headers={"X-Subject-Token": "abc"})

    token = TokenService(client).get_token("alice", "pw")

    assert token["token"] == "abc"
    assert token["audit_ids"] == ["aud-1"]


# ─────────────────────────────────────────────────────────────────────────────
# Project-scoped tokens
# ─────────────────────────────────────────────────────────────────────────────
def test_get_project_token_by_id(client, transport, scoped_token_body):
    transport.reply(body=scoped_token_body, status_code=201, headers={"X-Subject-Token": "scoped"})

    token = TokenService(client).get_project_token("generic", "p-1")

    assert isinstance(token, ProjectToken)
    assert token.token == "scoped"
    assert token.project_id == "p-1"
    assert token.roles == ({"id": "r-1", "name": "admin"},)

    _, descriptor = transport.last
    assert descriptor.url == "http://keystone.test:5000/v3/auth/tokens"
    assert descriptor.headers == {}
    assert descriptor.json == build_project_scope_auth("v3", "generic", project_id="p-1")
    assert descriptor.log_tag == "api-calls.keystone.tokens-get-project"


def test_get_project_token_by_id_alias(client, transport, scoped_token_body):
    transport.reply(body=scoped_token_body, headers={"X-Subject-Token": "scoped"})
    assert TokenService(client).get_project_token_by_id("generic", "p-1").token == "scoped"


def test_get_project_token_by_name(client, transport, scoped_token_body):
    transport.reply(body=scoped_token_body, headers={"X-Subject-Token": "scoped"})

    TokenService(client).get_project_token_by_name("generic", "default", "web")

    _, descriptor = transport.last
    assert descriptor.json["auth"]["scope"] == {"project": {"domain": {"id": "default"}, "name": "web"}}


def test_get_project_token_requires_subject_header(client, transport, scoped_token_body):
    transport.reply(body=scoped_token_body, headers={"Vary": "X-Auth-Token"})
    with pytest.raises(MalformedResponseError):
        TokenService(client).get_project_token("generic", "p-1")


def test_get_project_token_requires_project_scope(client, transport, v3_token_body):
    transport.reply(body=v3_token_body, headers={"X-Subject-Token": "scoped"})
    with pytest.raises(NormalizationError):
        TokenService(client).get_project_token("generic", "p-1")


def test_v2_project_token_exchange_is_unsupported(v2_client, transport):
    with pytest.raises(UnsupportedOperationError):
        TokenService(v2_client).get_project_token("generic", "p-1")
    assert transport.calls == []


def test_standalone_get_token_builds_its_own_client(monkeypatch, transport, v2_token_body):
    real_client = auth_module.KeystoneClient

    def factory(url, api_version):
        return real_client(url, api_version, transport=transport)

    monkeypatch.setattr(auth_module, "KeystoneClient", factory)
    transport.reply(body=v2_token_body, headers={"Vary": "X-Auth-Token"})

    token = auth_module.get_token("http://keystone.test:5000/v2.0/", "alice", "pw", "demo", api_version="v2")

    _, descriptor = transport.last
    assert descriptor.url == "http://keystone.test:5000/v2.0/tokens"
    assert token.token == "xyz"
