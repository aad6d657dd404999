import pytest

from keystone_client.core.keystone import (
    ApiVersion,
    UnknownVersionError,
    UnsupportedOperationError,
    build_password_auth,
    build_project_scope_auth,
)


def test_v3_password_envelope_uses_default_domain():
    payload = build_password_auth("v3", "alice", "s3cret")
    assert payload == {
        "auth": {
            "identity": {
                "methods": ["password"],
                "password": {
                    "user": {"domain": {"name": "Default"}, "name": "alice", "password": "s3cret"}
                },
            }
        }
    }


def test_v3_password_envelope_ignores_tenant_name():
    assert build_password_auth(ApiVersion.V3, "alice", "pw", "demo") == build_password_auth("v3", "alice", "pw")


def test_v2_password_envelope_without_tenant():
    payload = build_password_auth("v2", "alice", "pw")
    assert payload == {"auth": {"passwordCredentials": {"username": "alice", "password": "pw"}}}
    assert "tenantName" not in payload["auth"]


def test_v2_password_envelope_with_tenant():
    payload = build_password_auth(ApiVersion.V2, "alice", "pw", "demo")
    assert payload["auth"]["tenantName"] == "demo"
    assert payload["auth"]["passwordCredentials"] == {"username": "alice", "password": "pw"}


def test_v2_and_v3_envelopes_never_mix():
    v2 = build_password_auth("v2", "alice", "pw", "demo")
    v3 = build_password_auth("v3", "alice", "pw", "demo")
    assert "identity" not in v2["auth"]
    assert "passwordCredentials" not in v3["auth"]


@pytest.mark.parametrize("version", ["v1", "V4", "", None])
def test_unknown_version_fails_fast(version):
    with pytest.raises(UnknownVersionError):
        build_password_auth(version, "alice", "pw")


def test_version_parse_is_case_insensitive():
    assert ApiVersion.parse(" V3 ") is ApiVersion.V3
    assert ApiVersion.parse(ApiVersion.V2) is ApiVersion.V2


def test_project_scope_by_id():
    payload = build_project_scope_auth("v3", "tok", project_id="p-1")
    assert payload == {
        "auth": {
            "identity": {"methods": ["token"], "token": {"id": "tok"}},
            "scope": {"project": {"id": "p-1"}},
        }
    }


def test_project_scope_by_domain_and_name():
    payload = build_project_scope_auth("v3", "tok", domain_id="default", project_name="web")
    assert payload["auth"]["scope"] == {"project": {"domain": {"id": "default"}, "name": "web"}}
    assert payload["auth"]["identity"]["methods"] == ["token"]


def test_project_scope_is_not_expressible_in_v2():
    with pytest.raises(UnsupportedOperationError):
        build_project_scope_auth("v2", "tok", project_id="p-1")


@pytest.mark.parametrize(
    "selector",
    [
        {},
        {"project_id": "p-1", "project_name": "web"},
        {"domain_id": "default"},
        {"project_name": "web"},
    ],
)
def test_project_scope_requires_exactly_one_selector(selector):
    with pytest.raises(ValueError):
        build_project_scope_auth("v3", "tok", **selector)
