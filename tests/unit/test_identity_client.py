"""Unit tests for the Asgardeo SCIM2 client and its user/group services."""
from unittest.mock import Mock

import pytest
import requests

from identity_service.core.asgardeo import IdentityApiClient
from identity_service.core.errors import AuthenticationFailure, Conflict, NotFound, UpstreamError
from identity_service.core.models import ServiceToken
from tests.conftest import SCIM2_URL, _StubResponse


@pytest.fixture()
def token_provider():
    provider = Mock()
    provider.get_token.return_value = ServiceToken(value="m2m-token", expires_at=float("inf"))
    return provider


@pytest.fixture()
def http():
    return Mock()


@pytest.fixture()
def client(token_provider, http):
    return IdentityApiClient(SCIM2_URL + "/", token_provider, timeout=7, http=http)


def _sent(http):
    args, kwargs = http.request.call_args
    return args[0], args[1], kwargs


def test_request_sends_bearer_and_scim_headers(client, http):
    http.request.return_value = _StubResponse({"id": "u1"})

    assert client.users.get("u1") == {"id": "u1"}

    method, url, kwargs = _sent(http)
    assert method == "GET"
    assert url == f"{SCIM2_URL}/Users/u1"
    assert kwargs["headers"]["Authorization"] == "Bearer m2m-token"
    assert kwargs["headers"]["Content-Type"] == "application/scim+json"
    assert kwargs["timeout"] == 7


def test_create_user_posts_scim_payload(client, http):
    http.request.return_value = _StubResponse({"id": "u1", "userName": "DEFAULT/a@b.com"}, status_code=201)

    created = client.users.create("a@b.com", "A", "B")

    method, url, kwargs = _sent(http)
    assert (method, url) == ("POST", f"{SCIM2_URL}/Users")
    assert kwargs["json"]["userName"] == "DEFAULT/a@b.com"
    assert kwargs["json"]["urn:scim:wso2:schema"] == {"askPassword": True}
    assert created["id"] == "u1"


def test_list_users_passes_filter_and_paging(client, http):
    http.request.return_value = _StubResponse({"totalResults": 0, "Resources": []})

    client.users.list(filter='emails eq "a@b.com"', count=10)

    _, _, kwargs = _sent(http)
    assert kwargs["params"] == {"startIndex": 1, "count": 10, "filter": 'emails eq "a@b.com"'}


def test_delete_user_accepts_empty_response(client, http):
    http.request.return_value = _StubResponse(None, status_code=204)

    assert client.users.delete("u1") is None
    method, url, _ = _sent(http)
    assert (method, url) == ("DELETE", f"{SCIM2_URL}/Users/u1")


def test_add_member_sends_patch_add(client, http):
    http.request.return_value = _StubResponse({"id": "grp-supplier"})

    client.groups.add_member("grp-supplier", "u1", display="a@b.com")

    method, url, kwargs = _sent(http)
    assert (method, url) == ("PATCH", f"{SCIM2_URL}/Groups/grp-supplier")
    assert kwargs["json"] == {
        "schemas": ["urn:ietf:params:scim:api:messages:2.0:PatchOp"],
        "Operations": [{"op": "add", "value": {"members": [{"value": "u1", "display": "a@b.com"}]}}],
    }


def test_remove_member_sends_patch_remove_with_filter(client, http):
    http.request.return_value = _StubResponse(None, status_code=204)

    client.groups.remove_member("grp-supplier", "u1")

    _, _, kwargs = _sent(http)
    assert kwargs["json"]["Operations"] == [{"op": "remove", "path": 'members[value eq "u1"]'}]


def test_get_members_returns_member_refs(client, http):
    http.request.return_value = _StubResponse({"id": "g1", "members": [{"value": "u1", "display": "a@b.com"}]})
    assert client.groups.get_members("g1") == [{"value": "u1", "display": "a@b.com"}]


def test_get_members_of_empty_group(client, http):
    http.request.return_value = _StubResponse({"id": "g1", "displayName": "supplier"})
    assert client.groups.get_members("g1") == []


@pytest.mark.parametrize(
    "status_code,expected",
    [
        (404, NotFound),
        (409, Conflict),
        (400, UpstreamError),
        (500, UpstreamError),
    ],
)
def test_error_status_mapping(client, http, status_code, expected):
    http.request.return_value = _StubResponse({"detail": "boom", "status": str(status_code)}, status_code=status_code)

    with pytest.raises(expected) as exc_info:
        client.users.get("u1")

    assert exc_info.value.detail == {"detail": "boom", "status": str(status_code)}


def test_upstream_error_keeps_status_and_endpoint(client, http):
    http.request.return_value = _StubResponse(None, status_code=502, text="Bad gateway")

    with pytest.raises(UpstreamError) as exc_info:
        client.groups.list()

    assert exc_info.value.status_code == 502
    assert exc_info.value.endpoint == "/Groups"
    assert exc_info.value.detail == "Bad gateway"


def test_unauthorized_invalidates_token(client, http, token_provider):
    http.request.return_value = _StubResponse({"detail": "invalid token"}, status_code=401)

    with pytest.raises(AuthenticationFailure):
        client.users.get("u1")

    token_provider.invalidate.assert_called_once_with(token_provider.get_token.return_value)


def test_timeout_maps_to_upstream_error(client, http):
    http.request.side_effect = requests.Timeout("read timed out")

    with pytest.raises(UpstreamError) as exc_info:
        client.users.get("u1")

    assert exc_info.value.status_code is None
    assert "timed out" in exc_info.value.detail


def test_token_failure_prevents_request(client, http, token_provider):
    token_provider.get_token.side_effect = AuthenticationFailure(detail="invalid_client")

    with pytest.raises(AuthenticationFailure):
        client.groups.list()

    http.request.assert_not_called()
