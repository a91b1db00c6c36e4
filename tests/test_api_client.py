from unittest.mock import patch

import httpx
import pytest

from serenite.api.admin import AdminApi
from serenite.api.auth import AuthApi, extract_token
from serenite.api.client import ApiClient, ApiConfigError, ApiError, unwrap_list

from .conftest import API

U1 = {"id": "1", "email": "a@example.com"}
U2 = {"id": "2", "email": "b@example.com"}


# ---------------------------------------------------------------------------
# unwrap_list
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "payload",
    [
        {"data": [U1, U2]},
        {"items": [U1, U2]},
        {"results": [U1, U2]},
        [U1, U2],
    ],
)
def test_unwrap_list_accepts_every_known_shape(payload):
    assert unwrap_list(payload) == [U1, U2]


@pytest.mark.parametrize("payload", [{"users": [U1]}, {"data": "nope"}, None, "text", 42])
def test_unwrap_list_falls_back_to_empty(payload):
    assert unwrap_list(payload) == []


def test_list_users_unwraps_the_envelope(fake_api):
    fake_api.add("GET", "/api/admin/users", json={"data": [U1, U2]})
    assert AdminApi(API).list_users() == [U1, U2]


# ---------------------------------------------------------------------------
# URL, headers, erreurs
# ---------------------------------------------------------------------------


def test_missing_base_url_fails_before_any_request():
    with patch("httpx.request") as req:
        with pytest.raises(ApiConfigError):
            AdminApi("").list_users()
        req.assert_not_called()


def test_build_url_joins_with_a_single_slash():
    assert ApiClient("http://x/").build_url("/api/me") == "http://x/api/me"
    assert ApiClient("http://x").build_url("api/me") == "http://x/api/me"


def test_bearer_header_only_when_token_known(fake_api):
    fake_api.add("GET", "/api/membres", json=[])
    AdminApi(API).list_membres()
    AdminApi(API, token="abc").list_membres()
    first, second = fake_api.calls
    assert "Authorization" not in first.kwargs["headers"]
    assert second.kwargs["headers"]["Authorization"] == "Bearer abc"


def test_error_message_prefers_server_message(fake_api):
    fake_api.add("GET", "/api/admin/users/9", status=404, json={"message": "Utilisateur inconnu"})
    with pytest.raises(ApiError) as exc:
        AdminApi(API, token="t").get_user("9")
    assert exc.value.message == "Utilisateur inconnu"
    assert exc.value.status_code == 404


def test_error_message_falls_back_to_status_text(fake_api):
    fake_api.add("GET", "/api/admin/users/9", status=503, content=b"<html>down</html>")
    with pytest.raises(ApiError) as exc:
        AdminApi(API).get_user("9")
    assert exc.value.message == "Service Unavailable"


def test_error_message_falls_back_to_http_code(fake_api):
    fake_api.add("GET", "/api/admin/users/9", status=599, json={"error": "x"})
    with pytest.raises(ApiError) as exc:
        AdminApi(API).get_user("9")
    assert exc.value.message == "HTTP 599"


def test_transport_error_becomes_api_error():
    with patch("httpx.request", side_effect=httpx.ConnectError("refused")):
        with pytest.raises(ApiError):
            AdminApi(API).list_users()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("key", ["token", "accessToken", "jwt"])
def test_login_reads_any_token_key(fake_api, key):
    fake_api.add("POST", "/api/auth/login", json={key: "tok"})
    assert AuthApi(API).login("a@example.com", "secret") == "tok"
    assert fake_api.calls[0].kwargs["json"] == {"email": "a@example.com", "password": "secret"}


def test_login_without_token_fails(fake_api):
    fake_api.add("POST", "/api/auth/login", json={"ok": True})
    with pytest.raises(ApiError, match="token missing"):
        AuthApi(API).login("a@example.com", "secret")


def test_extract_token_ignores_non_objects():
    assert extract_token(["tok"]) is None
    assert extract_token({"jwt": "j"}) == "j"


def test_me_requires_a_token():
    with pytest.raises(ApiError):
        AuthApi(API).me()


def test_adherent_registration_path_is_configurable(fake_api):
    fake_api.add("POST", "/api/auth/register-adherent", json={"id": "1"})
    api = AuthApi(API, adherent_register_path="/api/auth/register-adherent")
    api.register_adherent({"nom": "Doe"}, {"identite": ("id.pdf", b"%PDF", "application/pdf")})
    call = fake_api.calls[0]
    assert call.kwargs["data"] == {"nom": "Doe"}
    assert call.kwargs["files"] == [("identite", ("id.pdf", b"%PDF", "application/pdf"))]
    assert "json" not in call.kwargs


def test_patch_endpoints_send_expected_bodies(fake_api):
    for suffix in ("validate", "active", "role", "assign-membre"):
        fake_api.add("PATCH", f"/api/admin/users/7/{suffix}", json={"id": "7"})
    api = AdminApi(API, token="t")
    api.validate_user("7", True)
    api.set_active("7", False)
    api.update_role("7", "ADMIN_MEMBRE")
    api.assign_membre("7", "")
    bodies = [c.kwargs["json"] for c in fake_api.calls]
    assert bodies == [
        {"validated": True},
        {"active": False},
        {"role": "ADMIN_MEMBRE"},
        {"membreId": None, "replace": True},
    ]


def test_upsert_document_is_multipart(fake_api):
    fake_api.add("PATCH", "/api/admin/users/7/documents/RIB", json={"id": "d1", "type": "RIB"})
    doc = AdminApi(API, token="t").upsert_document("7", "RIB", ("rib.pdf", b"%PDF", "application/pdf"))
    assert doc == {"id": "d1", "type": "RIB"}
    call = fake_api.calls[0]
    assert call.kwargs["files"] == [("file", ("rib.pdf", b"%PDF", "application/pdf"))]
    assert "Content-Type" not in call.kwargs["headers"]
