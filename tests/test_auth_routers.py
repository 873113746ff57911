from __future__ import annotations

import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import httpx
from fastapi.testclient import TestClient

from app.application.dto.me import CharacterSummary
from app.core.container import build_services
from app.domain.services.tokens import generate_token
from app.infrastructure.memory.memory_credential_store import (
    MemoryCharacterRepository,
    MemoryCredentialStore,
)
from app.main import create_app
from app.shared.config import Settings


def _settings(**overrides) -> Settings:
    values = {
        "postgres_dsn": "",
        "log_level": "WARNING",
        "google_client_id": "google-client",
        "google_client_secret": "google-secret",
        "google_redirect_uri": "https://plaza.example/auth/google/callback",
        "itch_io_client_id": "itch-client",
        "itch_io_redirect_uri": "https://plaza.example/auth/itch/callback",
        "legacy_session_client_id": "",
        "legacy_session_gateway_url": "",
        "provider_timeout_seconds": 5.0,
        "session_ttl_days": 7,
        "oauth_state_ttl_minutes": 10,
        "relay_ttl_minutes": 10,
        "relay_sweep_interval_seconds": 300.0,
        "cleanup_interval_minutes": 60,
        "cors_allow_origins": ("*",),
    }
    values.update(overrides)
    return Settings(**values)


def _provider_handler(calls: list[str]):
    # The "revoked" itch token works once, then the provider disowns it.
    # The "outage" itch token works once, then the provider is unavailable.
    revoked: set[str] = set()

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.host == "oauth2.googleapis.com":
            return httpx.Response(200, json={"access_token": "at", "refresh_token": "rt"})
        if request.url.host == "www.googleapis.com":
            return httpx.Response(200, json={"id": "g-1", "email": "alice@example.com"})
        if request.url.host == "api.itch.io":
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if token in ("revoked", "outage") and token in revoked:
                return httpx.Response(401 if token == "revoked" else 503)
            if token == "nameless":
                return httpx.Response(200, json={"user": {"id": 8}})
            revoked.add(token)
            return httpx.Response(200, json={"user": {"id": 7, "username": "pixel"}})
        if request.url.host == "newgrounds.io":
            return httpx.Response(200, json=_gateway_answer(json.loads(request.content)))
        return httpx.Response(404)

    return handler


def _gateway_answer(request: dict) -> dict:
    if request["execute"]["component"] == "App.startSession":
        session = {"id": "gw-1", "passport_url": "https://passport.example/gw-1"}
    elif request.get("session_id") == "gw-1":
        session = {"id": "gw-1", "expired": False, "user": {"id": 31, "name": "tom"}}
    else:
        return {"success": False, "error": {"code": 104}}
    return {"success": True, "result": {"data": {"session": session}}}


def _client(settings: Settings | None = None, *, characters=None) -> tuple[TestClient, list[str], object]:
    calls: list[str] = []
    services = build_services(
        settings or _settings(),
        store=MemoryCredentialStore(),
        character_port=MemoryCharacterRepository(characters),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(_provider_handler(calls))),
    )
    return TestClient(create_app(services=services), raise_server_exceptions=False), calls, services


def _login_google(client: TestClient) -> dict:
    url = client.get("/v1/auth/google/authorization-url").json()
    response = client.post("/v1/auth/google/callback", json={"code": "the-code", "state": url["state"]})
    assert response.status_code == 200
    return response.json()


def test_health():
    client, _calls, _services = _client()

    assert client.get("/health").json() == {"status": "ok"}


def test_google_authorization_url_response():
    client, _calls, _services = _client()

    response = client.get("/v1/auth/google/authorization-url")

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"authUrl", "state", "expiresAt"}
    query = parse_qs(urlparse(body["authUrl"]).query)
    assert query["client_id"] == ["google-client"]
    assert query["redirect_uri"] == ["https://plaza.example/auth/google/callback"]
    assert query["response_type"] == ["code"]
    assert query["state"] == [body["state"]]
    assert len(body["state"]) >= 64


def test_authorization_url_for_unconfigured_provider_is_500_configuration_error():
    client, _calls, _services = _client(_settings(google_client_secret="", google_redirect_uri=""))

    response = client.get("/v1/auth/google/authorization-url")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "configuration_error"
    assert "GOOGLE_CLIENT_SECRET" in body["message"]
    assert "GOOGLE_REDIRECT_URI" in body["message"]


def test_authorization_url_rejects_malformed_relay_poll_id():
    client, _calls, _services = _client()

    response = client.get("/v1/auth/google/authorization-url", params={"relay_poll_id": "nope"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_poll_id"


def test_google_callback_creates_session():
    client, calls, _services = _client()

    body = _login_google(client)

    assert body["success"] is True
    assert len(body["sessionId"]) == 64
    assert body["user"]["username"] == "alice"
    assert body["user"]["platform"] == "google"
    assert body["user"]["isAdmin"] is False
    assert body["message"] == "Google authentication successful"
    assert calls == ["/token", "/oauth2/v2/userinfo"]


def test_replayed_callback_is_400_invalid_state_with_no_provider_call():
    client, calls, _services = _client()
    url = client.get("/v1/auth/google/authorization-url").json()
    client.post("/v1/auth/google/callback", json={"code": "c", "state": url["state"]})
    calls.clear()

    response = client.post("/v1/auth/google/callback", json={"code": "c", "state": url["state"]})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "invalid_state",
        "message": "Invalid or expired state.",
    }
    assert calls == []


def test_callback_without_code_is_400_missing_parameters():
    client, _calls, _services = _client()

    response = client.post("/v1/auth/google/callback", json={"state": generate_token()})

    assert response.status_code == 400
    assert response.json()["error"] == "missing_parameters"


def test_itch_get_callback_uses_access_token():
    client, _calls, _services = _client()
    url = client.get("/v1/auth/itch/authorization-url").json()

    response = client.get(
        "/v1/auth/itch/callback",
        params={"access_token": "itch-token", "state": url["state"]},
    )

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "pixel"


def test_verify_and_logout_round_trip():
    client, _calls, _services = _client()
    session_id = _login_google(client)["sessionId"]
    headers = {"Authorization": f"Bearer {session_id}"}

    verified = client.post("/v1/auth/session/verify", headers=headers)
    logout = client.delete("/v1/auth/session", headers=headers)
    logout_again = client.delete("/v1/auth/session", headers=headers)
    after = client.post("/v1/auth/session/verify", headers=headers)

    assert verified.status_code == 200
    assert verified.json()["valid"] is True
    assert verified.json()["user"]["username"] == "alice"
    assert logout.json()["success"] is True
    assert logout_again.status_code == 200
    assert after.status_code == 401
    assert after.json()["error"] == "invalid_token"


def test_verify_without_bearer_is_401():
    client, _calls, _services = _client()

    response = client.post("/v1/auth/session/verify")

    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


def test_verify_with_revalidation_confirms_itch_token():
    client, _calls, _services = _client()
    url = client.get("/v1/auth/itch/authorization-url").json()
    login = client.post(
        "/v1/auth/itch/callback",
        json={"access_token": "itch-token", "state": url["state"]},
    ).json()
    headers = {"Authorization": f"Bearer {login['sessionId']}"}

    response = client.post("/v1/auth/session/verify", params={"revalidate": "true"}, headers=headers)

    assert response.status_code == 200
    assert response.json()["user"]["platform"] == "itch"


def test_verify_with_revalidation_rejects_revoked_itch_token():
    client, _calls, _services = _client()
    url = client.get("/v1/auth/itch/authorization-url").json()
    login = client.post(
        "/v1/auth/itch/callback",
        json={"access_token": "revoked", "state": url["state"]},
    ).json()
    headers = {"Authorization": f"Bearer {login['sessionId']}"}

    plain = client.post("/v1/auth/session/verify", headers=headers)
    revalidated = client.post("/v1/auth/session/verify", params={"revalidate": "true"}, headers=headers)

    assert plain.status_code == 200
    assert revalidated.status_code == 401
    assert revalidated.json()["error"] == "invalid_token"


def test_verify_with_revalidation_keeps_session_during_provider_outage():
    client, _calls, _services = _client()
    url = client.get("/v1/auth/itch/authorization-url").json()
    login = client.post(
        "/v1/auth/itch/callback",
        json={"access_token": "outage", "state": url["state"]},
    ).json()
    headers = {"Authorization": f"Bearer {login['sessionId']}"}

    revalidated = client.post("/v1/auth/session/verify", params={"revalidate": "true"}, headers=headers)

    assert revalidated.status_code == 200
    assert revalidated.json()["valid"] is True
    assert revalidated.json()["user"]["username"] == "pixel"


def test_unusable_provider_answer_is_502_authentication_failed():
    client, _calls, _services = _client()
    url = client.get("/v1/auth/itch/authorization-url").json()

    response = client.post(
        "/v1/auth/itch/callback",
        json={"access_token": "nameless", "state": url["state"]},
    )

    assert response.status_code == 502
    assert response.json()["success"] is False
    assert response.json()["error"] == "authentication_failed"


def test_legacy_session_flow_uses_gateway_session_id():
    client, calls, _services = _client(_settings(legacy_session_client_id="app:1"))

    start = client.get("/v1/auth/legacy-session/authorization-url")
    body = start.json()
    response = client.post(
        "/v1/auth/legacy-session/callback",
        json={"session_id": body["sessionId"], "state": body["state"]},
    )

    assert start.status_code == 200
    assert set(body) == {"authUrl", "state", "expiresAt", "sessionId"}
    assert body["authUrl"] == "https://passport.example/gw-1"
    assert body["sessionId"] == "gw-1"
    assert response.status_code == 200
    assert response.json()["user"]["platform"] == "legacy-session"
    assert response.json()["user"]["username"] == "tom"
    assert calls == ["/gateway_v3.php", "/gateway_v3.php"]


def test_me_includes_character_summary():
    client, _calls, services = _client()
    body = _login_google(client)
    created = datetime(2024, 1, 2, tzinfo=timezone.utc)
    services.character_port._characters[body["user"]["id"]] = CharacterSummary(
        id="char-1",
        created_at=created,
        last_edited_at=None,
    )

    response = client.get("/v1/auth/session/me", headers={"Authorization": f"Bearer {body['sessionId']}"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["hasCharacter"] is True
    assert payload["character"]["id"] == "char-1"
    assert payload["user"]["id"] == body["user"]["id"]


def test_me_without_character():
    client, _calls, _services = _client()
    body = _login_google(client)

    payload = client.get(
        "/v1/auth/session/me",
        headers={"Authorization": f"Bearer {body['sessionId']}"},
    ).json()

    assert payload["hasCharacter"] is False
    assert payload["character"] is None


def test_relay_poll_flow_via_server_side_hand_off():
    client, _calls, _services = _client()
    poll = client.post("/v1/auth/relay/poll-id").json()
    poll_id = poll["pollId"]

    pending = client.get(f"/v1/auth/relay/poll/{poll_id}").json()
    url = client.get("/v1/auth/google/authorization-url", params={"relay_poll_id": poll_id}).json()
    login = client.post("/v1/auth/google/callback", json={"code": "c", "state": url["state"]}).json()
    completed = client.get(f"/v1/auth/relay/poll/{poll_id}").json()
    drained = client.get(f"/v1/auth/relay/poll/{poll_id}").json()

    assert pending["status"] == "pending"
    assert completed["status"] == "completed"
    assert completed["success"] is True
    assert completed["sessionId"] == login["sessionId"]
    assert completed["user"]["isAdmin"] is False
    assert drained["status"] == "pending"


def test_relay_store_endpoint_accepts_page_posted_results():
    client, _calls, _services = _client()
    poll_id = generate_token()

    stored = client.post(
        f"/v1/auth/relay/store/{poll_id}",
        json={"success": False, "error": "access_denied", "message": "User cancelled"},
    )
    polled = client.get(f"/v1/auth/relay/poll/{poll_id}").json()

    assert stored.status_code == 200
    assert stored.json()["success"] is True
    assert polled["status"] == "completed"
    assert polled["error"] == "access_denied"


def test_relay_rejects_bad_poll_id_and_bad_body():
    client, _calls, _services = _client()

    bad_id = client.get("/v1/auth/relay/poll/short")
    bad_body = client.post(f"/v1/auth/relay/store/{generate_token()}", json=["not", "an", "object"])

    assert bad_id.status_code == 400
    assert bad_id.json()["error"] == "invalid_poll_id"
    assert bad_body.status_code == 400
    assert bad_body.json()["error"] == "invalid_data"


def test_lifespan_starts_and_stops_background_tasks():
    _client_unused, _calls, services = _client()
    app = create_app(services=services)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert services.scheduler.running is True

    assert services.scheduler.running is False
