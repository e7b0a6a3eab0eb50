"""
Tests for the HTTP surface: routes, envelopes, statuses and headers.
"""

from fastapi.testclient import TestClient

from conftest import StaticConfigProvider
from globalauth.main import create_app

USERS = "/api/v1/users"


def signup(client, username="alice", password="pw", user_agent="Mozilla/5.0"):
    response = client.post(
        f"{USERS}/create",
        json={"username": username, "password": password},
        headers={"User-Agent": user_agent},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]["token"]


def test_signup_envelope(client):
    """Test signup returns the succeeded envelope."""
    response = client.post(f"{USERS}/create", json={"username": "alice", "password": "pw"})

    assert response.status_code == 200
    body = response.json()
    assert body["outcome"] == "succeeded"
    assert set(body["data"]) == {"username", "accountId", "token"}


def test_signup_taken(client):
    signup(client)

    response = client.post(f"{USERS}/create", json={"username": "alice", "password": "other"})

    assert response.status_code == 409
    assert response.json() == {
        "outcome": "failed",
        "data": {"message": "Username is taken! Please try another.", "error": "conflict"},
    }


def test_missing_fields(client):
    """Test absent fields and absent bodies are both 400."""
    response = client.post(f"{USERS}/create", json={"username": "alice"})
    assert response.status_code == 400
    assert response.json()["data"]["message"] == "Missing required body fields."

    response = client.post(f"{USERS}/login")
    assert response.status_code == 400
    assert response.json()["data"]["error"] == "invalid_input"


def test_login_statuses(client):
    signup(client)

    assert client.post(f"{USERS}/login", json={"username": "alice", "password": "pw"}).status_code == 200
    assert client.post(f"{USERS}/login", json={"username": "alice", "password": "x"}).status_code == 401
    assert client.post(f"{USERS}/login", json={"username": "ghost", "password": "pw"}).status_code == 404


def test_token_lifecycle(client):
    """Test issue, validate and revoke over HTTP."""
    token = signup(client)

    response = client.post(f"{USERS}/tokens", json={"username": "alice", "activeToken": token})
    assert response.status_code == 200
    extra = response.json()["data"]["token"]

    response = client.put(
        f"{USERS}/tokens",
        json={"username": "alice", "activeToken": token, "tokenToValidate": extra},
    )
    assert response.json()["data"] == {"valid": True}

    response = client.request(
        "DELETE",
        f"{USERS}/tokens",
        json={"username": "alice", "activeToken": token, "tokenToDelete": extra},
    )
    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Token revoked."

    response = client.put(
        f"{USERS}/tokens",
        json={"username": "alice", "activeToken": token, "tokenToValidate": extra},
    )
    assert response.json()["data"] == {"valid": False}


def test_invalid_token(client):
    signup(client)

    response = client.post(f"{USERS}/tokens", json={"username": "alice", "activeToken": "bogus"})

    assert response.status_code == 401
    assert response.json()["data"]["message"] == "Initial token is invalid."


def test_devices_use_user_agent(client):
    """Test the User-Agent header names the device."""
    token = signup(client, user_agent="Desktop/1.0")
    phone = client.post(
        f"{USERS}/login",
        json={"username": "alice", "password": "pw"},
        headers={"User-Agent": "Phone/2.0"},
    ).json()["data"]["token"]

    response = client.put(f"{USERS}/devices", json={"username": "alice", "activeToken": token})
    assert [d["name"] for d in response.json()["data"]["devices"]] == ["Desktop/1.0", "Phone/2.0"]

    response = client.request("DELETE", f"{USERS}/devices", json={"username": "alice", "activeToken": phone})
    assert response.status_code == 200
    assert response.json()["data"]["removed"]["name"] == "Phone/2.0"

    response = client.put(f"{USERS}/devices", json={"username": "alice", "activeToken": phone})
    assert response.status_code == 401


def test_profile_flow(client):
    """Test merge, prune, own read and public read."""
    token = signup(client)

    response = client.put(
        f"{USERS}/update",
        json={"username": "alice", "activeToken": token, "data": {"bio": "hi", "age": 30}},
    )
    assert response.json()["data"]["profileData"] == {"bio": "hi", "age": 30}

    response = client.request(
        "DELETE",
        f"{USERS}/update",
        json={"username": "alice", "activeToken": token, "data": ["age", "missing"]},
    )
    assert response.json()["data"]["profileData"] == {"bio": "hi"}

    response = client.put(f"{USERS}/getdata", json={"username": "alice", "activeToken": token})
    assert response.json()["data"] == {"profileData": {"bio": "hi"}}

    response = client.get(f"{USERS}/alice/profile")
    assert response.status_code == 200
    public = response.json()["data"]
    assert set(public) == {"accountId", "profileData"}
    assert token not in response.text

    assert client.get(f"{USERS}/ghost/profile").status_code == 404


def test_profile_wrong_shape(client):
    token = signup(client)

    response = client.put(
        f"{USERS}/update",
        json={"username": "alice", "activeToken": token, "data": ["not", "an", "object"]},
    )

    assert response.status_code == 400


def test_wrong_method(client):
    """Test a known path with the wrong method is 405 with the envelope."""
    response = client.post(f"{USERS}/getdata", json={})

    assert response.status_code == 405
    assert response.json() == {
        "outcome": "failed",
        "data": {"message": "Incorrect HTTP method header for this endpoint.", "error": "http_error"},
    }


def test_unknown_path(client):
    response = client.get("/api/v1/nothing")

    assert response.status_code == 404
    assert response.json()["data"]["message"] == "We couldn't find that."


def test_options_lists_methods(client):
    response = client.options(f"{USERS}/tokens")

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Methods"] == "POST,DELETE,PUT"


def test_request_timeout_header_bounds(client):
    response = client.post(
        f"{USERS}/create",
        json={"username": "alice", "password": "pw"},
        headers={"X-Request-Timeout": "0"},
    )

    assert response.status_code == 400


def test_default_headers(client):
    response = client.get("/healthz")

    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert "Strict-Transport-Security" in response.headers
    assert len(response.headers["X-Request-Record"]) == 24


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_admission_limit(orchestrator):
    """Test requests over the window limit get 429; health probes are exempt."""
    app = create_app(config_provider=StaticConfigProvider(rate_limit=1), orchestrator=orchestrator)

    with TestClient(app) as client:
        assert client.get(f"{USERS}/ghost/profile").status_code == 404

        response = client.get(f"{USERS}/ghost/profile")
        assert response.status_code == 429
        assert response.json()["data"]["error"] == "rate_limited"
        assert int(response.headers["Retry-After"]) >= 1

        assert client.get("/healthz").status_code == 200


def test_lifespan_builds_configured_store(tmp_path):
    """Test the app builds its own file-backed orchestrator when none is injected."""
    provider = StaticConfigProvider(backend="file", data_dir=str(tmp_path))
    app = create_app(config_provider=provider)

    with TestClient(app) as client:
        signup(client)

    assert (tmp_path / "user-alice.json").exists()
    assert app.state.orchestrator is None
