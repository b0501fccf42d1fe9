def _register(client, email="carol@example.com", password="long-enough", **extra):
    return client.post("/api/auth/register", json={"email": email, "password": password, **extra})


def test_register_returns_user_and_token(client):
    resp = _register(client, name="Carol")
    assert resp.status_code == 201
    data = resp.get_json()["data"]
    assert data["user"]["email"] == "carol@example.com"
    assert data["user"]["name"] == "Carol"
    assert data["user"]["apiToken"]
    assert "password_hash" not in data["user"]
    assert data["token"]


def test_register_validation(client):
    assert _register(client, email="not-an-email").status_code == 400
    assert _register(client, password="short").status_code == 400
    _register(client)
    duplicate = _register(client, email="Carol@Example.com")
    assert duplicate.status_code == 400
    assert duplicate.get_json()["error"] == "User already exists"


def test_login_and_bearer_token(client):
    _register(client)
    bad = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "wrong-password"})
    assert bad.status_code == 401

    resp = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "long-enough"})
    token = resp.get_json()["data"]["token"]
    me = client.get("/api/user/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["email"] == "carol@example.com"


def test_invalid_credentials_are_rejected(client):
    assert client.get("/api/user/me").status_code == 401
    assert client.get("/api/user/me", headers={"Authorization": "Bearer forged"}).status_code == 401
    assert client.get("/api/user/me", headers={"X-API-Token": "nope"}).status_code == 401


def test_regenerate_token_invalidates_previous_api_token(client):
    old_token = _register(client).get_json()["data"]["user"]["apiToken"]
    resp = client.post("/api/user/regenerate-token", headers={"X-API-Token": old_token})
    new_token = resp.get_json()["data"]["apiToken"]
    assert new_token and new_token != old_token

    assert client.get("/api/user/me", headers={"X-API-Token": old_token}).status_code == 401
    assert client.get("/api/user/me", headers={"X-API-Token": new_token}).status_code == 200


def test_unknown_route_returns_json_error(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_auth_routes_reject_non_object_body(client):
    assert client.post("/api/auth/register", json=["x"]).status_code == 400
    assert client.post("/api/auth/login", json="carol@example.com").status_code == 400
