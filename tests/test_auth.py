from conftest import PASSWORD, TEST_SECRET, auth_headers, register_user

from minibook.core.security import JWTManager


def test_register_returns_token_and_public_user(client):
    response = client.post(
        "/api/register",
        json={
            "username": "alice",
            "email": "alice@example.com",
            "password": PASSWORD,
            "full_name": "Alice Liddell",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["username"] == "alice"
    assert body["user"]["full_name"] == "Alice Liddell"
    assert "password" not in response.text
    assert "hashed_password" not in body["user"]


def test_duplicate_username_rejected_and_first_token_still_valid(client):
    token, user = register_user(client, "alice")

    response = client.post(
        "/api/register",
        json={
            "username": "alice",
            "email": "other@example.com",
            "password": PASSWORD,
            "full_name": "Other",
        },
    )
    assert response.status_code == 400
    assert response.json()["success"] is False

    me = client.get("/api/me", headers=auth_headers(token))
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user["id"]


def test_duplicate_email_rejected(client):
    register_user(client, "alice", email="shared@example.com")
    response = client.post(
        "/api/register",
        json={
            "username": "bob",
            "email": "shared@example.com",
            "password": PASSWORD,
            "full_name": "Bob",
        },
    )
    assert response.status_code == 400


def test_register_validation_errors(client):
    response = client.post(
        "/api/register",
        json={
            "username": "a",
            "email": "not-an-email",
            "password": "123",
            "full_name": "A",
        },
    )
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Validation error"
    assert "username" in body["message"]


def test_register_rejects_password_over_bcrypt_limit(client):
    response = client.post(
        "/api/register",
        json={
            "username": "alice",
            "email": "alice@example.com",
            "password": "x" * 73,
            "full_name": "Alice",
        },
    )
    assert response.status_code == 400


def test_login_with_username_or_email(client):
    register_user(client, "alice")

    by_name = client.post(
        "/api/login", json={"username": "alice", "password": PASSWORD}
    )
    by_email = client.post(
        "/api/login", json={"username": "alice@example.com", "password": PASSWORD}
    )

    for response in (by_name, by_email):
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert client.get("/api/me", headers=auth_headers(body["token"])).status_code == 200


def test_email_is_case_insensitive(client):
    _, user = register_user(client, "carol", email="Carol@Example.COM")
    assert user["email"] == "carol@example.com"

    for identifier in ("Carol@Example.COM", "carol@example.com", " CAROL@EXAMPLE.COM "):
        response = client.post(
            "/api/login", json={"username": identifier, "password": PASSWORD}
        )
        assert response.status_code == 200, identifier
        assert response.json()["user"]["username"] == "carol"

    duplicate = client.post(
        "/api/register",
        json={
            "username": "carol2",
            "email": "carol@example.com",
            "password": PASSWORD,
            "full_name": "Carol Again",
        },
    )
    assert duplicate.status_code == 400


def test_login_failures_are_indistinguishable(client):
    register_user(client, "alice")

    wrong_password = client.post(
        "/api/login", json={"username": "alice", "password": "wrong-password"}
    )
    unknown_user = client.post(
        "/api/login", json={"username": "nobody", "password": "wrong-password"}
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json()


def test_me_requires_token(client):
    response = client.get("/api/me")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_me_rejects_non_bearer_scheme(client):
    token, _ = register_user(client, "alice")

    response = client.get("/api/me", headers={"Authorization": f"Basic {token}"})
    assert response.status_code == 401


def test_me_rejects_invalid_token(client):
    response = client.get("/api/me", headers=auth_headers("garbage.token.value"))
    assert response.status_code == 403


def test_me_rejects_expired_token(client, settings):
    _, user = register_user(client, "alice")
    expired = JWTManager(
        TEST_SECRET, expire_hours=-1, issuer=settings.jwt_issuer
    ).issue(user)

    response = client.get("/api/me", headers=auth_headers(expired))
    assert response.status_code == 403
    assert response.json()["error"] == "Token expired"
