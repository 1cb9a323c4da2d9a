from jose import jwt


def test_register_user(client):
    """Test user registration"""
    response = client.post("/api/auth/register", json={
        "first_name": "Alice",
        "last_name": "Doe",
        "email": "alice@example.com",
        "username": "alice",
        "password": "password123",
    })
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["user"]["username"] == "alice"
    assert data["user"]["is_admin"] is False
    assert data["user"]["is_active"] is True
    assert "password_hash" not in data["user"]
    assert data["token_type"] == "Bearer"
    assert data["expires_in"] == 24 * 3600


def test_token_claims(client, register, settings):
    user, headers = register("alice")
    token = headers["Authorization"].split(" ", 1)[1]
    claims = jwt.decode(token, settings.jwt_secret_key, algorithms=["HS256"])
    assert claims["sub"] == str(user["id"])
    assert claims["username"] == "alice"
    assert claims["is_admin"] is False
    assert claims["exp"] > claims["iat"]


def test_register_duplicate_email(client, register):
    register("alice")
    response = client.post("/api/auth/register", json={
        "first_name": "Other",
        "last_name": "Person",
        "email": "Alice@example.com",
        "username": "someoneelse",
        "password": "password123",
    })
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "email is already registered"


def test_register_email_race_reports_conflict(client, register, monkeypatch):
    """Emails differing only in case collide at the database too"""
    register("alice")
    monkeypatch.setattr("src.services.users._email_taken", lambda *args, **kwargs: False)

    response = client.post("/api/auth/register", json={
        "first_name": "Other",
        "last_name": "Person",
        "email": "Alice@example.com",
        "username": "alice2",
        "password": "password123",
    })
    assert response.status_code == 409
    assert response.json()["error"] == "email or username is already registered"


def test_register_duplicate_username(client, register):
    register("alice")
    response = client.post("/api/auth/register", json={
        "first_name": "Other",
        "last_name": "Person",
        "email": "other@example.com",
        "username": "alice",
        "password": "password123",
    })
    assert response.status_code == 409
    assert response.json()["error"] == "username is already taken"


def test_register_validation_errors(client):
    response = client.post("/api/auth/register", json={
        "first_name": "A",
        "last_name": "Doe",
        "email": "not-an-email",
        "username": "bad-name",
        "password": "short",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    fields = {detail["field"] for detail in body["details"]}
    assert {"first_name", "email", "username", "password"} <= fields


def test_login_with_username_or_email(client, register):
    register("alice")
    for identifier in ("alice", "alice@example.com"):
        response = client.post("/api/auth/login", json={
            "email_or_username": identifier,
            "password": "password123",
        })
        assert response.status_code == 200
        assert response.json()["data"]["user"]["username"] == "alice"


def test_login_invalid_credentials(client, register):
    register("alice")
    response = client.post("/api/auth/login", json={
        "email_or_username": "alice",
        "password": "wrong-password",
    })
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "invalid credentials"}

    response = client.post("/api/auth/login", json={
        "email_or_username": "nobody",
        "password": "password123",
    })
    assert response.status_code == 401


def test_profile_requires_auth(client):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["success"] is False

    response = client.get("/api/auth/profile", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_get_profile(client, author):
    user, headers = author
    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "alice@example.com"


def test_update_profile(client, author, other_user):
    _, headers = author
    response = client.put("/api/auth/profile", json={
        "bio": "Writes about   databases",
        "avatar": "https://example.com/a.png",
    }, headers=headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["bio"] == "Writes about databases"
    assert data["avatar"] == "https://example.com/a.png"
    assert data["username"] == "alice"

    response = client.put("/api/auth/profile", json={"username": "bob"}, headers=headers)
    assert response.status_code == 409

    response = client.put("/api/auth/profile", json={"avatar": "not a url"}, headers=headers)
    assert response.status_code == 400


def test_change_password(client, author):
    _, headers = author
    response = client.post("/api/auth/change-password", json={
        "current_password": "wrong-password",
        "new_password": "newpassword123",
    }, headers=headers)
    assert response.status_code == 401

    response = client.post("/api/auth/change-password", json={
        "current_password": "password123",
        "new_password": "newpassword123",
    }, headers=headers)
    assert response.status_code == 200

    response = client.post("/api/auth/login", json={
        "email_or_username": "alice",
        "password": "newpassword123",
    })
    assert response.status_code == 200


def test_refresh_token(client, author):
    _, headers = author
    token = headers["Authorization"].split(" ", 1)[1]
    response = client.post("/api/auth/refresh", json={"token": token})
    assert response.status_code == 200
    new_token = response.json()["data"]["token"]

    response = client.get("/api/auth/profile", headers={"Authorization": f"Bearer {new_token}"})
    assert response.status_code == 200

    response = client.post("/api/auth/refresh", json={"token": "garbage"})
    assert response.status_code == 401


def test_deactivated_user_is_locked_out(client, author, admin_headers):
    user, headers = author
    response = client.post(f"/api/admin/users/{user['id']}/deactivate", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False

    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 401

    response = client.post("/api/auth/login", json={
        "email_or_username": "alice",
        "password": "password123",
    })
    assert response.status_code == 401
    assert response.json()["error"] == "account is deactivated"

    client.post(f"/api/admin/users/{user['id']}/activate", headers=admin_headers)
    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 200
