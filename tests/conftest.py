import pytest
from fastapi.testclient import TestClient

from src.config import Settings
from src.main import create_app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "adminpass123"


def make_settings(**overrides):
    values = dict(
        jwt_secret_key="test-secret-key",
        database_url="sqlite://",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        seed_default_tags=False,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    """Create test client (runs startup: tables + admin seed)"""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client_factory():
    """Build extra clients with overridden settings"""
    clients = []

    def _factory(**overrides):
        client = TestClient(create_app(make_settings(**overrides)))
        client.__enter__()
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def db(client, app):
    """Session on the same in-memory database the client uses"""
    session = app.state.session_factory()
    yield session
    session.close()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register a user and return (user, headers)"""
    def _register(username, password="password123", **fields):
        payload = {
            "first_name": "Test",
            "last_name": "User",
            "email": f"{username}@example.com",
            "username": username,
            "password": password,
        }
        payload.update(fields)
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], bearer(data["token"])
    return _register


@pytest.fixture
def author(register):
    return register("alice")


@pytest.fixture
def other_user(register):
    return register("bob")


@pytest.fixture
def admin_headers(client):
    response = client.post("/api/auth/login", json={
        "email_or_username": ADMIN_EMAIL,
        "password": ADMIN_PASSWORD,
    })
    assert response.status_code == 200, response.text
    return bearer(response.json()["data"]["token"])


@pytest.fixture
def create_post(client):
    """Create a post as the given user and return its data"""
    def _create_post(headers, title="Hello World", content="Some post content here.", **fields):
        payload = {"title": title, "content": content}
        payload.update(fields)
        response = client.post("/api/posts", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create_post


@pytest.fixture
def create_tag(client, admin_headers):
    def _create_tag(name, **fields):
        payload = {"name": name}
        payload.update(fields)
        response = client.post("/api/admin/tags", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create_tag


@pytest.fixture
def create_comment(client):
    def _create_comment(headers, post_id, content="Nice post!", parent_id=None):
        payload = {"post_id": post_id, "content": content}
        if parent_id is not None:
            payload["parent_id"] = parent_id
        response = client.post("/api/comments", json=payload, headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]
    return _create_comment
