from src.models import Post, Tag, User
from src.seeder import run_seeder


def test_admin_seeded_on_startup(client, db):
    admin = db.query(User).filter(User.username == "admin").first()
    assert admin is not None
    assert admin.is_admin is True
    assert admin.password_hash != "adminpass123"


def test_default_tags_seeded_when_enabled(client_factory):
    client = client_factory(seed_default_tags=True)
    names = [tag["name"] for tag in client.get("/api/tags/all").json()["data"]]
    assert names == ["Lifestyle", "News", "Opinion", "Technology", "Tutorial"]


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json() == {"status": "healthy"}


def test_admin_routes_require_admin(client, author):
    _, headers = author
    for path in ("/api/admin/users", "/api/admin/users/stats", "/api/admin/posts", "/api/admin/dashboard/stats"):
        assert client.get(path, headers=headers).status_code == 403
        assert client.get(path).status_code == 401


def test_list_and_get_users(client, author, other_user, admin_headers):
    user, _ = author
    body = client.get("/api/admin/users?per_page=2", headers=admin_headers).json()
    assert body["pagination"] == {"page": 1, "per_page": 2, "total": 3, "total_pages": 2}
    assert [u["username"] for u in body["data"]] == ["admin", "alice"]

    data = client.get(f"/api/admin/users/{user['id']}", headers=admin_headers).json()["data"]
    assert data["email"] == "alice@example.com"
    assert client.get("/api/admin/users/999", headers=admin_headers).status_code == 404


def test_user_stats(client, author, other_user, admin_headers):
    user, _ = author
    client.post(f"/api/admin/users/{user['id']}/deactivate", headers=admin_headers)
    stats = client.get("/api/admin/users/stats", headers=admin_headers).json()["data"]
    assert stats == {
        "total_users": 3,
        "active_users": 2,
        "inactive_users": 1,
        "admin_users": 1,
        "regular_users": 2,
    }


def test_admin_post_management(client, author, admin_headers, create_post):
    _, headers = author
    post = create_post(headers, title="Draft For Admin")

    body = client.get("/api/admin/posts?status=draft", headers=admin_headers).json()
    assert [item["id"] for item in body["data"]] == [post["id"]]

    assert client.get(f"/api/admin/posts/{post['id']}", headers=admin_headers).status_code == 200

    response = client.post(f"/api/admin/posts/{post['id']}/publish", headers=admin_headers)
    assert response.json()["data"]["status"] == "published"
    response = client.post(f"/api/admin/posts/{post['id']}/unpublish", headers=admin_headers)
    assert response.json()["data"]["status"] == "draft"

    response = client.put(f"/api/admin/posts/{post['id']}", json={"title": "Admin Edited Title"}, headers=admin_headers)
    assert response.json()["data"]["slug"] == "admin-edited-title"

    assert client.delete(f"/api/admin/posts/{post['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/admin/posts/{post['id']}", headers=admin_headers).status_code == 404


def test_dashboard_stats(client, author, other_user, admin_headers, create_post, create_comment, create_tag):
    _, alice = author
    _, bob = other_user
    tag = create_tag("Python")
    create_tag("Rust")
    published = create_post(alice, title="Published Post", status="published", tag_ids=[tag["id"]])
    create_post(alice, title="Draft Post")
    comment = create_comment(bob, published["id"])
    create_comment(bob, published["id"], "Another one")
    client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)

    stats = client.get("/api/admin/dashboard/stats", headers=admin_headers).json()["data"]
    assert stats["users"] == {"total": 3, "active": 3, "inactive": 0}
    assert stats["posts"] == {"total": 2, "published": 1, "draft": 1, "archived": 0}
    assert stats["comments"] == {"total": 2, "pending": 1, "approved": 1, "rejected": 0}
    assert stats["tags"] == {"total": 2, "used": 1}


def test_seeder_loads_sample_data_once(client, app, db):
    session_factory = app.state.session_factory
    assert run_seeder(session_factory) is True
    assert db.query(Post).count() == 4
    assert db.query(User).count() == 4
    assert db.query(Tag).filter(Tag.name == "Python").count() == 1

    assert run_seeder(session_factory) is False
    assert db.query(Post).count() == 4

    assert run_seeder(session_factory, force=True) is True
    assert db.query(Post).count() == 8
    assert db.query(User).count() == 4
