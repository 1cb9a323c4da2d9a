import pytest
from sqlalchemy.exc import IntegrityError

from src.models import Comment


@pytest.fixture
def post(author, create_post):
    _, headers = author
    return create_post(headers, status="published")


def test_comment_created_pending(client, other_user, post, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"], "  Great   read!  ")
    assert comment["status"] == "pending"
    assert comment["content"] == "Great read!"
    assert comment["author"]["username"] == "bob"
    assert comment["replies"] == []


def test_admin_comment_is_also_pending(client, admin_headers, post, create_comment):
    comment = create_comment(admin_headers, post["id"])
    assert comment["status"] == "pending"


def test_comment_validation(client, other_user, post):
    _, bob = other_user
    response = client.post("/api/comments", json={"post_id": post["id"], "content": "   "}, headers=bob)
    assert response.status_code == 400

    response = client.post("/api/comments", json={"post_id": post["id"], "content": "x" * 1001}, headers=bob)
    assert response.status_code == 400

    response = client.post("/api/comments", json={"post_id": post["id"], "content": "Hi"})
    assert response.status_code == 401


def test_comment_on_missing_post_or_parent(client, other_user, post):
    _, bob = other_user
    response = client.post("/api/comments", json={"post_id": 999, "content": "Hello"}, headers=bob)
    assert response.status_code == 404
    assert response.json()["error"] == "post not found"

    response = client.post("/api/comments", json={
        "post_id": post["id"],
        "content": "Hello",
        "parent_id": 999,
    }, headers=bob)
    assert response.status_code == 404
    assert response.json()["error"] == "parent comment not found"


def test_reply_must_be_on_same_post(client, author, other_user, post, create_post, create_comment):
    _, alice = author
    _, bob = other_user
    other_post = create_post(alice, title="Another Post", status="published")
    comment = create_comment(bob, post["id"])

    response = client.post("/api/comments", json={
        "post_id": other_post["id"],
        "content": "Wrong thread",
        "parent_id": comment["id"],
    }, headers=bob)
    assert response.status_code == 400


def test_comment_cannot_be_its_own_parent(client, other_user, post, db, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"])
    row = db.get(Comment, comment["id"])
    row.parent_id = row.id
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_non_admin_edit_resets_to_pending(client, other_user, admin_headers, post, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"])
    client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)

    response = client.put(f"/api/comments/{comment['id']}", json={
        "content": "Edited text",
        "status": "approved",
    }, headers=bob)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["content"] == "Edited text"
    assert data["status"] == "pending"


def test_admin_edit_keeps_status_and_can_set_it(client, other_user, admin_headers, post, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"])
    client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)

    response = client.put(f"/api/comments/{comment['id']}", json={"content": "Fixed a typo"}, headers=admin_headers)
    assert response.json()["data"]["status"] == "approved"

    response = client.put(f"/api/comments/{comment['id']}", json={"status": "rejected"}, headers=admin_headers)
    assert response.json()["data"]["status"] == "rejected"


def test_comment_ownership(client, author, other_user, post, create_comment):
    _, alice = author
    _, bob = other_user
    comment = create_comment(bob, post["id"])

    response = client.put(f"/api/comments/{comment['id']}", json={"content": "Hijacked"}, headers=alice)
    assert response.status_code == 403
    assert response.json()["error"] == "you can only update your own comments"
    assert client.delete(f"/api/comments/{comment['id']}", headers=alice).status_code == 403


def test_delete_comment_removes_reply_tree(client, author, other_user, post, create_comment):
    _, alice = author
    _, bob = other_user
    root = create_comment(bob, post["id"], "Root")
    reply = create_comment(alice, post["id"], "Reply", parent_id=root["id"])
    nested = create_comment(bob, post["id"], "Nested reply", parent_id=reply["id"])
    sibling = create_comment(alice, post["id"], "Unrelated")

    response = client.delete(f"/api/comments/{root['id']}", headers=bob)
    assert response.status_code == 200

    for removed in (root, reply, nested):
        assert client.get(f"/api/comments/{removed['id']}").status_code == 404
    assert client.get(f"/api/comments/{sibling['id']}", headers=alice).status_code == 200


def test_admin_can_delete_any_comment(client, other_user, admin_headers, post, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"])
    assert client.delete(f"/api/comments/{comment['id']}", headers=admin_headers).status_code == 200


def test_post_comments_tree(client, author, other_user, admin_headers, post, create_comment):
    _, alice = author
    _, bob = other_user
    first = create_comment(bob, post["id"], "First")
    second = create_comment(alice, post["id"], "Second")
    reply = create_comment(alice, post["id"], "Reply to first", parent_id=first["id"])
    nested = create_comment(bob, post["id"], "Nested", parent_id=reply["id"])
    hidden_reply = create_comment(bob, post["id"], "Hidden reply", parent_id=first["id"])
    pending = create_comment(bob, post["id"], "Still pending")

    for comment in (first, second, reply, nested):
        client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)
    client.post(f"/api/admin/comments/{hidden_reply['id']}/reject", headers=admin_headers)

    body = client.get(f"/api/comments/post/{post['id']}").json()
    assert body["pagination"]["total"] == 2
    assert [c["id"] for c in body["data"]] == [second["id"], first["id"]]

    first_view = body["data"][1]
    assert [c["id"] for c in first_view["replies"]] == [reply["id"]]
    assert [c["id"] for c in first_view["replies"][0]["replies"]] == [nested["id"]]
    assert pending["id"] not in [c["id"] for c in body["data"]]


def test_post_comments_missing_post(client):
    assert client.get("/api/comments/post/999").status_code == 404


def test_my_comments(client, author, other_user, post, create_comment):
    _, alice = author
    _, bob = other_user
    create_comment(bob, post["id"], "Mine")
    create_comment(alice, post["id"], "Not mine")

    body = client.get("/api/comments/my-comments", headers=bob).json()
    assert [c["content"] for c in body["data"]] == ["Mine"]
    assert body["data"][0]["status"] == "pending"
    assert client.get("/api/comments/my-comments").status_code == 401


def test_moderation_queue(client, other_user, admin_headers, post, create_comment):
    _, bob = other_user
    first = create_comment(bob, post["id"], "One")
    second = create_comment(bob, post["id"], "Two")

    body = client.get("/api/admin/comments/pending", headers=admin_headers).json()
    assert [c["id"] for c in body["data"]] == [first["id"], second["id"]]
    count = client.get("/api/admin/comments/pending/count", headers=admin_headers).json()
    assert count["data"] == {"count": 2}

    response = client.post(f"/api/admin/comments/{first['id']}/approve", headers=admin_headers)
    assert response.json()["data"]["status"] == "approved"
    response = client.post(f"/api/admin/comments/{second['id']}/reject", headers=admin_headers)
    assert response.json()["data"]["status"] == "rejected"

    count = client.get("/api/admin/comments/pending/count", headers=admin_headers).json()
    assert count["data"] == {"count": 0}

    assert client.post("/api/admin/comments/999/approve", headers=admin_headers).status_code == 404


def test_moderation_requires_admin(client, other_user, post, create_comment):
    _, bob = other_user
    comment = create_comment(bob, post["id"])
    assert client.get("/api/admin/comments/pending", headers=bob).status_code == 403
    assert client.post(f"/api/admin/comments/{comment['id']}/approve", headers=bob).status_code == 403


def test_unmoderated_comment_hidden_from_public(client, author, other_user, admin_headers, post, register, create_comment):
    """Only the comment's author and admins can read it before approval"""
    _, bob = other_user
    _, carol = register("carol")
    comment = create_comment(bob, post["id"], "Awaiting review")
    url = f"/api/comments/{comment['id']}"

    response = client.get(url)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "comment not found"}
    assert client.get(url, headers=carol).status_code == 404
    assert client.get(url, headers=bob).status_code == 200
    assert client.get(url, headers=admin_headers).status_code == 200

    client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)
    assert client.get(url).status_code == 200

    client.post(f"/api/admin/comments/{comment['id']}/reject", headers=admin_headers)
    assert client.get(url).status_code == 404
    assert client.get(url, headers=bob).json()["data"]["status"] == "rejected"


def test_comments_of_draft_post_hidden(client, author, other_user, admin_headers, create_post, create_comment):
    _, alice = author
    _, bob = other_user
    draft = create_post(alice, title="Work In Progress")
    comment = create_comment(bob, draft["id"], "Early feedback")
    client.post(f"/api/admin/comments/{comment['id']}/approve", headers=admin_headers)

    assert client.get(f"/api/comments/post/{draft['id']}").status_code == 404
    assert client.get(f"/api/comments/post/{draft['id']}", headers=bob).status_code == 404
    assert client.get(f"/api/comments/{comment['id']}").status_code == 404

    body = client.get(f"/api/comments/post/{draft['id']}", headers=alice).json()
    assert [c["id"] for c in body["data"]] == [comment["id"]]
    assert client.get(f"/api/comments/{comment['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/comments/{comment['id']}", headers=bob).status_code == 200
