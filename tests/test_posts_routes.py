"""
tests/test_posts_routes.py -- Integration tests for /api/v1/posts.

Coverage:
  - public reads: list (newest first, author filter, paging) and detail, 404
  - create: 401 without auth, 201 with the caller as author regardless of body
  - update/delete: owner 200/204, other user 403 with the post unchanged,
    absent post 404, unauthenticated 401 even for an absent post
"""

from __future__ import annotations

from fastapi.testclient import TestClient


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create(client: TestClient, token: str, title: str = "Hello", content: str = "First post") -> dict:
    resp = client.post("/api/v1/posts", json={"title": title, "content": content}, headers=_bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestReadPosts:
    def test_list_is_public_and_newest_first(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        first = _create(client, token, "first")
        second = _create(client, token, "second")
        resp = client.get("/api/v1/posts")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 2
        assert [p["id"] for p in data["posts"]] == [second["id"], first["id"]]

    def test_list_includes_author_summary_without_email(self, client: TestClient, register_user) -> None:
        user, token = register_user(username="ada")
        _create(client, token)
        post = client.get("/api/v1/posts").json()["posts"][0]
        assert post["author"] == {"id": user["id"], "name": "Ada Lovelace", "username": "ada"}

    def test_list_filters_by_author_and_pages(self, client: TestClient, register_user) -> None:
        ada, ada_token = register_user()
        _, bob_token = register_user(name="Bob", email="bob@example.com")
        for i in range(3):
            _create(client, ada_token, f"ada {i}")
        _create(client, bob_token, "bob 0")

        resp = client.get("/api/v1/posts", params={"author_id": ada["id"], "limit": 2, "offset": 0})
        data = resp.json()
        assert data["total"] == 3
        assert data["limit"] == 2
        assert [p["title"] for p in data["posts"]] == ["ada 2", "ada 1"]

    def test_list_limit_bounds(self, client: TestClient) -> None:
        assert client.get("/api/v1/posts", params={"limit": 0}).status_code == 400
        assert client.get("/api/v1/posts", params={"limit": 101}).status_code == 400

    def test_get_post(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        created = _create(client, token)
        resp = client.get(f"/api/v1/posts/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Hello"

    def test_get_missing_post(self, client: TestClient) -> None:
        resp = client.get("/api/v1/posts/999")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"


class TestCreatePost:
    def test_requires_authentication(self, client: TestClient) -> None:
        resp = client.post("/api/v1/posts", json={"title": "t", "content": "c"})
        assert resp.status_code == 401

    def test_author_is_caller(self, client: TestClient, register_user) -> None:
        user, token = register_user()
        resp = client.post(
            "/api/v1/posts",
            json={"title": "Mine", "content": "Body", "author_id": 12345},
            headers=_bearer(token),
        )
        assert resp.status_code == 201
        assert resp.json()["author_id"] == user["id"]

    def test_empty_title_rejected(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        resp = client.post("/api/v1/posts", json={"title": "", "content": "Body"}, headers=_bearer(token))
        assert resp.status_code == 400


class TestUpdatePost:
    def test_owner_can_update(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        post = _create(client, token)
        resp = client.put(
            f"/api/v1/posts/{post['id']}",
            json={"title": "Edited", "content": "New body"},
            headers=_bearer(token),
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Edited"
        assert client.get(f"/api/v1/posts/{post['id']}").json()["content"] == "New body"

    def test_non_owner_forbidden_and_post_unchanged(self, client: TestClient, register_user) -> None:
        _, ada_token = register_user()
        _, bob_token = register_user(name="Bob", email="bob@example.com")
        post = _create(client, ada_token)
        resp = client.put(
            f"/api/v1/posts/{post['id']}",
            json={"title": "Hijacked", "content": "x"},
            headers=_bearer(bob_token),
        )
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"
        assert client.get(f"/api/v1/posts/{post['id']}").json()["title"] == "Hello"

    def test_missing_post_is_404(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        resp = client.put("/api/v1/posts/999", json={"title": "t", "content": "c"}, headers=_bearer(token))
        assert resp.status_code == 404

    def test_unauthenticated_is_401_even_when_absent(self, client: TestClient) -> None:
        resp = client.put("/api/v1/posts/999", json={"title": "t", "content": "c"})
        assert resp.status_code == 401


class TestDeletePost:
    def test_owner_can_delete(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        post = _create(client, token)
        resp = client.delete(f"/api/v1/posts/{post['id']}", headers=_bearer(token))
        assert resp.status_code == 204
        assert client.get(f"/api/v1/posts/{post['id']}").status_code == 404

    def test_non_owner_forbidden(self, client: TestClient, register_user) -> None:
        _, ada_token = register_user()
        _, bob_token = register_user(name="Bob", email="bob@example.com")
        post = _create(client, ada_token)
        resp = client.delete(f"/api/v1/posts/{post['id']}", headers=_bearer(bob_token))
        assert resp.status_code == 403
        assert client.get(f"/api/v1/posts/{post['id']}").status_code == 200

    def test_missing_post_is_404(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        assert client.delete("/api/v1/posts/999", headers=_bearer(token)).status_code == 404

    def test_unauthenticated_is_401(self, client: TestClient, register_user) -> None:
        _, token = register_user()
        post = _create(client, token)
        assert client.delete(f"/api/v1/posts/{post['id']}").status_code == 401
