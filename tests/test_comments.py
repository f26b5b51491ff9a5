"""
Comment endpoint tests: creation through both routes, listing under a
post, status-only updates, deletion and admin locks.

Comment content is write-once, so every mutation after creation goes
through ``status`` or ``locked``.
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _create_post(client: AsyncClient, auth: dict, **overrides) -> int:
    payload = {"title": "Discussion", "content": "Let's talk"}
    payload.update(overrides)
    resp = await client.post("/api/posts", json=payload, headers=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


async def _comment(client: AsyncClient, auth: dict, post_id: int, content: str = "Nice post") -> dict:
    resp = await client.post(
        f"/api/posts/{post_id}/comments", json={"content": content}, headers=auth
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_comment_under_post(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)

    assert comment["post_id"] == post_id
    assert comment["author_id"] == reader.id
    assert comment["author"]["login"] == "reader"
    assert comment["status"] == "active"
    assert comment["locked"] is False

    post = (await async_client.get(f"/api/posts/{post_id}")).json()
    assert post["comments_count"] == 1


@pytest.mark.asyncio
async def test_add_comment_with_post_id_in_body(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    resp = await async_client.post(
        "/api/comments", json={"post_id": post_id, "content": "Body route"}, headers=headers(reader)
    )
    assert resp.status_code == 201
    assert resp.json()["post_id"] == post_id


@pytest.mark.asyncio
async def test_comment_requires_authentication(async_client: AsyncClient, author, headers):
    post_id = await _create_post(async_client, headers(author))
    resp = await async_client.post(f"/api/posts/{post_id}/comments", json={"content": "hi"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_comment_validation(async_client: AsyncClient, author, headers):
    post_id = await _create_post(async_client, headers(author))

    resp = await async_client.post(
        f"/api/posts/{post_id}/comments", json={"content": ""}, headers=headers(author)
    )
    assert resp.status_code == 422

    resp = await async_client.post(
        f"/api/posts/{post_id}/comments", json={"content": "x" * 5001}, headers=headers(author)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_comment_on_missing_post(async_client: AsyncClient, reader, headers):
    resp = await async_client.post(
        "/api/posts/9999/comments", json={"content": "hello?"}, headers=headers(reader)
    )
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_comment_on_inactive_post_rejected(async_client: AsyncClient, author, headers):
    post_id = await _create_post(async_client, headers(author), status="inactive")
    resp = await async_client.post(
        f"/api/posts/{post_id}/comments", json={"content": "hello"}, headers=headers(author)
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_locked_post_accepts_comments_from_admins_only(
    async_client: AsyncClient, author, reader, admin, headers
):
    post_id = await _create_post(async_client, headers(author))
    await async_client.patch(
        f"/api/posts/{post_id}/lock", json={"locked": True}, headers=headers(admin)
    )

    resp = await async_client.post(
        f"/api/posts/{post_id}/comments", json={"content": "late"}, headers=headers(reader)
    )
    assert resp.status_code == 403
    await _comment(async_client, headers(admin), post_id, "Locked for cleanup")


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_comments_newest_first(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    first = await _comment(async_client, headers(reader), post_id, "first")
    second = await _comment(async_client, headers(author), post_id, "second")

    resp = await async_client.get(f"/api/posts/{post_id}/comments")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    assert [c["id"] for c in data["items"]] == [second["id"], first["id"]]

    resp = await async_client.get(
        f"/api/posts/{post_id}/comments", params={"sort_by": "id", "order": "asc", "limit": 1}
    )
    assert [c["content"] for c in resp.json()["items"]] == ["first"]


@pytest.mark.asyncio
async def test_inactive_comment_hidden_from_others(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)
    await async_client.patch(
        f"/api/comments/{comment['id']}", json={"status": "inactive"}, headers=headers(reader)
    )

    assert (await async_client.get(f"/api/comments/{comment['id']}")).status_code == 404
    resp = await async_client.get(f"/api/comments/{comment['id']}", headers=headers(reader))
    assert resp.status_code == 200

    listing = (await async_client.get(f"/api/posts/{post_id}/comments")).json()
    assert listing["total"] == 0
    assert (await async_client.get(f"/api/posts/{post_id}")).json()["comments_count"] == 0


@pytest.mark.asyncio
async def test_comments_of_inactive_post_still_listed(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    await _comment(async_client, headers(reader), post_id)
    await async_client.patch(
        f"/api/posts/{post_id}", json={"status": "inactive"}, headers=headers(author)
    )

    for auth in ({}, headers(reader)):
        resp = await async_client.get(f"/api/posts/{post_id}/comments", headers=auth)
        assert resp.status_code == 200
        assert resp.json()["total"] == 1

    assert (await async_client.get("/api/posts/9999/comments")).status_code == 404


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_comment_content_is_immutable(async_client: AsyncClient, author, headers):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(author), post_id)

    resp = await async_client.patch(
        f"/api/comments/{comment['id']}", json={"content": "rewritten"}, headers=headers(author)
    )
    assert resp.status_code == 403

    resp = await async_client.patch(
        "/api/comments/9999", json={"content": "rewritten"}, headers=headers(author)
    )
    assert resp.status_code == 404

    resp = await async_client.patch(
        f"/api/comments/{comment['id']}", json={}, headers=headers(author)
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_only_author_or_admin_changes_status(
    async_client: AsyncClient, author, reader, admin, headers
):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)
    url = f"/api/comments/{comment['id']}"

    resp = await async_client.patch(url, json={"status": "inactive"}, headers=headers(author))
    assert resp.status_code == 403

    resp = await async_client.patch(url, json={"status": "inactive"}, headers=headers(admin))
    assert resp.status_code == 200
    assert resp.json()["status"] == "inactive"


@pytest.mark.asyncio
async def test_delete_comment(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)
    url = f"/api/comments/{comment['id']}"

    assert (await async_client.delete(url, headers=headers(author))).status_code == 403
    assert (await async_client.delete(url, headers=headers(reader))).status_code == 204
    assert (await async_client.get(url)).status_code == 404


@pytest.mark.asyncio
async def test_comments_cascade_with_post(async_client: AsyncClient, author, reader, headers):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)

    await async_client.delete(f"/api/posts/{post_id}", headers=headers(author))
    assert (await async_client.get(f"/api/comments/{comment['id']}")).status_code == 404


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_locked_comment_frozen_for_its_author(
    async_client: AsyncClient, author, reader, admin, headers
):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)
    url = f"/api/comments/{comment['id']}"

    resp = await async_client.patch(f"{url}/lock", json={"locked": True}, headers=headers(reader))
    assert resp.status_code == 403

    resp = await async_client.patch(f"{url}/lock", json={"locked": True}, headers=headers(admin))
    assert resp.status_code == 200
    assert resp.json()["locked"] is True

    assert (await async_client.patch(url, json={"status": "inactive"}, headers=headers(reader))).status_code == 403
    assert (await async_client.delete(url, headers=headers(reader))).status_code == 403

    # Admins are never held back by a lock.
    assert (await async_client.delete(url, headers=headers(admin))).status_code == 204


@pytest.mark.asyncio
async def test_post_lock_freezes_its_comments(
    async_client: AsyncClient, author, reader, admin, headers
):
    post_id = await _create_post(async_client, headers(author))
    comment = await _comment(async_client, headers(reader), post_id)
    await async_client.patch(
        f"/api/posts/{post_id}/lock", json={"locked": True}, headers=headers(admin)
    )

    resp = await async_client.delete(f"/api/comments/{comment['id']}", headers=headers(reader))
    assert resp.status_code == 403
