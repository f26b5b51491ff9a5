"""
Post endpoint tests: CRUD, visibility, search, paging, locks and the
per-post category listing.
"""
import pytest
from httpx import AsyncClient


async def _create_post(client: AsyncClient, auth: dict, **overrides) -> dict:
    payload = {"title": "Hello", "content": "First post body"}
    payload.update(overrides)
    resp = await client.post("/api/posts", json=payload, headers=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _create_category(client: AsyncClient, auth: dict, title: str) -> int:
    resp = await client.post("/api/categories", json={"title": title}, headers=auth)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_requires_authentication(async_client: AsyncClient):
    resp = await async_client.post("/api/posts", json={"title": "t", "content": "c"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_and_get_post(async_client: AsyncClient, author, admin, headers):
    cat_id = await _create_category(async_client, headers(admin), "python")
    post = await _create_post(
        async_client, headers(author), title="Async tips", category_ids=[cat_id, cat_id]
    )

    assert post["author_id"] == author.id
    assert post["author"]["login"] == "author"
    assert post["status"] == "active"
    assert post["locked"] is False
    assert [c["id"] for c in post["categories"]] == [cat_id]
    assert post["likes_count"] == post["dislikes_count"] == post["comments_count"] == 0

    resp = await async_client.get(f"/api/posts/{post['id']}")
    assert resp.status_code == 200
    assert resp.json()["title"] == "Async tips"


@pytest.mark.asyncio
async def test_create_with_unknown_category_is_rejected(async_client: AsyncClient, author, headers):
    resp = await async_client.post(
        "/api/posts",
        json={"title": "t", "content": "c", "category_ids": [999]},
        headers=headers(author),
    )
    assert resp.status_code == 400
    assert "999" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_get_missing_post_returns_404(async_client: AsyncClient):
    resp = await async_client.get("/api/posts/9999")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_inactive_post_visible_only_to_author_and_admin(
    async_client: AsyncClient, author, reader, admin, headers
):
    post = await _create_post(async_client, headers(author), status="inactive")
    url = f"/api/posts/{post['id']}"

    assert (await async_client.get(url)).status_code == 404
    assert (await async_client.get(url, headers=headers(reader))).status_code == 404
    assert (await async_client.get(url, headers=headers(author))).status_code == 200
    assert (await async_client.get(url, headers=headers(admin))).status_code == 200


@pytest.mark.asyncio
async def test_listing_respects_visibility(async_client: AsyncClient, author, reader, admin, headers):
    await _create_post(async_client, headers(author), title="Public")
    await _create_post(async_client, headers(author), title="Hidden", status="inactive")

    anonymous = (await async_client.get("/api/posts")).json()
    assert [p["title"] for p in anonymous["items"]] == ["Public"]
    assert anonymous["total"] == 1

    own = (await async_client.get("/api/posts", headers=headers(author))).json()
    assert {p["title"] for p in own["items"]} == {"Public", "Hidden"}

    # The status filter is ignored for non-admins.
    resp = await async_client.get(
        "/api/posts", params={"status": "inactive"}, headers=headers(reader)
    )
    assert [p["title"] for p in resp.json()["items"]] == ["Public"]

    resp = await async_client.get(
        "/api/posts", params={"status": "inactive"}, headers=headers(admin)
    )
    assert [p["title"] for p in resp.json()["items"]] == ["Hidden"]


# ---------------------------------------------------------------------------
# Search, filters, paging
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_matches_title_and_content_case_insensitively(
    async_client: AsyncClient, author, headers
):
    await _create_post(async_client, headers(author), title="FastAPI routing", content="x")
    await _create_post(async_client, headers(author), title="Other", content="about fastapi")
    await _create_post(async_client, headers(author), title="Unrelated", content="nothing")

    resp = await async_client.get("/api/posts", params={"q": "FASTAPI"})
    assert resp.json()["total"] == 2


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(async_client: AsyncClient, author, headers):
    await _create_post(async_client, headers(author), title="100% coverage")
    await _create_post(async_client, headers(author), title="1000 tests")

    resp = await async_client.get("/api/posts", params={"q": "100%"})
    assert [p["title"] for p in resp.json()["items"]] == ["100% coverage"]


@pytest.mark.asyncio
async def test_filter_by_author_and_category(
    async_client: AsyncClient, author, reader, admin, headers
):
    cat_id = await _create_category(async_client, headers(admin), "databases")
    await _create_post(async_client, headers(author), title="Tagged", category_ids=[cat_id])
    await _create_post(async_client, headers(author), title="Untagged")
    await _create_post(async_client, headers(reader), title="By reader")

    resp = await async_client.get("/api/posts", params={"category_id": cat_id})
    assert [p["title"] for p in resp.json()["items"]] == ["Tagged"]

    resp = await async_client.get("/api/posts", params={"author_id": reader.id})
    assert [p["title"] for p in resp.json()["items"]] == ["By reader"]


@pytest.mark.asyncio
async def test_pagination_and_sorting(async_client: AsyncClient, author, headers):
    for title in ["b", "c", "a", "e", "d"]:
        await _create_post(async_client, headers(author), title=title)

    resp = await async_client.get(
        "/api/posts", params={"sort_by": "title", "order": "asc", "limit": 2, "offset": 1}
    )
    data = resp.json()
    assert data["total"] == 5
    assert data["limit"] == 2
    assert data["offset"] == 1
    assert [p["title"] for p in data["items"]] == ["b", "c"]


@pytest.mark.asyncio
async def test_oversized_limit_is_clamped(async_client: AsyncClient):
    resp = await async_client.get("/api/posts", params={"limit": 100000})
    assert resp.status_code == 200
    assert resp.json()["limit"] == 100


@pytest.mark.asyncio
async def test_invalid_paging_parameters_rejected(async_client: AsyncClient):
    assert (await async_client.get("/api/posts", params={"order": "sideways"})).status_code == 422
    assert (await async_client.get("/api/posts", params={"offset": -1})).status_code == 422
    assert (await async_client.get("/api/posts", params={"limit": 0})).status_code == 422


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_author_updates_own_post(async_client: AsyncClient, author, headers):
    post = await _create_post(async_client, headers(author))

    resp = await async_client.patch(
        f"/api/posts/{post['id']}",
        json={"title": "Edited", "status": "inactive"},
        headers=headers(author),
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Edited"
    assert resp.json()["status"] == "inactive"


@pytest.mark.asyncio
async def test_other_user_cannot_update_or_delete(async_client: AsyncClient, author, reader, headers):
    post = await _create_post(async_client, headers(author))
    url = f"/api/posts/{post['id']}"

    resp = await async_client.patch(url, json={"title": "Hijack"}, headers=headers(reader))
    assert resp.status_code == 403
    assert (await async_client.delete(url, headers=headers(reader))).status_code == 403


@pytest.mark.asyncio
async def test_null_title_is_rejected(async_client: AsyncClient, author, headers):
    post = await _create_post(async_client, headers(author))
    resp = await async_client.patch(
        f"/api/posts/{post['id']}", json={"title": None}, headers=headers(author)
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_admin_may_only_moderate_foreign_posts(async_client: AsyncClient, author, admin, headers):
    post = await _create_post(async_client, headers(author))
    url = f"/api/posts/{post['id']}"

    resp = await async_client.patch(url, json={"title": "Admin title"}, headers=headers(admin))
    assert resp.status_code == 400

    resp = await async_client.patch(
        url, json={"title": "Admin title", "status": "inactive"}, headers=headers(admin)
    )
    assert resp.status_code == 200
    assert resp.json()["title"] == "Hello"
    assert resp.json()["status"] == "inactive"


@pytest.mark.asyncio
async def test_delete_post(async_client: AsyncClient, author, headers):
    post = await _create_post(async_client, headers(author))
    url = f"/api/posts/{post['id']}"

    resp = await async_client.delete(url, headers=headers(author))
    assert resp.status_code == 204
    assert (await async_client.get(url)).status_code == 404
    assert (await async_client.delete(url, headers=headers(author))).status_code == 404


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_lock_is_admin_only(async_client: AsyncClient, author, headers):
    post = await _create_post(async_client, headers(author))
    resp = await async_client.patch(
        f"/api/posts/{post['id']}/lock", json={"locked": True}, headers=headers(author)
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_locked_post_freezes_author_edits(async_client: AsyncClient, author, admin, headers):
    post = await _create_post(async_client, headers(author))
    url = f"/api/posts/{post['id']}"

    resp = await async_client.patch(f"{url}/lock", json={"locked": True}, headers=headers(admin))
    assert resp.status_code == 200
    assert resp.json()["locked"] is True
    assert resp.json()["status"] == "active"

    resp = await async_client.patch(url, json={"title": "Too late"}, headers=headers(author))
    assert resp.status_code == 403
    assert (await async_client.delete(url, headers=headers(author))).status_code == 403

    resp = await async_client.patch(f"{url}/lock", json={"locked": False}, headers=headers(admin))
    assert resp.json()["locked"] is False
    resp = await async_client.patch(url, json={"title": "Now fine"}, headers=headers(author))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_lock_payload_must_be_boolean(async_client: AsyncClient, author, admin, headers):
    post = await _create_post(async_client, headers(author))
    resp = await async_client.patch(
        f"/api/posts/{post['id']}/lock", json={"locked": "yes"}, headers=headers(admin)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_lock_missing_post(async_client: AsyncClient, admin, headers):
    resp = await async_client.patch(
        "/api/posts/9999/lock", json={"locked": True}, headers=headers(admin)
    )
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Categories of a post
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_post_categories_listing(async_client: AsyncClient, author, admin, headers):
    first = await _create_category(async_client, headers(admin), "zeta")
    second = await _create_category(async_client, headers(admin), "alpha")
    post = await _create_post(async_client, headers(author), category_ids=[first, second])

    resp = await async_client.get(f"/api/posts/{post['id']}/categories")
    assert resp.status_code == 200
    assert [c["title"] for c in resp.json()] == ["alpha", "zeta"]

    resp = await async_client.patch(
        f"/api/posts/{post['id']}", json={"category_ids": [first]}, headers=headers(author)
    )
    assert [c["title"] for c in resp.json()["categories"]] == ["zeta"]
