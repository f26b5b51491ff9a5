"""
User endpoint tests: the caller's own profile, public profiles and the
admin-only user management routes.
"""
import pytest
from httpx import AsyncClient

NEW_USER = {"login": "created", "email": "created@example.com", "password": "password123"}


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_me_requires_authentication(async_client: AsyncClient):
    resp = await async_client.get("/api/users/me")
    assert resp.status_code == 401
    assert resp.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_get_me_includes_private_fields(async_client: AsyncClient, reader, headers):
    resp = await async_client.get("/api/users/me", headers=headers(reader))
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == reader.id
    assert data["email"] == "reader@example.com"
    assert data["email_confirmed"] is True
    assert data["role"] == "user"
    assert "password_hash" not in data


@pytest.mark.asyncio
async def test_update_me(async_client: AsyncClient, reader, headers):
    resp = await async_client.patch(
        "/api/users/me", json={"full_name": "Avid Reader"}, headers=headers(reader)
    )
    assert resp.status_code == 200
    assert resp.json()["full_name"] == "Avid Reader"

    resp = await async_client.patch("/api/users/me", json={}, headers=headers(reader))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_update_me_cannot_change_role(async_client: AsyncClient, reader, headers):
    resp = await async_client.patch(
        "/api/users/me", json={"full_name": "Sneaky", "role": "admin"}, headers=headers(reader)
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "user"


@pytest.mark.asyncio
async def test_change_own_password(async_client: AsyncClient, reader, headers):
    resp = await async_client.patch(
        "/api/users/me", json={"password": "another-pass"}, headers=headers(reader)
    )
    assert resp.status_code == 200

    resp = await async_client.post(
        "/api/auth/login", json={"identifier": "reader", "password": "another-pass"}
    )
    assert resp.status_code == 200


# ---------------------------------------------------------------------------
# Public profiles
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_public_profile_hides_private_fields(async_client: AsyncClient, reader):
    resp = await async_client.get(f"/api/users/{reader.id}")
    assert resp.status_code == 200
    data = resp.json()
    assert data["login"] == "reader"
    assert data["rating"] == 0
    assert "email" not in data


@pytest.mark.asyncio
async def test_unknown_user_returns_404(async_client: AsyncClient):
    resp = await async_client.get("/api/users/9999")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_admin_routes_reject_regular_users(async_client: AsyncClient, reader, headers):
    auth = headers(reader)
    assert (await async_client.get("/api/users", headers=auth)).status_code == 403
    assert (await async_client.post("/api/users", json=NEW_USER, headers=auth)).status_code == 403
    resp = await async_client.patch(
        f"/api/users/{reader.id}/role", json={"role": "admin"}, headers=auth
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_admin_creates_and_lists_users(async_client: AsyncClient, admin, reader, headers):
    resp = await async_client.post(
        "/api/users", json={**NEW_USER, "email_confirmed": True}, headers=headers(admin)
    )
    assert resp.status_code == 201
    assert resp.json()["email_confirmed"] is True

    resp = await async_client.get("/api/users", headers=headers(admin))
    assert resp.status_code == 200
    assert resp.json()["total"] == 3

    resp = await async_client.get("/api/users", params={"q": "CREATED"}, headers=headers(admin))
    assert [u["login"] for u in resp.json()["items"]] == ["created"]

    resp = await async_client.get("/api/users", params={"role": "admin"}, headers=headers(admin))
    assert [u["login"] for u in resp.json()["items"]] == ["admin"]


@pytest.mark.asyncio
async def test_duplicate_login_or_email_conflicts(async_client: AsyncClient, admin, reader, headers):
    resp = await async_client.post(
        "/api/users", json={**NEW_USER, "login": "reader"}, headers=headers(admin)
    )
    assert resp.status_code == 409

    resp = await async_client.patch(
        f"/api/users/{admin.id}", json={"email": "reader@example.com"}, headers=headers(admin)
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_admin_updates_user(async_client: AsyncClient, admin, reader, headers):
    resp = await async_client.patch(
        f"/api/users/{reader.id}",
        json={"full_name": "Renamed", "email_confirmed": False},
        headers=headers(admin),
    )
    assert resp.status_code == 200
    assert resp.json()["full_name"] == "Renamed"
    assert resp.json()["email_confirmed"] is False

    resp = await async_client.patch(
        f"/api/users/{reader.id}", json={"login": None}, headers=headers(admin)
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_role_change_takes_effect_immediately(async_client: AsyncClient, admin, reader, headers):
    reader_auth = headers(reader)
    assert (await async_client.get("/api/users", headers=reader_auth)).status_code == 403

    resp = await async_client.patch(
        f"/api/users/{reader.id}/role", json={"role": "admin"}, headers=headers(admin)
    )
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"

    # The token issued before the promotion now carries admin rights.
    assert (await async_client.get("/api/users", headers=reader_auth)).status_code == 200

    resp = await async_client.patch(
        f"/api/users/{reader.id}/role", json={"role": "superuser"}, headers=headers(admin)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_user_cascades_and_recomputes_ratings(
    async_client: AsyncClient, admin, author, reader, headers
):
    resp = await async_client.post(
        "/api/posts", json={"title": "t", "content": "c"}, headers=headers(author)
    )
    post_id = resp.json()["id"]
    await async_client.post(
        f"/api/posts/{post_id}/like", json={"type": "like"}, headers=headers(reader)
    )
    assert (await async_client.get(f"/api/users/{author.id}")).json()["rating"] == 1

    resp = await async_client.delete(f"/api/users/{reader.id}", headers=headers(admin))
    assert resp.status_code == 204

    assert (await async_client.get(f"/api/users/{reader.id}")).status_code == 404
    assert (await async_client.get(f"/api/users/{author.id}")).json()["rating"] == 0

    # A token of a deleted user no longer authenticates.
    assert (await async_client.get("/api/users/me", headers=headers(reader))).status_code == 401


@pytest.mark.asyncio
async def test_deleting_author_removes_their_posts(async_client: AsyncClient, admin, author, headers):
    resp = await async_client.post(
        "/api/posts", json={"title": "t", "content": "c"}, headers=headers(author)
    )
    post_id = resp.json()["id"]

    await async_client.delete(f"/api/users/{author.id}", headers=headers(admin))
    assert (await async_client.get(f"/api/posts/{post_id}")).status_code == 404
