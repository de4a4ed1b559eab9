from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.future import select

from main import app
from models.user import User
from services.session_token import verify_password
from conftest import DEFAULT_PASSWORD, bearer, create_user, login


REGISTER_FORM = {
    "fullName": "Alice Example",
    "email": "Alice@Example.com",
    "username": "Alice",
    "password": "alice-pass1",
}


@pytest.mark.asyncio
async def test_register_returns_public_fields_only(client, session_maker):
    response = await client.post("/api/v1/user/register", data=REGISTER_FORM)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["status"] == 201
    user = body["data"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["role"] == "user"
    assert user["watchHistory"] == []
    assert "password" not in user
    assert "refreshToken" not in user

    async with session_maker() as session:
        stored = (await session.execute(select(User).where(User.username == "alice"))).scalar_one()
    assert stored.password != "alice-pass1"
    assert verify_password("alice-pass1", stored.password)


@pytest.mark.asyncio
async def test_register_duplicate_is_conflict(client):
    assert (await client.post("/api/v1/user/register", data=REGISTER_FORM)).status_code == 201
    response = await client.post("/api/v1/user/register", data={**REGISTER_FORM, "email": "other@example.com"})
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"] == "User already exists."


@pytest.mark.asyncio
async def test_register_validates_input(client):
    missing = await client.post("/api/v1/user/register", data={**REGISTER_FORM, "fullName": "  "})
    assert missing.status_code == 400
    assert missing.json()["errors"] == [{"field": "fullName", "message": "is required"}]

    bad_email = await client.post("/api/v1/user/register", data={**REGISTER_FORM, "email": "not-an-email"})
    assert bad_email.status_code == 400
    assert bad_email.json()["message"] == "Invalid email."

    short = await client.post("/api/v1/user/register", data={**REGISTER_FORM, "password": "short"})
    assert short.status_code == 400


@pytest.mark.asyncio
async def test_register_with_images_uploads_both(client, media_store, upload_dir):
    files = {
        "avatar": ("me.png", b"avatar-bytes", "image/png"),
        "coverImage": ("cover.jpg", b"cover-bytes", "image/jpeg"),
    }
    response = await client.post("/api/v1/user/register", data=REGISTER_FORM, files=files)
    assert response.status_code == 201
    user = response.json()["data"]
    assert user["avatar"] in media_store.uploaded
    assert user["coverImage"] in media_store.uploaded
    assert list(upload_dir.iterdir()) == []


@pytest.mark.asyncio
async def test_register_conflict_from_database_rolls_back_images(client, media_store, session_maker):
    await create_user(session_maker, "alice")
    files = {"avatar": ("me.png", b"avatar-bytes", "image/png")}
    with patch("services.users._find_user", new=AsyncMock(return_value=None)):
        response = await client.post("/api/v1/user/register", data=REGISTER_FORM, files=files)
    assert response.status_code == 409
    assert media_store.removed == media_store.uploaded
    assert len(media_store.uploaded) == 1


@pytest.mark.asyncio
async def test_login_sets_http_only_cookies(client, session_maker):
    await create_user(session_maker, "bob")
    response = await client.post("/api/v1/user/login", json={"username": "BOB", "password": DEFAULT_PASSWORD})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["username"] == "bob"
    assert data["accessToken"] and data["refreshToken"]

    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") and "HttpOnly" in c and "Secure" in c for c in cookies)
    assert any(c.startswith("refreshToken=") and "samesite=strict" in c.lower() for c in cookies)


@pytest.mark.asyncio
async def test_login_rejects_bad_credentials(client, session_maker):
    await create_user(session_maker, "bob")
    wrong = await client.post("/api/v1/user/login", json={"username": "bob", "password": "wrong-pass1"})
    unknown = await client.post("/api/v1/user/login", json={"username": "nobody", "password": DEFAULT_PASSWORD})
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"]


@pytest.mark.asyncio
async def test_refresh_rotates_and_rejects_used_tokens(client, session_maker):
    await create_user(session_maker, "carol")
    tokens = await login(client, "carol")

    rotated = await client.post("/api/v1/user/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert rotated.status_code == 200
    client.cookies.clear()
    fresh = rotated.json()["data"]
    assert fresh["refreshToken"] != tokens["refreshToken"]

    replay = await client.post("/api/v1/user/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Refresh token is expired or used."

    profile = await client.get("/api/v1/user/get-user", headers=bearer(fresh))
    assert profile.status_code == 200


@pytest.mark.asyncio
async def test_refresh_reads_cookie(client, session_maker):
    await create_user(session_maker, "cookie")
    tokens = await login(client, "cookie")
    response = await client.post(
        "/api/v1/user/refresh-token",
        headers={"Cookie": f"refreshToken={tokens['refreshToken']}"},
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_refresh_after_logout_is_rejected(client, session_maker):
    await create_user(session_maker, "dave")
    tokens = await login(client, "dave")

    logout = await client.post("/api/v1/user/logout", headers=bearer(tokens))
    assert logout.status_code == 200
    assert any(c.startswith("accessToken=") for c in logout.headers.get_list("set-cookie"))
    client.cookies.clear()

    response = await client.post("/api/v1/user/refresh-token", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_protected_endpoints_require_token(client):
    response = await client.get("/api/v1/user/get-user")
    assert response.status_code == 401
    assert response.json()["success"] is False

    forged = await client.get("/api/v1/user/get-user", headers={"Authorization": "Bearer forged"})
    assert forged.status_code == 401


@pytest.mark.asyncio
async def test_update_details_and_password(client, session_maker):
    await create_user(session_maker, "erin")
    await create_user(session_maker, "frank")
    tokens = await login(client, "erin")

    empty = await client.put("/api/v1/user/update-user", json={}, headers=bearer(tokens))
    assert empty.status_code == 400

    taken = await client.put("/api/v1/user/update-user", json={"updatedEmail": "frank@example.com"}, headers=bearer(tokens))
    assert taken.status_code == 409

    updated = await client.put(
        "/api/v1/user/update-user",
        json={"updatedFullName": "Erin New", "updatedEmail": "erin.new@example.com"},
        headers=bearer(tokens),
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["fullName"] == "Erin New"
    assert updated.json()["data"]["email"] == "erin.new@example.com"

    same = await client.put(
        "/api/v1/user/update-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": DEFAULT_PASSWORD},
        headers=bearer(tokens),
    )
    assert same.status_code == 400

    wrong = await client.put(
        "/api/v1/user/update-password",
        json={"oldPassword": "not-my-pass", "newPassword": "brand-new-1"},
        headers=bearer(tokens),
    )
    assert wrong.status_code == 400

    changed = await client.put(
        "/api/v1/user/update-password",
        json={"oldPassword": DEFAULT_PASSWORD, "newPassword": "brand-new-1"},
        headers=bearer(tokens),
    )
    assert changed.status_code == 200
    await login(client, "erin", "brand-new-1")


@pytest.mark.asyncio
async def test_avatar_replace_removes_previous_asset(client, session_maker, media_store):
    await create_user(session_maker, "gina")
    tokens = await login(client, "gina")

    missing = await client.put("/api/v1/user/update-avatar", headers=bearer(tokens))
    assert missing.status_code == 400
    assert missing.json()["message"] == "Please provide an avatar picture."

    first = await client.put(
        "/api/v1/user/update-avatar",
        files={"updatedAvatar": ("one.png", b"one", "image/png")},
        headers=bearer(tokens),
    )
    first_url = first.json()["data"]["avatar"]
    second = await client.put(
        "/api/v1/user/update-avatar",
        files={"updatedAvatar": ("two.png", b"two", "image/png")},
        headers=bearer(tokens),
    )
    assert second.status_code == 200
    assert second.json()["data"]["avatar"] != first_url
    assert media_store.removed == [first_url]

    cover = await client.put(
        "/api/v1/user/update-cover-image",
        files={"updatedCoverImage": ("cover.gif", b"gif", "image/gif")},
        headers=bearer(tokens),
    )
    assert cover.status_code == 200
    assert cover.json()["data"]["coverImage"] in media_store.uploaded


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin_role(client, session_maker):
    await create_user(session_maker, "plain")
    await create_user(session_maker, "boss", role="admin")
    plain = await login(client, "plain")
    boss = await login(client, "boss")

    denied = await client.get("/api/v1/user/admin/all-users", headers=bearer(plain))
    assert denied.status_code == 403

    listed = await client.get("/api/v1/user/admin/all-users", headers=bearer(boss))
    assert listed.status_code == 200
    assert {u["username"] for u in listed.json()["data"]} == {"plain", "boss"}

    missing = await client.request("DELETE", "/api/v1/user/admin/delete-user", json={"target": "ghost"}, headers=bearer(boss))
    assert missing.status_code == 404

    deleted = await client.request("DELETE", "/api/v1/user/admin/delete-user", json={"target": "plain"}, headers=bearer(boss))
    assert deleted.status_code == 200
    data = deleted.json()["data"]
    assert data["deletedUser"]["username"] == "plain"
    assert [u["username"] for u in data["users"]] == ["boss"]


@pytest.mark.asyncio
async def test_rate_limit_rejects_excess_logins(client):
    app.state.disable_rate_limits = False
    with patch("routers.rate_limit._consume_redis_quota", new=AsyncMock(side_effect=ConnectionError("no redis"))):
        statuses = [
            (await client.post("/api/v1/user/login", json={"username": "nobody", "password": "whatever1"})).status_code
            for _ in range(31)
        ]
    assert statuses[:30] == [401] * 30
    assert statuses[30] == 429


@pytest.mark.asyncio
async def test_rate_limit_ignores_forwarded_for_header(client):
    app.state.disable_rate_limits = False
    with patch("routers.rate_limit._consume_redis_quota", new=AsyncMock(side_effect=ConnectionError("no redis"))):
        statuses = [
            (
                await client.post(
                    "/api/v1/user/login",
                    json={"username": "nobody", "password": "whatever1"},
                    headers={"X-Forwarded-For": f"10.0.0.{attempt}"},
                )
            ).status_code
            for attempt in range(40)
        ]
    assert statuses[:30] == [401] * 30
    assert set(statuses[30:]) == {429}


@pytest.mark.asyncio
async def test_login_unknown_user_still_checks_a_password_hash(client):
    with patch("services.users.verify_password", return_value=False) as verify:
        response = await client.post("/api/v1/user/login", json={"username": "ghost", "password": "whatever1"})
    assert response.status_code == 401
    verify.assert_called_once()
    assert verify.call_args.args[0] == "whatever1"
    assert verify.call_args.args[1].startswith("$2")


@pytest.mark.asyncio
async def test_failed_avatar_upload_keeps_previous_avatar(client, session_maker, media_store):
    await create_user(session_maker, "hank")
    tokens = await login(client, "hank")
    first = await client.put(
        "/api/v1/user/update-avatar",
        files={"updatedAvatar": ("one.png", b"one", "image/png")},
        headers=bearer(tokens),
    )
    previous = first.json()["data"]["avatar"]
    media_store.fail_transfer_at = 2

    response = await client.put(
        "/api/v1/user/update-avatar",
        files={"updatedAvatar": ("two.png", b"two", "image/png")},
        headers=bearer(tokens),
    )
    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert media_store.removed == []

    profile = await client.get("/api/v1/user/get-user", headers=bearer(tokens))
    assert profile.json()["data"]["avatar"] == previous
