"""Auth tests.

Learn: Tests cover:
1. Registration + duplicate prevention (including case variants)
2. Login → session token, uninformative failures
3. Protected /auth/me with real bearer tokens
4. Profile and password changes
5. Account deletion cascade and tokens for deleted accounts
"""

import pytest
from sqlalchemy import func, select

from conftest import bearer, register, unique_email
from strengths.db.models import Account, PersonalEntry


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_returns_token_and_account(client):
    email = unique_email("reg")
    data = await register(client, email, name="Alice")
    assert data["token"]
    assert data["account"]["email"] == email
    assert data["account"]["name"] == "Alice"
    assert data["account"]["id"].startswith("user_")
    assert "password_hash" not in data["account"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client, session_factory):
    email = unique_email("dup")
    await register(client, email)

    r = await client.post(
        "/auth/register",
        json={"email": email, "password": "other_password", "name": "Other"},
    )
    assert r.status_code == 400

    async with session_factory() as s:
        count = await s.scalar(select(func.count()).select_from(Account))
    assert count == 1


@pytest.mark.asyncio
async def test_register_duplicate_email_differing_in_case(client):
    await register(client, "Casey@Example.com")
    r = await client.post(
        "/auth/register",
        json={"email": "casey@example.com", "password": "password_123", "name": "Casey"},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_register_missing_fields_is_validation_error(client):
    r = await client.post("/auth/register", json={"email": unique_email()})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_register_blank_name_rejected(client):
    r = await client.post(
        "/auth/register",
        json={"email": unique_email(), "password": "password_123", "name": "   "},
    )
    assert r.status_code == 400


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_register_then_login_resolves_same_account(client):
    email = unique_email("login")
    registered = await register(client, email, password="my_password_123")

    r = await client.post(
        "/auth/login", json={"email": email, "password": "my_password_123"}
    )
    assert r.status_code == 200
    token = r.json()["token"]

    r = await client.get("/auth/me", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["id"] == registered["account"]["id"]


@pytest.mark.asyncio
async def test_login_is_case_insensitive_on_email(client):
    await register(client, "Mixed@Example.com", password="password_123")
    r = await client.post(
        "/auth/login", json={"email": "mixed@example.com", "password": "password_123"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client):
    email = unique_email("wrong")
    await register(client, email, password="correct_password")

    wrong_pw = await client.post(
        "/auth/login", json={"email": email, "password": "wrong_password"}
    )
    unknown = await client.post(
        "/auth/login", json={"email": "nobody@example.com", "password": "whatever"}
    )
    assert wrong_pw.status_code == unknown.status_code == 401
    assert wrong_pw.json() == unknown.json()


# ═══════════════════════════════════════════════════════════
# /auth/me
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_concrete_alice_flow(client):
    await register(client, "alice@example.com", password="pw123", name="Alice")
    r = await client.post(
        "/auth/login", json={"email": "alice@example.com", "password": "pw123"}
    )
    assert r.status_code == 200

    r = await client.get("/auth/me", headers=bearer(r.json()["token"]))
    assert r.status_code == 200
    me = r.json()
    assert me["email"] == "alice@example.com"
    assert me["name"] == "Alice"
    assert me["id"]


@pytest.mark.asyncio
async def test_me_without_token(client):
    r = await client.get("/auth/me")
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_me_with_invalid_token(client):
    r = await client.get("/auth/me", headers=bearer("invalid_token_here"))
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_update_display_name(client):
    data = await register(client, unique_email("profile"), name="Before")
    r = await client.patch(
        "/auth/me", json={"name": "After"}, headers=bearer(data["token"])
    )
    assert r.status_code == 200
    assert r.json()["name"] == "After"


@pytest.mark.asyncio
async def test_change_password_keeps_old_token_valid(client):
    email = unique_email("pw")
    data = await register(client, email, password="old_password")
    headers = bearer(data["token"])

    r = await client.put(
        "/auth/password",
        json={"current_password": "nope", "new_password": "new_password"},
        headers=headers,
    )
    assert r.status_code == 401

    r = await client.put(
        "/auth/password",
        json={"current_password": "old_password", "new_password": "new_password"},
        headers=headers,
    )
    assert r.status_code == 200

    r = await client.post("/auth/login", json={"email": email, "password": "old_password"})
    assert r.status_code == 401
    r = await client.post("/auth/login", json={"email": email, "password": "new_password"})
    assert r.status_code == 200

    # No revocation: the token issued before the change still works
    r = await client.get("/auth/me", headers=headers)
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# Account deletion
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete_account_cascades_entries(client, session_factory):
    data = await register(client, unique_email("del"))
    headers = bearer(data["token"])
    account_id = data["account"]["id"]

    other = await register(client, unique_email("keep"))
    await client.post("/entries/batch", json={"items": ["Kept"]}, headers=bearer(other["token"]))

    r = await client.post(
        "/entries/batch", json={"items": ["Research", "Writing"]}, headers=headers
    )
    assert r.status_code == 201

    r = await client.delete("/auth/delete-account", headers=headers)
    assert r.status_code == 200
    assert r.json()["entries_removed"] == 2

    async with session_factory() as s:
        assert await s.get(Account, account_id) is None
        mine = await s.scalar(
            select(func.count()).select_from(PersonalEntry).where(
                PersonalEntry.owner_id == account_id
            )
        )
        total = await s.scalar(select(func.count()).select_from(PersonalEntry))
    assert mine == 0
    assert total == 1


@pytest.mark.asyncio
async def test_token_for_deleted_account_is_rejected(client):
    data = await register(client, unique_email("gone"))
    headers = bearer(data["token"])

    r = await client.delete("/auth/delete-account", headers=headers)
    assert r.status_code == 200

    r = await client.get("/auth/me", headers=headers)
    assert r.status_code == 401
    assert "no longer exists" in r.json()["detail"]

    r = await client.get("/entries", headers=headers)
    assert r.status_code == 401
