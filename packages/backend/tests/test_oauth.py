"""Google sign-in tests.

Learn: The provider is faked with httpx.MockTransport, installed by
overriding the get_oauth_client dependency. Each test configures what
the token and userinfo endpoints return.
"""

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import bearer, register
from strengths.db.models import Account
from strengths.main import app
from strengths.services.oauth_service import (
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleOAuthClient,
    get_oauth_client,
)

PROFILE = {
    "id": "google-123",
    "email": "gina@example.com",
    "name": "Gina",
    "picture": "https://example.com/gina.png",
}


def install_provider(token_response=None, profile_response=None, seen=None):
    token_response = token_response or httpx.Response(200, json={"access_token": "ya29.fake"})
    profile_response = profile_response or httpx.Response(200, json=PROFILE)

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        url = str(request.url).split("?")[0]
        if url == GOOGLE_TOKEN_URL:
            return token_response
        if url == GOOGLE_USERINFO_URL:
            return profile_response
        return httpx.Response(404)

    provider = GoogleOAuthClient(
        client_id="cid",
        client_secret="csecret",
        redirect_uri="http://test/auth/google/callback",
        transport=httpx.MockTransport(handler),
    )
    app.dependency_overrides[get_oauth_client] = lambda: provider
    return provider


def redirect_params(response) -> dict:
    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    return {k: v[0] for k, v in query.items()}


@pytest.mark.asyncio
async def test_first_google_login_creates_federated_account(client, session_factory):
    seen = []
    install_provider(seen=seen)

    r = await client.get("/auth/google/callback", params={"code": "auth-code"})
    params = redirect_params(r)
    assert "error" not in params
    user = json.loads(params["user"])
    assert user["email"] == "gina@example.com"
    assert user["picture"] == PROFILE["picture"]

    # Token works against the API
    r = await client.get("/auth/me", headers=bearer(params["token"]))
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]

    async with session_factory() as s:
        account = await s.get(Account, user["id"])
    assert account.google_id == "google-123"
    assert account.password_hash is None

    token_request = seen[0]
    assert b"code=auth-code" in token_request.content
    assert seen[1].headers["Authorization"] == "Bearer ya29.fake"


@pytest.mark.asyncio
async def test_repeat_google_login_reuses_account(client, session_factory):
    install_provider()
    first = redirect_params(await client.get("/auth/google/callback", params={"code": "a"}))
    second = redirect_params(await client.get("/auth/google/callback", params={"code": "b"}))
    assert json.loads(first["user"])["id"] == json.loads(second["user"])["id"]

    async with session_factory() as s:
        accounts = (await s.execute(select(Account))).scalars().all()
    assert len(accounts) == 1


@pytest.mark.asyncio
async def test_google_login_links_existing_password_account(client, session_factory):
    registered = await register(client, "Gina@Example.com", password="pw_gina", name="Gina P")
    install_provider()

    params = redirect_params(await client.get("/auth/google/callback", params={"code": "x"}))
    assert json.loads(params["user"])["id"] == registered["account"]["id"]

    async with session_factory() as s:
        account = await s.get(Account, registered["account"]["id"])
    assert account.google_id == "google-123"
    assert account.password_hash is not None
    assert account.picture == PROFILE["picture"]

    # Password login still works after linking
    r = await client.post(
        "/auth/login", json={"email": "gina@example.com", "password": "pw_gina"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_token_exchange_failure_redirects_with_error(client, session_factory):
    install_provider(
        token_response=httpx.Response(400, json={"error": "invalid_grant", "secret": "leak"})
    )
    r = await client.get("/auth/google/callback", params={"code": "bad"})
    params = redirect_params(r)
    assert params == {"error": "token_exchange_failed"}
    assert "leak" not in r.headers["location"]

    async with session_factory() as s:
        assert (await s.execute(select(Account))).scalars().first() is None


@pytest.mark.asyncio
async def test_missing_access_token_is_a_failure(client):
    install_provider(token_response=httpx.Response(200, json={"token_type": "Bearer"}))
    params = redirect_params(await client.get("/auth/google/callback", params={"code": "c"}))
    assert params["error"] == "token_missing"


@pytest.mark.asyncio
async def test_incomplete_profile_is_a_failure(client):
    install_provider(profile_response=httpx.Response(200, json={"id": "google-9"}))
    params = redirect_params(await client.get("/auth/google/callback", params={"code": "c"}))
    assert params["error"] == "profile_incomplete"


@pytest.mark.asyncio
async def test_account_write_conflict_redirects_with_error(client, session_factory, monkeypatch):
    install_provider()

    async def conflicting_commit(self):
        raise IntegrityError(
            "INSERT INTO accounts", {}, Exception("UNIQUE constraint failed: accounts.google_id")
        )

    monkeypatch.setattr(AsyncSession, "commit", conflicting_commit)
    r = await client.get("/auth/google/callback", params={"code": "c"})
    monkeypatch.undo()

    params = redirect_params(r)
    assert params == {"error": "account_link_failed"}
    async with session_factory() as s:
        assert (await s.execute(select(Account))).scalars().first() is None


@pytest.mark.asyncio
async def test_missing_code_redirects_with_error(client):
    install_provider()
    params = redirect_params(await client.get("/auth/google/callback"))
    assert params["error"] == "missing_code"


@pytest.mark.asyncio
async def test_google_login_redirects_to_consent_screen(client):
    install_provider()
    r = await client.get("/auth/google/login", params={"state": "xyz"})
    assert r.status_code == 302
    location = urlparse(r.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "accounts.google.com"
    assert query["client_id"] == ["cid"]
    assert query["state"] == ["xyz"]
    assert query["response_type"] == ["code"]


@pytest.mark.asyncio
async def test_oauth_config_is_public(client):
    r = await client.get("/auth/config")
    assert r.status_code == 200
    assert "enabled" in r.json()
