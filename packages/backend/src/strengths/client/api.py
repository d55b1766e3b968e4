"""Async HTTP client for the Strengths API.

Learn: StrengthsClient wraps httpx and a SessionContext. It is where the
guest → account reconciliation happens: after any successful sign-in
(register, login, Google callback) pending guest capabilities are pushed
to /entries/batch, where the server-side merge drops anything the account
already has. Saving capabilities goes to the guest list or to the server
depending on the session state.
"""

import json
from typing import Any, Iterable, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from strengths.client.session import SessionContext
from strengths.services.capability_merge import MergeResult


class ApiError(Exception):
    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_success:
        return
    try:
        detail = resp.json().get("detail", resp.text)
    except ValueError:
        detail = resp.text
    raise ApiError(resp.status_code, detail)


class StrengthsClient:
    def __init__(
        self,
        base_url: str,
        session: SessionContext,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.session = session
        self.merge_error: Optional[Exception] = None
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "StrengthsClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {**self.session.auth_headers(), **kwargs.pop("headers", {})}
        resp = await self._http.request(method, path, headers=headers, **kwargs)
        _raise_for_status(resp)
        return resp

    # ─── Sign-in paths ──────────────────────────────────

    async def _signed_in(self, account: dict, token: str) -> dict:
        """Switch to the account, then push any pending guest capabilities.

        A failed upload does not undo the sign-in. The guest list is kept
        and the failure is left on `merge_error` so the caller can retry
        with merge_guest_entries().
        """
        self.session.sign_in(account, token)
        self.merge_error = None
        try:
            await self.merge_guest_entries()
        except (ApiError, httpx.TransportError) as e:
            self.merge_error = e
        return account

    async def merge_guest_entries(self) -> Optional[MergeResult]:
        """Upload pending guest capabilities; clears them only on success."""
        pending = self.session.pending_guest_entries()
        if not pending:
            return None
        result = await self.save_capabilities(pending)
        self.session.guest_entries.clear()
        return result

    async def register(self, email: str, password: str, name: str) -> dict:
        resp = await self._request(
            "POST", "/auth/register",
            json={"email": email, "password": password, "name": name},
        )
        data = resp.json()
        return await self._signed_in(data["account"], data["token"])

    async def login(self, email: str, password: str) -> dict:
        resp = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        data = resp.json()
        return await self._signed_in(data["account"], data["token"])

    async def complete_oauth_redirect(self, redirect_url: str) -> dict:
        """Consume the app redirect from /auth/google/callback."""
        params = parse_qs(urlparse(redirect_url).query)
        if "error" in params:
            raise ApiError(401, params["error"][0])
        try:
            token = params["token"][0]
            account = json.loads(params["user"][0])
        except (KeyError, IndexError, ValueError):
            raise ApiError(401, "missing_callback_data")
        return await self._signed_in(account, token)

    def logout(self) -> None:
        self.session.sign_out()

    async def restore_session(self) -> bool:
        """Reload a persisted session and check it against /auth/me.

        A rejected token (401/404) clears the session. A network failure
        keeps it, so an offline client stays signed in.
        """
        if not self.session.restore():
            return False
        try:
            resp = await self._request("GET", "/auth/me")
        except ApiError as e:
            if e.status_code in (401, 404):
                self.session.sign_out()
                return False
            raise
        except httpx.TransportError:
            return True
        self.session.account = resp.json()
        return True

    async def me(self) -> dict:
        return (await self._request("GET", "/auth/me")).json()

    async def delete_account(self) -> dict:
        data = (await self._request("DELETE", "/auth/delete-account")).json()
        self.session.sign_out()
        return data

    # ─── Personal entries ───────────────────────────────

    async def save_capabilities(self, items: Iterable[str]) -> MergeResult:
        items = list(items)
        if not self.session.is_authenticated:
            return self.session.save_guest_capabilities(items)

        data = (await self._request("POST", "/entries/batch", json={"items": items})).json()
        return MergeResult(
            added=[e["content"] for e in data["added"]],
            skipped=data["skipped"],
            submitted=len(items),
        )

    async def list_entries(self) -> list[dict]:
        if not self.session.is_authenticated:
            return [{"id": None, "content": c} for c in self.session.guest_entries.items]
        return (await self._request("GET", "/entries")).json()

    async def delete_entry(self, entry_id: int) -> None:
        await self._request("DELETE", f"/entries/{entry_id}")

    # ─── Community ──────────────────────────────────────

    async def community_entries(self) -> list[dict]:
        return (await self._request("GET", "/community-entries")).json()

    async def submit_community_entry(self, category: str, capability: str) -> dict:
        resp = await self._request(
            "POST", "/community-entries",
            json={"category": category, "capability": capability},
        )
        return resp.json()

    async def rename_category(self, old_category: str, new_category: str) -> dict:
        resp = await self._request(
            "PUT", "/community-entries/update-category",
            json={"old_category": old_category, "new_category": new_category},
        )
        return resp.json()
