"""Per-client session context.

Learn: One SessionContext is built per client instance and handed to
whatever needs it — there is no module-level "current user". It holds
exactly one of three states:

    ANONYMOUS      nothing chosen yet
    GUEST          working without an account; capabilities live in an
                   in-memory GuestCapabilityList and die with the process
    AUTHENTICATED  holding a session token and the account profile

Only the authenticated state is persisted, through the injected
SessionStore. Guest data is never written anywhere; when a guest signs
in, pending_guest_entries() lists what still has to be merged into the
account. The list is only cleared once that merge has gone through.
"""

import json
from enum import Enum
from typing import Iterable, Optional

from strengths.client.storage import TOKEN_KEY, USER_KEY, SessionStore
from strengths.services.capability_merge import GuestCapabilityList, MergeResult


class SessionState(str, Enum):
    ANONYMOUS = "anonymous"
    GUEST = "guest"
    AUTHENTICATED = "authenticated"


class SessionContext:
    def __init__(self, store: SessionStore):
        self.store = store
        self.state = SessionState.ANONYMOUS
        self.token: Optional[str] = None
        self.account: Optional[dict] = None
        self.guest_entries = GuestCapabilityList()

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    @property
    def is_guest(self) -> bool:
        return self.state is SessionState.GUEST

    def start_guest(self) -> None:
        if self.is_authenticated:
            raise RuntimeError("Already signed in; sign out before continuing as guest")
        self.state = SessionState.GUEST

    def sign_in(self, account: dict, token: str) -> None:
        self.account = account
        self.token = token
        self.state = SessionState.AUTHENTICATED
        self.store.set(TOKEN_KEY, token)
        self.store.set(USER_KEY, json.dumps(account))

    def sign_out(self) -> None:
        """Forget the session locally. The token itself stays valid until expiry."""
        self.account = None
        self.token = None
        self.state = SessionState.ANONYMOUS
        self.guest_entries.clear()
        self.store.remove(TOKEN_KEY)
        self.store.remove(USER_KEY)

    def restore(self) -> bool:
        """Load a persisted session. Corrupt data is discarded."""
        token = self.store.get(TOKEN_KEY)
        raw_user = self.store.get(USER_KEY)
        if not token or not raw_user:
            return False
        try:
            account = json.loads(raw_user)
        except ValueError:
            self.sign_out()
            return False
        if not isinstance(account, dict):
            self.sign_out()
            return False
        self.account = account
        self.token = token
        self.state = SessionState.AUTHENTICATED
        return True

    def save_guest_capabilities(self, items: Iterable[str]) -> MergeResult:
        if self.state is SessionState.ANONYMOUS:
            self.state = SessionState.GUEST
        if not self.is_guest:
            raise RuntimeError("Signed-in capabilities are saved to the account, not the guest list")
        return self.guest_entries.save(items)

    def pending_guest_entries(self) -> list[str]:
        """Guest items still waiting to be merged into an account."""
        return self.guest_entries.items

    def auth_headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}
