"""Client-side session handling for the Strengths API."""

from strengths.client.api import ApiError, StrengthsClient
from strengths.client.session import SessionContext, SessionState
from strengths.client.storage import FileSessionStore, MemorySessionStore, SessionStore

__all__ = [
    "ApiError",
    "FileSessionStore",
    "MemorySessionStore",
    "SessionContext",
    "SessionState",
    "SessionStore",
    "StrengthsClient",
]
