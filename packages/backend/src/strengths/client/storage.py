"""Persistence ports for a client session.

A SessionStore is a tiny string key/value store — the same shape as a
browser's localStorage. The session context only ever touches two keys,
`auth_token` and `auth_user`, and never knows where they end up.
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

TOKEN_KEY = "auth_token"
USER_KEY = "auth_user"


class SessionStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> None: ...


class MemorySessionStore(SessionStore):
    """Keeps values in a dict; nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def remove(self, key: str) -> None:
        self.values.pop(key, None)


class FileSessionStore(SessionStore):
    """JSON file on disk, written with owner-only permissions."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            # Unreadable file is treated as an empty session
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        if not data:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data))
        os.chmod(tmp, 0o600)
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)
