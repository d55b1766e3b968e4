"""Capability merge — add a batch of free-text items to a list, net-new only.

Learn: "Save my capabilities" works the same for a signed-in account (the
target is the personal_entries table) and for a guest (the target is an
in-memory list that dies with the client). The merge itself is pure:

1. Trim every candidate, drop empties.
2. Deduplicate the batch ignoring case; the first occurrence's casing wins.
3. Drop anything already in the target list (ignoring case) — existing wins.
4. What survives is appended, in its original order.
5. A non-empty batch where nothing survives yields an informational notice.

Running the same batch twice is a no-op the second time.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

NO_NEW_ENTRIES = "No new entries: everything in this batch is already on your list."


def _key(item: str) -> str:
    return item.strip().lower()


@dataclass
class MergeResult:
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    submitted: int = 0

    @property
    def notice(self) -> Optional[str]:
        if self.submitted and not self.added:
            return NO_NEW_ENTRIES
        return None


def merge_capabilities(existing: Iterable[str], batch: Iterable[str]) -> MergeResult:
    """Compute which items of `batch` are new relative to `existing`."""
    items = list(batch)
    result = MergeResult(submitted=len(items))
    seen = {_key(item) for item in existing}

    for raw in items:
        item = raw.strip()
        if not item:
            continue
        key = item.lower()
        if key in seen:
            result.skipped.append(item)
            continue
        seen.add(key)
        result.added.append(item)
    return result


class GuestCapabilityList:
    """Ephemeral capability list for a guest session.

    Never leaves the process; a new client starts empty.
    """

    def __init__(self, items: Optional[Iterable[str]] = None):
        self._items: list[str] = []
        if items:
            self.save(items)

    @property
    def items(self) -> list[str]:
        return list(self._items)

    def save(self, batch: Iterable[str]) -> MergeResult:
        result = merge_capabilities(self._items, batch)
        self._items.extend(result.added)
        return result

    def remove(self, item: str) -> bool:
        key = _key(item)
        for i, existing in enumerate(self._items):
            if _key(existing) == key:
                del self._items[i]
                return True
        return False

    def clear(self) -> list[str]:
        items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        return len(self._items)
