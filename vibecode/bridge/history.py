"""Bounded conversation log replayed to late joiners."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vibecode.bridge.models.messages import Message


class ConversationLog:
    """Append-only, capacity-bounded message history.

    Oldest entries are evicted first once ``capacity`` is exceeded.  Reads
    never consume entries.  Lives in process memory only.
    """

    def __init__(self, capacity: int = 20) -> None:
        if capacity < 1:
            msg = f"capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._entries: deque[Message] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, message: Message) -> None:
        self._entries.append(message)

    def recent(self, limit: int | None = None) -> list[Message]:
        """Return up to *limit* entries, most recent last.  ``None`` returns everything retained."""
        if limit is None:
            return list(self._entries)
        if limit <= 0:
            return []
        return list(self._entries)[-limit:]

    def __len__(self) -> int:
        return len(self._entries)
