"""Bounded per-room message log with tail reads and offset pagination."""

from __future__ import annotations

import threading
import time
from collections import deque
from itertools import islice
from typing import Iterator, Optional

from huddle.constants.chat import MESSAGE_LOG_CAPACITY, PAGE_SIZE
from huddle.schemas.chat import Message, MessagesPage


class MessageIdSequence:
    """Millisecond-timestamp ids, bumped past the previous id on collision."""

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            candidate = int(time.time() * 1000)
            self._last = max(candidate, self._last + 1)
            return self._last


class MessageLog:
    """Append-only FIFO log holding at most ``capacity`` messages."""

    def __init__(self, capacity: int = MESSAGE_LOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._entries: deque[Message] = deque()

    def append(self, message: Message) -> Optional[Message]:
        """Append ``message``; return the evicted oldest entry, if any."""
        evicted = None
        if len(self._entries) >= self.capacity:
            evicted = self._entries.popleft()
        self._entries.append(message)
        return evicted

    def tail(self, n: int = PAGE_SIZE) -> list[Message]:
        """Newest ``n`` messages in chronological order."""
        if n <= 0:
            return []
        start = max(0, len(self._entries) - n)
        return list(islice(self._entries, start, None))

    def page(self, before_count: int, page_size: int = PAGE_SIZE) -> MessagesPage:
        """
        Return up to ``page_size`` messages preceding the newest ``before_count``.

        The window is computed from the current length only and clamped to
        [0, len], so a client whose view predates an eviction gets a shorter
        (possibly empty) page instead of an error.
        """
        total = len(self._entries)
        end = min(total, max(0, total - max(0, before_count)))
        start = max(0, end - page_size)
        messages = list(islice(self._entries, start, end))
        return MessagesPage(messages=messages, has_more=start > 0)

    def messages(self) -> list[Message]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._entries)
