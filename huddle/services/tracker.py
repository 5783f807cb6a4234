"""Per-session unread counters, notification feed and notification settings."""

from __future__ import annotations

from collections import deque
from typing import Dict, Iterable

from huddle.constants.chat import NOTIFICATION_FEED_LIMIT
from huddle.schemas.chat import (
    Notification,
    NotificationSettings,
    NotificationSettingsUpdate,
)


class Tracker:
    """Unread counts keyed by (session, room) plus a capped feed per session."""

    def __init__(self, feed_limit: int = NOTIFICATION_FEED_LIMIT) -> None:
        self._feed_limit = feed_limit
        self._unread: Dict[str, Dict[str, int]] = {}
        self._feeds: Dict[str, deque[Notification]] = {}
        self._settings: Dict[str, NotificationSettings] = {}

    # --- unread counters ---

    def on_message(self, room: str, recipients: Iterable[str]) -> list[tuple[str, int]]:
        """Increment ``room``'s counter for each recipient; return the new counts."""
        updated = []
        for session_id in recipients:
            counts = self._unread.setdefault(session_id, {})
            counts[room] = counts.get(room, 0) + 1
            updated.append((session_id, counts[room]))
        return updated

    def on_room_viewed(self, session_id: str, room: str) -> int:
        self._unread.setdefault(session_id, {})[room] = 0
        return 0

    def unread(self, session_id: str, room: str) -> int:
        return self._unread.get(session_id, {}).get(room, 0)

    def unread_counts(self, session_id: str) -> Dict[str, int]:
        return dict(self._unread.get(session_id, {}))

    # --- notification feed ---

    def notify(self, session_id: str, notification: Notification) -> Notification:
        """Push onto the session's feed, newest first, dropping beyond the cap."""
        feed = self._feeds.get(session_id)
        if feed is None:
            feed = self._feeds[session_id] = deque(maxlen=self._feed_limit)
        feed.appendleft(notification)
        return notification

    def feed(self, session_id: str) -> list[Notification]:
        return list(self._feeds.get(session_id, ()))

    def mark_read(self, session_id: str, notification_id: str) -> bool:
        for notification in self._feeds.get(session_id, ()):
            if notification.id == notification_id:
                notification.read = True
                return True
        return False

    def mark_all_read(self, session_id: str) -> int:
        changed = 0
        for notification in self._feeds.get(session_id, ()):
            if not notification.read:
                notification.read = True
                changed += 1
        return changed

    def mark_room_read(self, session_id: str, room: str) -> int:
        """Mark every notification about ``room`` as read (room was viewed)."""
        changed = 0
        for notification in self._feeds.get(session_id, ()):
            if notification.room == room and not notification.read:
                notification.read = True
                changed += 1
        return changed

    def unread_notifications(self, session_id: str) -> int:
        return sum(1 for n in self._feeds.get(session_id, ()) if not n.read)

    # --- settings ---

    def update_settings(
        self, session_id: str, update: NotificationSettingsUpdate
    ) -> NotificationSettings:
        current = self.settings(session_id)
        changes = update.model_dump(exclude_none=True)
        merged = current.model_copy(update=changes)
        self._settings[session_id] = merged
        return merged

    def settings(self, session_id: str) -> NotificationSettings:
        return self._settings.get(session_id) or NotificationSettings()

    # --- lifecycle ---

    def drop_session(self, session_id: str) -> None:
        self._unread.pop(session_id, None)
        self._feeds.pop(session_id, None)
        self._settings.pop(session_id, None)

    def tracks(self, session_id: str) -> bool:
        return (
            session_id in self._unread
            or session_id in self._feeds
            or session_id in self._settings
        )
