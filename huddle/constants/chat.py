"""Chat defaults shared by the server and the client."""

from enum import StrEnum

MESSAGE_LOG_CAPACITY = 100
PAGE_SIZE = 20
NOTIFICATION_FEED_LIMIT = 50
PRIVATE_ROOM_PREFIX = "private_"


class MessageKind(StrEnum):
    """What a message carries."""

    TEXT = "text"
    FILE = "file"
    SYSTEM = "system"
    PRIVATE = "private"


class NotificationKind(StrEnum):
    """Notification ``type`` values shown in a session's feed."""

    MESSAGE = "message"
    FILE = "file"
    PRIVATE = "private"
    SYSTEM = "system"


class NotificationRoom(StrEnum):
    """Sentinel ``room`` values for notifications not tied to a public room."""

    PRIVATE = "private"
    SYSTEM = "system"


class ReceiptStatus(StrEnum):
    """Read-receipt status derived on the client from a message's ``readBy``."""

    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
