from huddle.services.ledger import Ledger
from huddle.services.message_log import MessageIdSequence, MessageLog
from huddle.services.presence import PresenceBroadcaster
from huddle.services.room_store import RoomStore
from huddle.services.tracker import Tracker

__all__ = [
    "Ledger",
    "MessageIdSequence",
    "MessageLog",
    "PresenceBroadcaster",
    "RoomStore",
    "Tracker",
]
