from huddle.client.chat_client import ChatClient, backoff_delay
from huddle.client.state import ChatState, receipt_status

__all__ = [
    "ChatClient",
    "ChatState",
    "backoff_delay",
    "receipt_status",
]
