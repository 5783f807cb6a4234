"""Event names carried in the ``event`` field of websocket frames."""

from enum import StrEnum


class InboundEvent(StrEnum):
    """Events a connected client may send."""

    JOIN = "join"
    CHANGE_ROOM = "change_room"
    LOAD_MORE_MESSAGES = "load_more_messages"
    SEND_MESSAGE = "send_message"
    SEND_FILE = "send_file"
    MESSAGE_REACTION = "message_reaction"
    MESSAGE_READ = "message_read"
    TYPING = "typing"
    PRIVATE_MESSAGE = "private_message"
    CLEAR_UNREAD_COUNT = "clear_unread_count"
    UPDATE_NOTIFICATION_SETTINGS = "update_notification_settings"
    GET_NOTIFICATIONS = "get_notifications"
    MARK_NOTIFICATION_READ = "mark_notification_read"
    MARK_ALL_NOTIFICATIONS_READ = "mark_all_notifications_read"


class OutboundEvent(StrEnum):
    """Events the server emits."""

    USER_LIST = "user_list"
    USER_JOINED = "user_joined"
    USER_LEFT = "user_left"
    ROOM_MESSAGES = "room_messages"
    MORE_MESSAGES_LOADED = "more_messages_loaded"
    PAGINATION_INFO = "pagination_info"
    RECEIVE_MESSAGE = "receive_message"
    PRIVATE_MESSAGE = "private_message"
    MESSAGE_REACTION_UPDATE = "message_reaction_update"
    READ_RECEIPT_UPDATE = "read_receipt_update"
    UNREAD_COUNT_UPDATE = "unread_count_update"
    NEW_MESSAGE_NOTIFICATION = "new_message_notification"
    TYPING_USERS = "typing_users"
    NOTIFICATIONS = "notifications"
    AUTH_ERROR = "auth_error"
