"""Tests for the Dispatcher: session lifecycle and event routing."""

import pytest

from huddle.core.errors import AuthError


def _events_for(deliveries, session_id):
    """(event, data) pairs addressed to one session, in emission order."""
    return [(d.event, d.data) for d in deliveries if d.is_for(session_id)]


def _payload(deliveries, session_id, event):
    for name, data in _events_for(deliveries, session_id):
        if name == event:
            return data
    raise AssertionError(f"{event} not delivered to {session_id}")


def _has(deliveries, session_id, event) -> bool:
    return any(name == event for name, _ in _events_for(deliveries, session_id))


def _connect(dispatcher, issue_token, username):
    return dispatcher.connect(issue_token(username))


def _send(dispatcher, session, text):
    return dispatcher.handle_raw(session.id, {"event": "send_message", "data": {"text": text}})


# --- lifecycle ---


def test_connect_joins_default_room(dispatcher, issue_token, app_state):
    """A fresh session lands in the default room with an empty history."""
    a, out = _connect(dispatcher, issue_token, "alice")
    assert a.current_room == "general"
    assert app_state.rooms.members("general") == [a.id]
    assert _payload(out, a.id, "room_messages") == []
    assert _payload(out, a.id, "pagination_info") == {
        "room": "general",
        "hasMore": False,
        "totalMessages": 0,
        "loadedMessages": 0,
    }
    assert _payload(out, a.id, "user_joined") == {"id": a.id, "username": "alice"}
    assert [u["username"] for u in _payload(out, a.id, "user_list")] == ["alice"]


def test_connect_rejects_bad_token(dispatcher, app_state):
    """A bad credential raises AuthError and registers nothing."""
    with pytest.raises(AuthError):
        dispatcher.connect("garbage")
    with pytest.raises(AuthError):
        dispatcher.connect(None)
    assert len(app_state.registry) == 0
    assert app_state.rooms.members("general") == []


def test_event_from_unknown_session_rejected(dispatcher):
    with pytest.raises(AuthError):
        dispatcher.handle_raw("ghost", {"event": "send_message", "data": "hi"})


def test_disconnect_cleans_up_and_notifies(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(a.id, {"event": "typing", "data": True})
    app_state.tracker.on_message("general", [a.id])

    out = dispatcher.disconnect(a.id)

    assert _payload(out, b.id, "user_left") == {"id": a.id, "username": "alice"}
    assert [u["id"] for u in _payload(out, b.id, "user_list")] == [b.id]
    assert _payload(out, b.id, "typing_users") == []
    assert not _events_for(out, a.id)
    assert a.id not in app_state.registry
    assert app_state.rooms.members("general") == [b.id]
    assert app_state.rooms.typing("general") == []
    assert not app_state.tracker.tracks(a.id)


def test_disconnect_twice_is_noop(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    dispatcher.disconnect(a.id)
    assert dispatcher.disconnect(a.id) == []


def test_malformed_event_dropped(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    assert dispatcher.handle_raw(a.id, {"event": "explode"}) == []
    assert dispatcher.handle_raw(a.id, {"event": "send_message", "data": {}}) == []


# --- rooms ---


def test_change_room_moves_session(dispatcher, issue_token, app_state):
    """A session is in exactly one room after switching."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    out = dispatcher.handle_raw(a.id, {"event": "change_room", "data": "random"})

    assert app_state.rooms.room_of(a.id) == "random"
    assert a.current_room == "random"
    assert app_state.rooms.members("general") == [b.id]
    # bob sees the refreshed general list without alice
    assert [u["id"] for u in _payload(out, b.id, "user_list")] == [b.id]
    assert _payload(out, a.id, "pagination_info")["room"] == "random"
    for name in app_state.rooms.room_names():
        count = app_state.rooms.members(name).count(a.id)
        assert count == (1 if name == "random" else 0)


def test_change_room_while_typing_clears_old_typing(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(a.id, {"event": "typing", "data": {"isTyping": True}})
    out = dispatcher.handle_raw(a.id, {"event": "change_room", "data": "tech"})
    assert _payload(out, b.id, "typing_users") == []
    assert app_state.rooms.typing("general") == []


def test_join_unknown_room_dropped(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    assert dispatcher.handle_raw(a.id, {"event": "join", "data": "nowhere"}) == []
    assert app_state.rooms.room_of(a.id) == "general"


def test_join_private_room_dropped(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(a.id, {"event": "private_message", "data": {"to": b.id, "text": "hi"}})
    key = app_state.rooms.ensure_private(a.id, b.id).name
    assert dispatcher.handle_raw(a.id, {"event": "join", "data": key}) == []
    assert app_state.rooms.room_of(a.id) == "general"


# --- messages ---


def test_join_send_unread_clear_scenario(dispatcher, issue_token, app_state):
    """Two users in general: history replay, unread counting and clearing."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = _send(dispatcher, a, "hi")
    msg1 = _payload(out, a.id, "receive_message")
    assert msg1["text"] == "hi"
    assert msg1["readBy"] == [a.id]
    assert [m.id for m in app_state.rooms.log("general")] == [msg1["id"]]

    b, out = _connect(dispatcher, issue_token, "bob")
    assert [m["text"] for m in _payload(out, b.id, "room_messages")] == ["hi"]

    out = _send(dispatcher, b, "yo")
    assert _payload(out, a.id, "unread_count_update") == {"room": "general", "count": 1}
    assert not _has(out, b.id, "unread_count_update")

    out = dispatcher.handle_raw(a.id, {"event": "clear_unread_count", "data": "general"})
    assert _payload(out, a.id, "unread_count_update") == {"room": "general", "count": 0}
    assert app_state.tracker.unread(a.id, "general") == 0


def test_message_reaches_room_only(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(b.id, {"event": "change_room", "data": "random"})
    out = _send(dispatcher, a, "only general")
    assert _has(out, a.id, "receive_message")
    assert not _has(out, b.id, "receive_message")


def test_non_viewer_gets_notification_not_unread(dispatcher, issue_token, app_state):
    """Sessions outside the room get a feed entry instead of an unread bump."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(b.id, {"event": "change_room", "data": "random"})
    out = _send(dispatcher, a, "ping")
    notification = _payload(out, b.id, "new_message_notification")
    assert notification["message"] == "New message in #general from alice"
    assert notification["room"] == "general"
    assert notification["type"] == "message"
    assert notification["read"] is False
    assert not _has(out, b.id, "unread_count_update")
    assert not _has(out, a.id, "new_message_notification")
    assert len(app_state.tracker.feed(b.id)) == 1


def test_send_file(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(b.id, {"event": "change_room", "data": "tech"})
    out = dispatcher.handle_raw(
        a.id,
        {
            "event": "send_file",
            "data": {"fileName": "cat.png", "fileType": "image/png", "fileSize": 3, "fileUrl": "/u/cat.png"},
        },
    )
    message = _payload(out, a.id, "receive_message")
    assert message["kind"] == "file"
    assert message["file"]["fileName"] == "cat.png"
    assert message["text"] is None
    notification = _payload(out, b.id, "new_message_notification")
    assert notification["message"] == "alice shared a file in #general"
    assert notification["type"] == "file"


def test_eviction_scenario(dispatcher, issue_token, app_state):
    """The 101st message evicts the first from both log and ledger."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    first = _payload(_send(dispatcher, a, "m1"), a.id, "receive_message")
    for i in range(2, 102):
        _send(dispatcher, a, f"m{i}")
    log = app_state.rooms.log("general")
    assert len(log) == 100
    assert first["id"] not in [m.id for m in log]
    assert first["id"] not in app_state.ledger
    out = dispatcher.handle_raw(
        a.id, {"event": "message_reaction", "data": {"messageId": first["id"], "reaction": "👍"}}
    )
    assert out == []


def test_load_more_pagination(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    for i in range(45):
        _send(dispatcher, a, f"m{i}")

    b, out = _connect(dispatcher, issue_token, "bob")
    recent = _payload(out, b.id, "room_messages")
    assert [m["text"] for m in recent] == [f"m{i}" for i in range(25, 45)]
    assert _payload(out, b.id, "pagination_info") == {
        "room": "general",
        "hasMore": True,
        "totalMessages": 45,
        "loadedMessages": 20,
    }

    out = dispatcher.handle_raw(
        b.id, {"event": "load_more_messages", "data": {"room": "general", "loadedCount": 20}}
    )
    page = _payload(out, b.id, "more_messages_loaded")
    assert [m["text"] for m in page] == [f"m{i}" for i in range(5, 25)]
    info = _payload(out, b.id, "pagination_info")
    assert info["hasMore"] is True
    assert info["loadedMessages"] == 40

    out = dispatcher.handle_raw(
        b.id, {"event": "load_more_messages", "data": {"room": "general", "loadedCount": 40}}
    )
    page = _payload(out, b.id, "more_messages_loaded")
    assert [m["text"] for m in page] == [f"m{i}" for i in range(0, 5)]
    assert _payload(out, b.id, "pagination_info")["hasMore"] is False
    assert not _has(out, a.id, "more_messages_loaded")


def test_load_more_unknown_room_dropped(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = dispatcher.handle_raw(
        a.id, {"event": "load_more_messages", "data": {"room": "nowhere", "loadedCount": 0}}
    )
    assert out == []


# --- reactions and receipts ---


def test_reaction_toggle_scenario(dispatcher, issue_token):
    """React twice clears; a different reaction replaces."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    message_id = _payload(_send(dispatcher, a, "react to me"), a.id, "receive_message")["id"]

    def react(reaction):
        return dispatcher.handle_raw(
            a.id, {"event": "message_reaction", "data": {"messageId": message_id, "reaction": reaction}}
        )

    out = react("👍")
    assert _payload(out, b.id, "message_reaction_update") == {
        "messageId": message_id,
        "reactions": {a.id: "👍"},
    }
    out = react("👍")
    assert _payload(out, a.id, "message_reaction_update")["reactions"] == {}
    out = react("❤️")
    assert _payload(out, a.id, "message_reaction_update")["reactions"] == {a.id: "❤️"}


def test_read_receipt_idempotent(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    message_id = _payload(_send(dispatcher, a, "read me"), a.id, "receive_message")["id"]
    out = dispatcher.handle_raw(b.id, {"event": "message_read", "data": message_id})
    assert _payload(out, a.id, "read_receipt_update") == {
        "messageId": message_id,
        "readBy": [a.id, b.id],
    }
    assert dispatcher.handle_raw(b.id, {"event": "message_read", "data": message_id}) == []


def test_emitted_message_is_a_snapshot(dispatcher, issue_token):
    """Later reactions do not rewrite an event that was already emitted."""
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = _send(dispatcher, a, "snapshot")
    emitted = _payload(out, a.id, "receive_message")
    dispatcher.handle_raw(
        a.id, {"event": "message_reaction", "data": {"messageId": emitted["id"], "reaction": "👍"}}
    )
    assert emitted["reactions"] == {}


# --- typing ---


def test_typing_broadcast_to_room(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    out = dispatcher.handle_raw(a.id, {"event": "typing", "data": True})
    assert _payload(out, b.id, "typing_users") == ["alice"]
    out = dispatcher.handle_raw(a.id, {"event": "typing", "data": False})
    assert _payload(out, b.id, "typing_users") == []


# --- private messages ---


def test_private_message_delivery(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    c, _ = _connect(dispatcher, issue_token, "carol")
    out = dispatcher.handle_raw(a.id, {"event": "private_message", "data": {"to": b.id, "text": "psst"}})

    to_b = _payload(out, b.id, "private_message")
    to_a = _payload(out, a.id, "private_message")
    assert to_b == to_a
    assert to_b["kind"] == "private"
    assert to_b["recipientId"] == b.id
    assert to_b["room"] is None
    assert not _events_for(out, c.id)

    notification = _payload(out, b.id, "new_message_notification")
    assert notification["room"] == "private"
    assert notification["type"] == "private"
    assert notification["message"] == "Private message from alice"

    key = app_state.rooms.ensure_private(a.id, b.id).name
    assert app_state.ledger.room_of(to_b["id"]) == key


def test_private_message_to_self_echoed_once(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = dispatcher.handle_raw(a.id, {"event": "private_message", "data": {"to": a.id, "text": "note"}})
    assert [name for name, _ in _events_for(out, a.id)] == ["private_message"]


def test_private_message_unknown_target_dropped(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = dispatcher.handle_raw(a.id, {"event": "private_message", "data": {"to": "ghost", "text": "hi"}})
    assert out == []


def test_private_reaction_hidden_from_outsiders(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    c, _ = _connect(dispatcher, issue_token, "carol")
    out = dispatcher.handle_raw(a.id, {"event": "private_message", "data": {"to": b.id, "text": "psst"}})
    message_id = _payload(out, b.id, "private_message")["id"]

    out = dispatcher.handle_raw(
        c.id, {"event": "message_reaction", "data": {"messageId": message_id, "reaction": "👀"}}
    )
    assert out == []
    out = dispatcher.handle_raw(
        b.id, {"event": "message_reaction", "data": {"messageId": message_id, "reaction": "👍"}}
    )
    assert _has(out, a.id, "message_reaction_update")
    assert not _has(out, c.id, "message_reaction_update")


# --- notifications ---


def test_notification_feed_management(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(b.id, {"event": "change_room", "data": "random"})
    _send(dispatcher, a, "one")
    _send(dispatcher, a, "two")

    out = dispatcher.handle_raw(b.id, {"event": "get_notifications"})
    feed = _payload(out, b.id, "notifications")
    assert len(feed) == 2
    assert all(n["read"] is False for n in feed)

    out = dispatcher.handle_raw(b.id, {"event": "mark_notification_read", "data": feed[0]["id"]})
    assert [n["read"] for n in _payload(out, b.id, "notifications")] == [True, False]

    assert dispatcher.handle_raw(b.id, {"event": "mark_notification_read", "data": "nope"}) == []

    out = dispatcher.handle_raw(b.id, {"event": "mark_all_notifications_read"})
    assert all(n["read"] for n in _payload(out, b.id, "notifications"))


def test_clear_unread_marks_room_notifications_read(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    b, _ = _connect(dispatcher, issue_token, "bob")
    dispatcher.handle_raw(b.id, {"event": "change_room", "data": "random"})
    _send(dispatcher, a, "hello")
    dispatcher.handle_raw(b.id, {"event": "clear_unread_count", "data": "general"})
    assert app_state.tracker.unread_notifications(b.id) == 0


def test_clear_unread_unknown_room_dropped(dispatcher, issue_token):
    a, _ = _connect(dispatcher, issue_token, "alice")
    assert dispatcher.handle_raw(a.id, {"event": "clear_unread_count", "data": "nowhere"}) == []


def test_update_notification_settings(dispatcher, issue_token, app_state):
    a, _ = _connect(dispatcher, issue_token, "alice")
    out = dispatcher.handle_raw(
        a.id, {"event": "update_notification_settings", "data": {"desktop": True}}
    )
    assert out == []
    settings = app_state.tracker.settings(a.id)
    assert settings.desktop is True
    assert settings.sound is True
