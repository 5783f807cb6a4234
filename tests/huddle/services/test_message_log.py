"""Tests for MessageLog and MessageIdSequence."""

import pytest

from huddle.schemas.chat import Message
from huddle.services.message_log import MessageIdSequence, MessageLog


def _make_message(message_id: int, text: str | None = None) -> Message:
    """Helper to create a text message with defaults."""
    return Message(
        id=message_id,
        sender_id="s1",
        sender="alice",
        room="general",
        text=text or f"message {message_id}",
    )


def _fill(log: MessageLog, count: int, start: int = 1) -> None:
    for i in range(start, start + count):
        log.append(_make_message(i))


def test_append_under_capacity_evicts_nothing():
    """append below capacity returns None and keeps insertion order."""
    log = MessageLog(capacity=3)
    assert log.append(_make_message(1)) is None
    assert log.append(_make_message(2)) is None
    assert [m.id for m in log] == [1, 2]


def test_append_at_capacity_evicts_oldest():
    """append at capacity evicts and returns the oldest message."""
    log = MessageLog(capacity=3)
    _fill(log, 3)
    evicted = log.append(_make_message(4))
    assert evicted is not None
    assert evicted.id == 1
    assert [m.id for m in log] == [2, 3, 4]
    assert len(log) == 3


def test_length_never_exceeds_capacity():
    """101 appends into a 100-slot log keep exactly the newest 100."""
    log = MessageLog(capacity=100)
    _fill(log, 101)
    assert len(log) == 100
    assert log.messages()[0].id == 2
    assert log.messages()[-1].id == 101


def test_invalid_capacity_rejected():
    with pytest.raises(ValueError):
        MessageLog(capacity=0)


def test_tail_returns_newest_in_order():
    """tail(n) returns the newest n messages oldest-first."""
    log = MessageLog()
    _fill(log, 25)
    tail = log.tail(20)
    assert [m.id for m in tail] == list(range(6, 26))


def test_tail_shorter_log():
    log = MessageLog()
    _fill(log, 3)
    assert [m.id for m in log.tail(20)] == [1, 2, 3]
    assert log.tail(0) == []


def test_page_before_loaded_window():
    """page returns the 20 messages preceding the newest before_count."""
    log = MessageLog()
    _fill(log, 45)
    page = log.page(20)
    assert [m.id for m in page.messages] == list(range(6, 26))
    assert page.has_more is True


def test_page_reaching_start_has_no_more():
    """A page that reaches index 0 never reports has_more."""
    log = MessageLog()
    _fill(log, 45)
    page = log.page(40)
    assert [m.id for m in page.messages] == [1, 2, 3, 4, 5]
    assert page.has_more is False


def test_page_exact_boundary():
    log = MessageLog()
    _fill(log, 40)
    page = log.page(20)
    assert len(page.messages) == 20
    assert page.has_more is False


def test_page_beyond_length_is_empty():
    """A stale before_count larger than the log clamps to an empty page."""
    log = MessageLog()
    _fill(log, 10)
    page = log.page(50)
    assert page.messages == []
    assert page.has_more is False


def test_page_negative_count_treated_as_zero():
    log = MessageLog()
    _fill(log, 5)
    page = log.page(-3)
    assert [m.id for m in page.messages] == [1, 2, 3, 4, 5]


def test_page_custom_size():
    log = MessageLog()
    _fill(log, 10)
    page = log.page(0, page_size=4)
    assert [m.id for m in page.messages] == [7, 8, 9, 10]
    assert page.has_more is True


def test_id_sequence_strictly_increasing():
    """next_id never repeats even when called within the same millisecond."""
    ids = MessageIdSequence()
    values = [ids.next_id() for _ in range(200)]
    assert values == sorted(values)
    assert len(set(values)) == len(values)
