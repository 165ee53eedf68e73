"""Tests for the append-only action history."""

from __future__ import annotations

import threading

from deskpilot.core.history import (
    READ_PREVIEW_CHARS,
    TEXT_PREVIEW_CHARS,
    History,
    HistoryEntry,
    describe_action,
    truncate,
)
from deskpilot.models.actions import Action
from deskpilot.models.outcomes import ActionOutcome


class TestDescribeAction:
    """Rendering of single actions."""

    def test_click(self) -> None:
        assert describe_action(Action.click(10, 20)) == "click: left at (10, 20)"

    def test_double_right_click(self) -> None:
        action = Action.click(3, 4, button="right", double=True)

        assert describe_action(action) == "click: right double at (3, 4)"

    def test_type_is_quoted(self) -> None:
        assert describe_action(Action.type_text("hi")) == 'type: "hi"'

    def test_long_text_is_truncated(self) -> None:
        text = "a" * 80

        rendered = describe_action(Action.type_text(text))

        assert rendered == f'type: "{"a" * TEXT_PREVIEW_CHARS}..."'

    def test_custom_preview_length(self) -> None:
        rendered = describe_action(Action.type_text("b" * 40), text_chars=30)

        assert rendered == f'type: "{"b" * 30}..."'

    def test_key_scroll_wait(self) -> None:
        assert describe_action(Action.press("ctrl+c")) == "key: ctrl+c"
        assert describe_action(Action.scroll("down")) == "scroll: down 3"
        assert describe_action(Action.wait()) == "wait: 500ms"

    def test_file_write_omits_content(self) -> None:
        action = Action.file_write("/tmp/notes.txt", "secret body " * 100)

        rendered = describe_action(action)

        assert rendered == "file_write: /tmp/notes.txt"
        assert "secret" not in rendered

    def test_terminal_actions(self) -> None:
        assert describe_action(Action.done("ok")) == "done: ok"
        assert describe_action(Action.failed("stuck")) == "failed: stuck"


class TestTruncate:
    """Tests for truncate."""

    def test_short_text_unchanged(self) -> None:
        assert truncate("abc", 5) == "abc"

    def test_exact_length_unchanged(self) -> None:
        assert truncate("abcde", 5) == "abcde"

    def test_long_text_marked(self) -> None:
        assert truncate("abcdef", 5) == "abcde..."


class TestHistory:
    """Tests for History."""

    def test_empty_history(self) -> None:
        history = History()

        assert len(history) == 0
        assert history.last() is None
        assert history.all() == ()
        assert history.as_decision_context() == []

    def test_record_appends_in_order(self) -> None:
        history = History()
        first = history.record(Action.click(1, 1), ActionOutcome.ok())
        second = history.record(Action.press("enter"), ActionOutcome.fail("no focus"))

        assert len(history) == 2
        assert history.all() == (first, second)
        assert history.last() is second

    def test_append_entry(self) -> None:
        history = History()
        entry = HistoryEntry(action=Action.wait(100), outcome=ActionOutcome.ok())

        history.append(entry)

        assert history.last() is entry

    def test_decision_context_format(self) -> None:
        history = History()
        history.record(Action.click(10, 20), ActionOutcome.ok())
        history.record(Action.press("ctrl+s"), ActionOutcome.fail("no window"))

        assert history.as_decision_context() == [
            "1. click: left at (10, 20) [OK]",
            "2. key: ctrl+s [ERROR: no window]",
        ]

    def test_file_read_context_shows_content_preview(self) -> None:
        history = History()
        history.record(Action.file_read("/etc/hostname"), ActionOutcome.ok(data="box-01\nsecond line"))
        history.record(Action.file_read("/etc/big"), ActionOutcome.ok(data="z" * 500))
        history.record(Action.file_read("/missing"), ActionOutcome.fail("no such file"))

        context = history.as_decision_context()

        assert context[0] == '1. file_read: /etc/hostname [OK] -> "box-01\\nsecond line"'
        assert context[1] == f'2. file_read: /etc/big [OK] -> "{"z" * READ_PREVIEW_CHARS}..."'
        assert context[2] == "3. file_read: /missing [ERROR: no such file]"

    def test_file_write_context_omits_content(self) -> None:
        history = History()
        history.record(Action.file_write("/tmp/out.txt", "private"), ActionOutcome.ok())

        assert history.as_decision_context() == ["1. file_write: /tmp/out.txt [OK]"]

    def test_snapshot_is_not_affected_by_later_appends(self) -> None:
        history = History()
        history.record(Action.wait(), ActionOutcome.ok())
        snapshot = history.all()

        history.record(Action.wait(), ActionOutcome.ok())

        assert len(snapshot) == 1
        assert len(history) == 2

    def test_concurrent_readers_see_consistent_prefix(self) -> None:
        history = History()
        errors: list[Exception] = []
        stop = threading.Event()

        def _reader() -> None:
            try:
                while not stop.is_set():
                    entries = history.all()
                    assert all(isinstance(e, HistoryEntry) for e in entries)
            except Exception as e:
                errors.append(e)

        reader = threading.Thread(target=_reader)
        reader.start()
        for i in range(200):
            history.record(Action.click(i, i), ActionOutcome.ok())
        stop.set()
        reader.join(timeout=5)

        assert errors == []
        assert len(history) == 200
