"""
Tests for the JSON lines notification source.
"""

import io
import logging
import pytest
from unittest.mock import MagicMock

from twitterboard.models import Notification
from twitterboard.notification_source import JsonLinesNotificationSource


@pytest.fixture
def sink():
    return MagicMock()


class TestParseLine:
    """Test parsing of single lines."""

    def test_full_payload(self, sink):
        source = JsonLinesNotificationSource(io.StringIO(), sink)
        parsed = source.parse_line(
            '{"topic": "tweets", "message": "hello #world", "author": "alice", "keywords": ["hello"]}\n'
        )
        assert parsed == ("tweets", Notification.create("hello #world", author="alice", keywords=["hello"]))

    def test_topic_defaults(self, sink):
        source = JsonLinesNotificationSource(io.StringIO(), sink, default_topic="stdin")
        topic_id, notification = source.parse_line('{"message": "hi"}')
        assert topic_id == "stdin"
        assert notification.author is None
        assert notification.keywords == frozenset()

    @pytest.mark.parametrize("line", ["", "   \n", "{not json", "[1, 2]", '{"author": "bob"}'])
    def test_unusable_lines_are_skipped(self, sink, line):
        source = JsonLinesNotificationSource(io.StringIO(), sink)
        assert source.parse_line(line) is None

    def test_malformed_line_is_logged(self, sink, caplog):
        caplog.set_level(logging.WARNING)
        source = JsonLinesNotificationSource(io.StringIO(), sink)
        source.parse_line("{not json")
        assert "Skipping notification line" in caplog.text


class TestPump:
    """Test dispatching a whole stream."""

    def test_dispatches_every_valid_line(self, sink):
        stream = io.StringIO(
            '{"message": "one"}\n'
            'garbage\n'
            '\n'
            '{"topic": "tweets", "message": "two", "keywords": "two"}\n'
        )
        source = JsonLinesNotificationSource(stream, sink)

        assert source.pump() == 2
        assert sink.on_notification.call_args_list[0].args == ("local", Notification.create("one"))
        assert sink.on_notification.call_args_list[1].args == (
            "tweets", Notification.create("two", keywords=["two"])
        )

    def test_sink_failure_does_not_stop_pump(self, sink, caplog):
        caplog.set_level(logging.ERROR)
        sink.on_notification.side_effect = [RuntimeError("full"), None]
        stream = io.StringIO('{"message": "one"}\n{"message": "two"}\n')
        source = JsonLinesNotificationSource(stream, sink)

        assert source.pump() == 2
        assert sink.on_notification.call_count == 2
        assert "Failed to deliver notification" in caplog.text

    def test_start_runs_in_background(self, sink):
        source = JsonLinesNotificationSource(io.StringIO('{"message": "bg"}\n'), sink)
        thread = source.start()
        thread.join(timeout=2.0)

        assert thread.daemon
        sink.on_notification.assert_called_once_with("local", Notification.create("bg"))
