"""
JSON lines notification source

Minimal local transport: reads one JSON object per line from a text stream
and forwards it to a notification sink.

    {"topic": "tweets", "message": "hello #world", "author": "alice", "keywords": ["hello"]}
"""

import json
import threading
from typing import Any, Optional, TextIO

from twitterboard.common.error_handler import handle_json_operation, safe_execute
from twitterboard.logging_config import get_logger
from twitterboard.models import Notification

logger = get_logger(__name__)

DEFAULT_TOPIC = "local"


class JsonLinesNotificationSource:
    """Feeds notifications read from a stream into a sink."""

    def __init__(self, stream: TextIO, sink: Any, default_topic: str = DEFAULT_TOPIC):
        """
        Args:
            stream: Text stream to read lines from
            sink: Object with on_notification(topic_id, notification)
            default_topic: Topic used when a line does not name one
        """
        self.stream = stream
        self.sink = sink
        self.default_topic = default_topic
        self._thread: Optional[threading.Thread] = None

    def parse_line(self, line: str) -> Optional[tuple]:
        """
        Parse one line into (topic_id, notification).

        Returns:
            None for blank or malformed lines
        """
        line = line.strip()
        if not line:
            return None

        payload = handle_json_operation(
            lambda: json.loads(line),
            "Skipping notification line",
            logger
        )
        if not isinstance(payload, dict) or 'message' not in payload:
            logger.warning("Ignoring notification without a message: %r", line)
            return None

        notification = handle_json_operation(
            lambda: Notification.from_dict(payload),
            "Skipping notification line",
            logger
        )
        if notification is None:
            return None
        return str(payload.get('topic') or self.default_topic), notification

    def pump(self) -> int:
        """
        Read the stream until EOF, dispatching each notification.

        Returns:
            Number of notifications dispatched
        """
        count = 0
        for line in self.stream:
            parsed = self.parse_line(line)
            if parsed is None:
                continue
            topic_id, notification = parsed
            safe_execute(
                lambda: self.sink.on_notification(topic_id, notification),
                "Failed to deliver notification",
                logger
            )
            count += 1
        logger.info("Notification stream closed after %d notifications", count)
        return count

    def start(self) -> threading.Thread:
        """Pump the stream on a daemon thread."""
        self._thread = threading.Thread(
            target=self.pump,
            name="NotificationSource",
            daemon=True
        )
        self._thread.start()
        return self._thread
