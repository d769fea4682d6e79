"""
Logging setup for the board.

Log records may carry the notification topic and the scheduler cycle
(see log_with_context); both formatters render them.
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional

_BOARD_FIELDS = ('topic_id', 'cycle')


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'message': record.getMessage(),
        }
        for name in _BOARD_FIELDS + ('context',):
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ContextualFormatter(logging.Formatter):
    """Readable lines prefixed with [Topic: ..] [Cycle: ..] tags."""

    def __init__(self, include_location: bool = False):
        location = ' - %(module)s.%(funcName)s:%(lineno)d' if include_location else ''
        super().__init__(
            fmt='%(asctime)s.%(msecs)03d - %(levelname)s - %(name)s' + location + ' - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        tags = []
        if hasattr(record, 'topic_id'):
            tags.append(f"[Topic: {record.topic_id}]")
        if hasattr(record, 'cycle'):
            tags.append(f"[Cycle: {record.cycle}]")
        if isinstance(getattr(record, 'context', None), dict):
            tags.extend(f"[{key}: {value}]" for key, value in record.context.items())

        if tags:
            # Other handlers share the record, so tag a copy
            record = logging.makeLogRecord(record.__dict__)
            record.msg = ' '.join(tags) + ' ' + record.getMessage()
            record.args = None
        return super().format(record)


def setup_logging(
    level: Optional[int] = None,
    format_type: str = 'readable',
    include_location: bool = False,
    log_file: Optional[str] = None
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level; INFO unless TWITTERBOARD_DEBUG=true selects DEBUG
        format_type: 'readable' or 'json'
        include_location: Add module/function/line to readable output
        log_file: Optional file that receives the same records as stdout
    """
    if level is None:
        debug = os.environ.get('TWITTERBOARD_DEBUG', '').lower() == 'true'
        level = logging.DEBUG if debug else logging.INFO

    if format_type == 'json':
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = ContextualFormatter(include_location=include_location)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            sys.stderr.write(f"Warning: Could not set up file logging to {log_file}: {e}\n")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: Optional[Dict[str, Any]] = None,
    topic_id: Optional[str] = None,
    cycle: Optional[int] = None,
    exc_info: Optional[Any] = None
) -> None:
    """Log message with the topic, cycle and context attached to the record."""
    extra: Dict[str, Any] = {}
    if context:
        extra['context'] = context
    if topic_id:
        extra['topic_id'] = topic_id
    if cycle is not None:
        extra['cycle'] = cycle
    logger.log(level, message, extra=extra, exc_info=exc_info)
