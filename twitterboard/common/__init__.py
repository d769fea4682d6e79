"""
Common utilities and helpers for the Twitter Board.
"""

from twitterboard.common.error_handler import (
    handle_json_operation,
    safe_execute,
)

__all__ = [
    'handle_json_operation',
    'safe_execute',
]
