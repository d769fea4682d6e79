"""
Error Handling Utilities

Common error handling patterns shared by the board's background workers.
"""

import logging
from typing import Any, Callable, Optional, TypeVar
from twitterboard.exceptions import TwitterBoardError

T = TypeVar('T')


def handle_json_operation(
    operation: Callable[[], T],
    error_message: str,
    logger: logging.Logger,
    default: Optional[T] = None
) -> Optional[T]:
    """
    Handle JSON operations with consistent error handling.

    Args:
        operation: Function to execute (JSON load/dump)
        error_message: Base error message
        logger: Logger instance
        default: Default value to return on error

    Returns:
        Result of operation or default value
    """
    try:
        return operation()
    except ValueError as e:
        logger.error("%s: Invalid JSON: %s", error_message, e)
        return default
    except (TypeError, KeyError, AttributeError) as e:
        logger.error("%s: Unexpected payload: %s", error_message, e)
        return default


def safe_execute(
    operation: Callable[[], T],
    error_message: str,
    logger: logging.Logger,
    default: Optional[T] = None
) -> Optional[T]:
    """
    Safely execute an operation with error handling.

    Args:
        operation: Function to execute
        error_message: Base error message
        logger: Logger instance
        default: Default value to return on error

    Returns:
        Result of operation or default value
    """
    try:
        return operation()
    except TwitterBoardError:
        raise
    except Exception as e:
        logger.error("%s: %s", error_message, e, exc_info=True)
        return default
