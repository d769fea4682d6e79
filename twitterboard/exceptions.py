"""
Custom exception hierarchy for the Twitter Board.

Provides specific exception types for different error categories,
enabling better error handling and debugging.
"""


class TwitterBoardError(Exception):
    """Base exception for all Twitter Board errors."""

    def __init__(self, message: str, context: dict = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional context dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(TwitterBoardError):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_path: str = None, field: str = None, context: dict = None):
        """
        Initialize config error.

        Args:
            message: Error message
            config_path: Optional path to config file
            field: Optional field name that caused the error
            context: Optional context dictionary
        """
        if config_path or field:
            context = context or {}
            if config_path:
                context['config_path'] = config_path
            if field:
                context['field'] = field
        super().__init__(message, context)
        self.config_path = config_path
        self.field = field


class RenderError(TwitterBoardError):
    """
    Exception raised when a single render cycle fails.

    Covers encoder I/O failures and renderer process spawn failures. The
    scheduler logs it and moves on to the next cycle.
    """

    def __init__(self, message: str, file_name: str = None, context: dict = None):
        """
        Initialize render error.

        Args:
            message: Error message
            file_name: Optional artifact file involved in the failure
            context: Optional context dictionary
        """
        if file_name:
            context = context or {}
            context['file_name'] = file_name
        super().__init__(message, context)
        self.file_name = file_name


class QueueClosedError(TwitterBoardError):
    """Exception raised when the scheduler is used after shutdown."""
