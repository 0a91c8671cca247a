"""Simple logger implementation over the standard logging module."""

import logging
from typing import Any

from ..ports.logger import LoggerPort


class SimpleLogger(LoggerPort):
    """Logger adapter using Python's standard logging.

    Keyword context is attached to the record as ``extra`` and, so it is not
    lost with the default formatter, appended to the message as key=value.
    """

    def __init__(self, name: str = "corenet_registry", level: int = logging.INFO):
        """Initialize the logger.

        Args:
            name: Logger name (default: "corenet_registry")
            level: Logging level (default: INFO)
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)

        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    @staticmethod
    def _render(message: str, context: dict[str, Any]) -> str:
        if not context:
            return message
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} [{pairs}]"

    @staticmethod
    def _extra(context: dict[str, Any]) -> dict[str, Any]:
        # LogRecord attributes such as "name" or "message" cannot be overwritten
        return {f"ctx_{key}": value for key, value in context.items()}

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(self._render(message, kwargs), extra=self._extra(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(self._render(message, kwargs), extra=self._extra(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(self._render(message, kwargs), extra=self._extra(kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        """Log an error message."""
        self._logger.error(self._render(message, kwargs), extra=self._extra(kwargs))

    def exception(self, message: str, exc_info: Exception | None = None, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        self._logger.exception(
            self._render(message, kwargs), exc_info=exc_info or True, extra=self._extra(kwargs)
        )
