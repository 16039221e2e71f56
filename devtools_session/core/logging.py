"""Centralized logging configuration."""
import logging
import sys
from collections import deque
from typing import Optional


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the session core.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


class BackgroundErrorSink:
    """Collects failures from fire-and-forget work.

    Failures are logged as warnings and the most recent ones are kept so
    callers can inspect them without the errors reaching the result path.
    """

    def __init__(self, limit: int = 50, logger: Optional[logging.Logger] = None) -> None:
        self._errors: deque[tuple[str, BaseException]] = deque(maxlen=limit)
        self._logger = logger or logging.getLogger(__name__)

    def report(self, context: str, error: BaseException) -> None:
        """Record a background failure.

        Args:
            context: Short description of what was being attempted.
            error: The exception raised by the background work.
        """
        self._errors.append((context, error))
        self._logger.warning(f"{context}: {error}")

    @property
    def errors(self) -> list[tuple[str, BaseException]]:
        """Recorded (context, error) pairs, oldest first."""
        return list(self._errors)

    def clear(self) -> None:
        self._errors.clear()
