"""Python logging handler adapter for perfwatch.

This adapter bridges Python's standard library logging module to the
ErrorTracker, so errors logged anywhere in the host application show up
next to the errors reported by browsers.
"""

import logging
import traceback
from typing import Any

from perfwatch.core.collectors.errors import ErrorTracker
from perfwatch.core.models import ErrorLevel

# Records from perfwatch itself are diagnostics, not application errors.
_OWN_NAMESPACE = "perfwatch"

# Default attributes to extract from LogRecord
_DEFAULT_INCLUDE_ATTRS = ["logger", "module", "funcName", "lineno"]


def _level_name(levelno: int) -> ErrorLevel:
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warning"
    return "info"


class ErrorTrackingHandler(logging.Handler):
    """Logging handler that files log records with an ErrorTracker.

    Example:
        ```python
        from perfwatch import ErrorTrackingHandler, TelemetryService

        service = TelemetryService.create()
        handler = ErrorTrackingHandler(service.errors)
        logging.getLogger().addHandler(handler)
        ```
    """

    def __init__(
        self,
        tracker: ErrorTracker,
        level: int = logging.ERROR,
        include_attrs: list[str] | None = None,
    ) -> None:
        """Initialize the handler with an error tracker.

        Args:
            tracker: Tracker receiving the captured errors.
            level: Minimum record level forwarded. Defaults to ERROR.
            include_attrs: LogRecord attributes stored as error context.
                Defaults to ["logger", "module", "funcName", "lineno"].
        """
        super().__init__(level)
        self._tracker = tracker
        self._include_attrs = include_attrs or _DEFAULT_INCLUDE_ATTRS

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == _OWN_NAMESPACE or name.startswith(_OWN_NAMESPACE + "."):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        """Capture a log record as an error report.

        Args:
            record: The log record to emit.
        """
        try:
            attr_mapping: dict[str, Any] = {
                "logger": record.name,
                "module": record.module,
                "funcName": record.funcName or "",
                "lineno": record.lineno,
            }
            context = {
                key: attr_mapping[key]
                for key in self._include_attrs
                if key in attr_mapping
            }

            stack = None
            if record.exc_info:
                exc_type, exc_value, exc_tb = record.exc_info
                if exc_type is not None:
                    context["exc_type"] = exc_type.__name__
                # Exception line first, then frames: the first line is the
                # grouping key, and "Traceback (most recent call last):"
                # would put every exception in one group.
                stack = "".join(
                    traceback.format_exception_only(exc_type, exc_value)
                    + traceback.format_tb(exc_tb)
                )

            self._tracker.capture_error(
                record.getMessage(),
                stack=stack,
                level=_level_name(record.levelno),
                context=context,
            )
        except Exception:
            self.handleError(record)
