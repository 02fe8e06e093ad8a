"""
Base Service Class.

Injected-logger base for the auth services, plus the audit-line helper
they use for user-visible state changes (sign-in, sign-out, resets).
"""

from __future__ import annotations

from authportal.logger import StructuredLogger


class BaseService:
    """Base class for all service classes. Provides a logger."""

    def __init__(self, logger: StructuredLogger) -> None:
        self._logger: StructuredLogger = logger

    def _audit(self, event: str, message: str, *args: object, **fields: object) -> None:
        """Log *message* at INFO with ``event`` and *fields* as JSON extras."""
        self._logger.info(message, *args, extra={"event": event, **fields})
