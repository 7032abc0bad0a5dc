"""Diagnostic events for scoped-schemas.

Resolution failures never reach callers as exceptions; they are reported here
instead. Components take an EventSink in their constructor rather than
reaching for a global, so tests and hosts can capture diagnostics.

Usage:
    from scoped_schemas.events import LoguruEventSink

    events = LoguruEventSink()
    events.emit("schema.malformed", {"location": "/lib/a.xsd", "reason": "..."})
"""

from typing import Any, Optional, Protocol

from loguru import logger


class EventSink(Protocol):
    """Contract for diagnostic event consumers."""

    def emit(self, event: str, properties: Optional[dict[str, Any]] = None) -> None:
        """Record an event. Must never raise."""
        ...


class LoguruEventSink:
    """Forward events to loguru as structured records.

    The event name and properties are bound onto the record's ``extra`` so
    sinks configured with serialize=True emit them as JSON fields.
    """

    def __init__(self, level: str = "DEBUG") -> None:
        self.level = level

    def emit(self, event: str, properties: Optional[dict[str, Any]] = None) -> None:
        try:
            properties = properties or {}
            details = " ".join(f"{key}={value}" for key, value in properties.items())
            logger.bind(event=event, **properties).log(self.level, f"{event} {details}".rstrip())
        except Exception as e:
            # Diagnostics must never break resolution
            logger.debug(f"Failed to emit event {event}: {e}")
