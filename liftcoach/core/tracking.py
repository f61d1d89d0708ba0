"""Tracking sinks injected into generation, voice and coach components.

Components never reach for a global tracker. Whoever constructs them
(the API dependencies, a test) passes the sink in.
"""

from typing import Any, Protocol

from loguru import logger


class TrackingSink(Protocol):
    def track(self, event: str, **properties: Any) -> None: ...


class LoggerTrackingSink:
    """Default sink: one DEBUG record per event."""

    def track(self, event: str, **properties: Any) -> None:
        logger.debug(f"track: {event}", event=event, **properties)


class RecordingTrackingSink:
    """Keeps events in memory, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def track(self, event: str, **properties: Any) -> None:
        self.events.append((event, properties))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]
