"""Diagnostic event sinks.

Pipeline stages never print or log directly.  They describe what they
saw as ``DiagnosticEvent`` values and hand them to whatever
``DiagnosticSink`` the caller passed in:

    * ``NullSink``: discards everything (the default).
    * ``MemorySink``: keeps events in a list for inspection.
    * ``ConsoleSink``: prints one timestamped line per event.
    * ``LoggingSink``: forwards to a ``logging.Logger``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List


class EventKind(Enum):
    SEGMENT_DETECTED = "segment_detected"
    SEGMENTS_EXTRACTED = "segments_extracted"
    DURATION_COMPUTED = "duration_computed"
    RING_TONE_DETECTED = "ring_tone_detected"
    SEGMENT_UNCLASSIFIED = "segment_unclassified"
    DECODE_FAILURE = "decode_failure"


@dataclass(frozen=True)
class DiagnosticEvent:
    kind: EventKind
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


class DiagnosticSink(ABC):
    """Base class for all event sinks."""

    @abstractmethod
    def emit(self, event: DiagnosticEvent) -> None:
        """Receive one event.  Must not raise for well-formed events."""


class NullSink(DiagnosticSink):
    def emit(self, event: DiagnosticEvent) -> None:
        return None


class MemorySink(DiagnosticSink):
    """Collects events in emission order."""

    def __init__(self) -> None:
        self.events: List[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def of_kind(self, kind: EventKind) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.kind == kind]


class ConsoleSink(DiagnosticSink):
    """Prints ``[HH:MM:SS] message`` for every event."""

    def emit(self, event: DiagnosticEvent) -> None:
        print(f"[{datetime.now().strftime('%H:%M:%S')}] {event.message}")


class LoggingSink(DiagnosticSink):
    """Forwards events to a stdlib logger.

    Decode failures go out at ERROR, everything else at DEBUG.  The
    event kind and payload travel in ``extra`` for structured handlers.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("ringstage")

    def emit(self, event: DiagnosticEvent) -> None:
        level = logging.ERROR if event.kind == EventKind.DECODE_FAILURE else logging.DEBUG
        self.logger.log(
            level,
            event.message,
            extra={"event_kind": event.kind.value, "event_data": event.data},
        )
