"""Structured trace of engine activity: phase transitions, timer fires, capture events."""
import logging

logger = logging.getLogger(__name__)


class EventLog:
    def __init__(self, clock=None):
        self._clock = clock
        self._events: list[dict] = []

    def record(self, kind: str, **fields) -> dict:
        event = {"kind": kind, "at_ms": self._clock() if self._clock else None}
        event.update(fields)
        self._events.append(event)
        logger.debug("crt %s %s", kind, fields)
        return event

    def of_kind(self, kind: str) -> list[dict]:
        return [e for e in self._events if e["kind"] == kind]

    def phases(self) -> list[str]:
        """Phase names entered, in order."""
        return [e["phase"] for e in self.of_kind("phase")]

    @property
    def events(self) -> list[dict]:
        return list(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)
