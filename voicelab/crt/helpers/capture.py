"""
Speech capture adapters.

The recognizer itself is opaque: an adapter only has to report whether it can
run, ask for microphone permission, and stream ``(transcript, confidence)``
updates between ``start()`` and ``stop()``. Only the most recent update is
authoritative.
"""
from __future__ import annotations

from typing import Callable

UpdateCallback = Callable[[str, "float | None"], None]
EndCallback = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


class SpeechCaptureError(Exception):
    """Raised or reported when the recognizer fails mid-capture."""


class SpeechCaptureUnavailable(SpeechCaptureError):
    """Raised when ``start()`` is called on an adapter that cannot run."""


class SpeechCaptureAdapter:
    """
    Base adapter.

    Subclasses implement ``start``; ``stop`` and ``abort`` must be safe to call
    from any state, including before the first ``start``.
    """

    def is_supported(self) -> bool:
        return True

    def request_permission(self) -> bool:
        """Ask for microphone access. Returns True when granted."""
        return self.is_supported()

    def start(self, on_update: UpdateCallback, on_end: EndCallback, on_error: ErrorCallback) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        pass

    def abort(self) -> None:
        self.stop()


class UnavailableSpeechCapture(SpeechCaptureAdapter):
    """Stand-in used when no recognizer exists on the device."""

    def is_supported(self) -> bool:
        return False

    def request_permission(self) -> bool:
        return False

    def start(self, on_update, on_end, on_error):
        raise SpeechCaptureUnavailable("Speech recognition is not supported on this device.")


class ScriptedSpeechCapture(SpeechCaptureAdapter):
    """
    Replays scripted recognizer events on a scheduler.

    *scripts* holds one list of events per recording; each ``start()`` consumes
    the next list (an exhausted script list yields silent recordings). Events
    are dicts:

      {"type": "update", "after_ms": 1200, "transcript": "five", "confidence": 0.9}
      {"type": "error",  "after_ms": 800,  "message": "network"}
      {"type": "end",    "after_ms": 2500}

    ``after_ms`` is measured from ``start()``.
    """

    def __init__(self, scheduler, scripts=None, supported: bool = True, permission: bool = True):
        self._scheduler = scheduler
        self._scripts = [list(script) for script in (scripts or [])]
        self._supported = supported
        self._permission = permission
        self._pending = []
        self.start_count = 0
        self.stop_count = 0
        self.abort_count = 0
        self.is_active = False

    def is_supported(self) -> bool:
        return self._supported

    def request_permission(self) -> bool:
        return self._supported and self._permission

    def queue_script(self, events) -> None:
        self._scripts.append(list(events))

    def start(self, on_update, on_end, on_error):
        if not self._supported:
            raise SpeechCaptureUnavailable("Scripted recognizer is marked unsupported.")
        self._cancel_pending()
        self.start_count += 1
        self.is_active = True
        script = self._scripts.pop(0) if self._scripts else []
        for event in script:
            callback = self._dispatcher(event, on_update, on_end, on_error)
            self._pending.append(self._scheduler.call_later(event.get("after_ms", 0), callback))

    def stop(self):
        self.stop_count += 1
        self._cancel_pending()

    def abort(self):
        self.abort_count += 1
        self._cancel_pending()

    def _cancel_pending(self):
        self.is_active = False
        for handle in self._pending:
            handle.cancel()
        self._pending = []

    def _dispatcher(self, event, on_update, on_end, on_error):
        event_type = event.get("type")
        if event_type == "update":
            return lambda: on_update(event.get("transcript", ""), event.get("confidence"))
        if event_type == "error":
            return lambda: on_error(SpeechCaptureError(event.get("message", "capture error")))
        if event_type == "end":
            def _end():
                self._cancel_pending()
                on_end()
            return _end
        raise ValueError(f"Unknown scripted event type: {event_type!r}")
