import pytest

from voicelab.crt.helpers.capture import ScriptedSpeechCapture
from voicelab.crt.helpers.capture import SpeechCaptureError
from voicelab.crt.helpers.capture import SpeechCaptureUnavailable
from voicelab.crt.helpers.capture import UnavailableSpeechCapture
from voicelab.crt.helpers.scheduler import ManualScheduler


class _Recorder:
    def __init__(self):
        self.updates = []
        self.ended = 0
        self.errors = []

    def callbacks(self):
        return (
            lambda transcript, confidence: self.updates.append((transcript, confidence)),
            lambda: setattr(self, "ended", self.ended + 1),
            self.errors.append,
        )


class TestUnavailableSpeechCapture:
    def test_reports_unsupported_before_start(self):
        adapter = UnavailableSpeechCapture()
        assert adapter.is_supported() is False
        assert adapter.request_permission() is False

    def test_start_raises(self):
        with pytest.raises(SpeechCaptureUnavailable):
            UnavailableSpeechCapture().start(None, None, None)

    def test_stop_and_abort_are_safe(self):
        adapter = UnavailableSpeechCapture()
        adapter.stop()
        adapter.abort()


class TestScriptedSpeechCapture:
    def test_replays_updates_in_order(self):
        scheduler = ManualScheduler()
        adapter = ScriptedSpeechCapture(
            scheduler,
            scripts=[
                [
                    {"type": "update", "after_ms": 500, "transcript": "fi", "confidence": 0.4},
                    {"type": "update", "after_ms": 900, "transcript": "five", "confidence": 0.8},
                ]
            ],
        )
        recorder = _Recorder()
        adapter.start(*recorder.callbacks())
        scheduler.advance(1000)
        assert recorder.updates == [("fi", 0.4), ("five", 0.8)]

    def test_stop_cancels_pending_events(self):
        scheduler = ManualScheduler()
        adapter = ScriptedSpeechCapture(
            scheduler,
            scripts=[[{"type": "update", "after_ms": 500, "transcript": "five", "confidence": 0.8}]],
        )
        recorder = _Recorder()
        adapter.start(*recorder.callbacks())
        assert adapter.is_active
        adapter.stop()
        scheduler.advance(1000)
        assert recorder.updates == []
        assert not adapter.is_active

    def test_error_and_end_events(self):
        scheduler = ManualScheduler()
        adapter = ScriptedSpeechCapture(
            scheduler,
            scripts=[
                [{"type": "error", "after_ms": 100, "message": "network"}],
                [{"type": "end", "after_ms": 100}],
            ],
        )
        recorder = _Recorder()
        adapter.start(*recorder.callbacks())
        scheduler.advance(200)
        assert isinstance(recorder.errors[0], SpeechCaptureError)
        adapter.start(*recorder.callbacks())
        scheduler.advance(200)
        assert recorder.ended == 1

    def test_each_start_consumes_one_script(self):
        scheduler = ManualScheduler()
        adapter = ScriptedSpeechCapture(scheduler)
        adapter.queue_script([{"type": "update", "after_ms": 10, "transcript": "one"}])
        adapter.queue_script([{"type": "update", "after_ms": 10, "transcript": "two"}])
        recorder = _Recorder()
        adapter.start(*recorder.callbacks())
        scheduler.advance(20)
        adapter.start(*recorder.callbacks())
        scheduler.advance(20)
        adapter.start(*recorder.callbacks())
        scheduler.advance(20)
        assert [t for t, _ in recorder.updates] == ["one", "two"]
        assert adapter.start_count == 3

    def test_permission_denied(self):
        adapter = ScriptedSpeechCapture(ManualScheduler(), permission=False)
        assert adapter.is_supported()
        assert adapter.request_permission() is False

    def test_unsupported_start_raises(self):
        adapter = ScriptedSpeechCapture(ManualScheduler(), supported=False)
        with pytest.raises(SpeechCaptureUnavailable):
            adapter.start(*_Recorder().callbacks())

    def test_stop_before_start_is_safe(self):
        adapter = ScriptedSpeechCapture(ManualScheduler())
        adapter.stop()
        adapter.abort()
        assert adapter.stop_count == 1
        assert adapter.abort_count == 1
