"""
Trial state machine for the voice Cognitive Reflection Test.

Phases run in this order:

    consent -> instruction -> ready -> question -> listening -> feedback
                                          ^                        |
                                          +---- next question -----+--> complete

Consent and instruction happen once per session. Each question is shown for
a fixed reading interval before capture is enabled. Listening has its own
substates (idle, recording, review): stopping a recording always lands in
review, where the transcript can be corrected before it is submitted.

Every timer belongs to a generation. Starting a trial, completing, or tearing
down bumps the generation, so a timer from an earlier trial that still fires
does nothing. Recorder callbacks carry a recording token for the same reason.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.utils import timezone

from voicelab.crt.choices import CaptureMode
from voicelab.crt.choices import CaptureState
from voicelab.crt.choices import Phase
from voicelab.crt.helpers.capture import SpeechCaptureError
from voicelab.crt.helpers.capture import UnavailableSpeechCapture
from voicelab.crt.helpers.event_log import EventLog
from voicelab.crt.helpers.scoring import ConfidenceOverrides
from voicelab.crt.helpers.scoring import clamp
from voicelab.crt.helpers.scoring import score_typed_answer
from voicelab.crt.helpers.scoring import score_voice_answer
from voicelab.crt.registry import TEMPLATE_REGISTRY

logger = logging.getLogger(__name__)

_TRIAL_PHASES = frozenset({Phase.QUESTION, Phase.LISTENING, Phase.FEEDBACK})


class InvalidTransition(Exception):
    """Raised when a participant action is not allowed in the current phase."""


class EmptyAnswer(ValueError):
    """Raised when an answer is submitted without any text."""


@dataclass(frozen=True)
class TrialTiming:
    ready_pause_ms: int = 1000
    reading_interval_ms: int = 3000
    speech_timeout_ms: int = 30_000
    feedback_interval_ms: int = 2000

    @classmethod
    def from_settings(cls) -> TrialTiming:
        defaults = TEMPLATE_REGISTRY["voice-crt"]
        return cls(
            ready_pause_ms=getattr(settings, "CRT_READY_PAUSE_MS", defaults["ready_pause_ms"]),
            reading_interval_ms=getattr(
                settings, "CRT_READING_INTERVAL_MS", defaults["reading_interval_ms"]
            ),
            speech_timeout_ms=getattr(settings, "CRT_SPEECH_TIMEOUT_MS", defaults["speech_timeout_ms"]),
            feedback_interval_ms=getattr(
                settings, "CRT_FEEDBACK_INTERVAL_MS", defaults["feedback_interval_ms"]
            ),
        )


@dataclass
class TrialCapture:
    """Answer being captured for the active trial. Discarded once submitted."""

    mode: str = CaptureMode.VOICE
    transcript: str = ""
    recognizer_confidence: float | None = None
    speech_start_ms: float | None = None
    speech_end_ms: float | None = None
    last_update_ms: float | None = None


@dataclass(frozen=True)
class TrialResult:
    trial_index: int
    question_id: str
    stimulus_text: str
    transcript: str
    transcript_confidence: float
    original_api_confidence: float
    reaction_time_ms: int
    speech_start_timestamp: float | None
    speech_end_timestamp: float | None
    speech_duration_ms: int
    is_correct: int
    correct_answer: str
    mode: str
    created_at: str

    def as_payload(self) -> dict:
        """JSON body in the shape the voice-responses endpoint accepts."""
        return {
            "trialIndex": self.trial_index,
            "questionId": self.question_id,
            "stimulusText": self.stimulus_text,
            "transcript": self.transcript,
            "transcriptConfidence": self.transcript_confidence,
            "originalApiConfidence": self.original_api_confidence,
            "reactionTimeMs": self.reaction_time_ms,
            "speechStartTimestamp": self.speech_start_timestamp,
            "speechEndTimestamp": self.speech_end_timestamp,
            "speechDurationMs": self.speech_duration_ms,
            "isCorrect": self.is_correct,
            "correctAnswer": self.correct_answer,
            "mode": self.mode,
            "createdAt": self.created_at,
        }


class TrialStateMachine:
    """
    Drives the question sequence for one participant.

    Participant actions are plain method calls (``accept_consent``,
    ``start_experiment``, ``start_recording``, ``stop_recording``,
    ``record_again``, ``edit_answer``, ``switch_to_typed``, ``submit``).
    Phase changes that happen on their own are driven by *scheduler* timers.

    *on_result* is called with each TrialResult as it is created and
    *on_complete* once when the complete phase is entered.
    """

    def __init__(
        self,
        questions,
        scheduler,
        adapter=None,
        *,
        timing: TrialTiming | None = None,
        overrides: ConfidenceOverrides | None = None,
        on_result=None,
        on_complete=None,
        event_log: EventLog | None = None,
    ):
        self.questions = tuple(questions)
        self.scheduler = scheduler
        self.adapter = adapter if adapter is not None else UnavailableSpeechCapture()
        self.timing = timing or TrialTiming.from_settings()
        self.overrides = overrides if overrides is not None else ConfidenceOverrides.from_settings()
        self.on_result = on_result
        self.on_complete = on_complete
        self.events = event_log if event_log is not None else EventLog(clock=scheduler.now_ms)

        self.phase = Phase.CONSENT
        self.fallback_mode = False
        self.trial_index = 0
        self.capture: TrialCapture | None = None
        self.capture_state: str | None = None
        self.current_result: TrialResult | None = None
        self.stimulus_onset_ms: float | None = None

        self._generation = 0
        self._timers = []
        self._speech_timeout = None
        self._recording_token = 0
        self._capture_snapshot = None
        self._finalized = False
        self._torn_down = False

    # ------------------------------------------------------------------ state

    @property
    def question(self):
        if 0 <= self.trial_index < len(self.questions):
            return self.questions[self.trial_index]
        return None

    @property
    def is_recording(self) -> bool:
        return self.capture_state == CaptureState.RECORDING

    @property
    def is_complete(self) -> bool:
        return self.phase == Phase.COMPLETE

    # ---------------------------------------------------- consent/instruction

    def accept_consent(self) -> bool:
        """
        Ask for microphone access and move to the instructions.

        Returns True when the voice lane is available. An unsupported
        recognizer or a refused permission switches the session to typed
        input only; the experiment still continues.
        """
        self._require("accept_consent", Phase.CONSENT)
        supported = self.adapter.is_supported()
        granted = False
        if supported:
            try:
                granted = bool(self.adapter.request_permission())
            except SpeechCaptureError:
                logger.warning("Microphone permission request failed", exc_info=True)
        if not granted:
            self._set_fallback("permission_denied" if supported else "unsupported")
        self.events.record("consent", accepted=True, microphone=granted)
        self._enter(Phase.INSTRUCTION)
        return granted

    def decline_consent(self) -> None:
        self._require("decline_consent", Phase.CONSENT)
        self._set_fallback("declined")
        self.events.record("consent", accepted=False, microphone=False)
        self._enter(Phase.INSTRUCTION)

    def start_experiment(self) -> None:
        self._require("start_experiment", Phase.INSTRUCTION)
        self._enter(Phase.READY)
        self._schedule(self.timing.ready_pause_ms, self._start_trial, "ready_pause")

    # ------------------------------------------------------------ trial flow

    def _start_trial(self) -> None:
        self._new_generation()
        self.capture = None
        self.capture_state = None
        self.current_result = None
        self._finalized = False
        if not self._enter(Phase.QUESTION, trial_index=self.trial_index):
            return
        self.stimulus_onset_ms = self.scheduler.now_ms()
        self._schedule(self.timing.reading_interval_ms, self._enter_listening, "reading_interval")

    def _enter_listening(self) -> None:
        mode = CaptureMode.TYPED if self.fallback_mode else CaptureMode.VOICE
        if not self._enter(Phase.LISTENING, trial_index=self.trial_index, mode=mode.value):
            return
        self.capture = TrialCapture(mode=mode)
        self.capture_state = CaptureState.IDLE

    def _advance(self) -> None:
        self.trial_index += 1
        self._start_trial()

    def _complete(self) -> None:
        if self.phase == Phase.COMPLETE:
            return
        self._new_generation()
        if self.capture_state == CaptureState.RECORDING:
            self._recording_token += 1
            self.adapter.abort()
        self.capture = None
        self.capture_state = None
        self._enter(Phase.COMPLETE, trials=len(self.questions))
        if self.on_complete is not None:
            self.on_complete()

    # ------------------------------------------------------------ voice lane

    def start_recording(self) -> None:
        """Begin a recording. Voice capture never starts on its own."""
        self._require("start_recording", Phase.LISTENING)
        if self.fallback_mode:
            raise InvalidTransition("Voice input is unavailable for this session.")
        if self.capture_state == CaptureState.RECORDING:
            raise InvalidTransition("A recording is already in progress.")

        capture = self.capture
        self._capture_snapshot = (
            self.capture_state,
            capture.mode,
            capture.transcript,
            capture.recognizer_confidence,
            capture.speech_start_ms,
            capture.speech_end_ms,
        )
        capture.mode = CaptureMode.VOICE
        capture.speech_start_ms = self.scheduler.now_ms()
        capture.speech_end_ms = None
        capture.last_update_ms = None

        self._recording_token += 1
        token = self._recording_token
        self.capture_state = CaptureState.RECORDING
        self.events.record("recording_started", trial_index=self.trial_index)
        self._speech_timeout = self._schedule(
            self.timing.speech_timeout_ms,
            lambda: self._finish_recording(token, "timeout"),
            "speech_timeout",
        )
        try:
            self.adapter.start(
                lambda transcript, confidence: self._on_capture_update(token, transcript, confidence),
                lambda: self._finish_recording(token, "end"),
                lambda error: self._on_capture_error(token, error),
            )
        except SpeechCaptureError as exc:
            self._on_capture_error(token, exc)

    def record_again(self) -> None:
        """Discard the reviewed transcript and record a fresh answer."""
        self._require("record_again", Phase.LISTENING)
        if self.capture_state != CaptureState.REVIEW:
            raise InvalidTransition("Nothing has been recorded yet.")
        self.start_recording()

    def stop_recording(self) -> bool:
        """Manual stop. Returns False, and changes nothing, when not recording."""
        return self._finish_recording(self._recording_token, "manual")

    def _finish_recording(self, token: int, reason: str) -> bool:
        if token != self._recording_token or self.capture_state != CaptureState.RECORDING:
            self.events.record("stop_ignored", reason=reason, trial_index=self.trial_index)
            return False
        self._cancel_speech_timeout()
        self._recording_token += 1
        capture = self.capture
        if capture.last_update_ms is not None:
            capture.speech_end_ms = capture.last_update_ms
        else:
            capture.speech_end_ms = self.scheduler.now_ms()
        self.capture_state = CaptureState.REVIEW
        self.events.record(
            "recording_stopped",
            reason=reason,
            trial_index=self.trial_index,
            transcript=capture.transcript,
        )
        if reason != "end":
            self.adapter.stop()
        return True

    def _on_capture_update(self, token: int, transcript: str, confidence) -> None:
        if token != self._recording_token or self.capture_state != CaptureState.RECORDING:
            self.events.record("update_ignored", trial_index=self.trial_index)
            return
        capture = self.capture
        capture.transcript = transcript or ""
        capture.recognizer_confidence = confidence
        capture.last_update_ms = self.scheduler.now_ms()
        self.events.record(
            "capture_update",
            trial_index=self.trial_index,
            transcript=capture.transcript,
            confidence=confidence,
        )

    def _on_capture_error(self, token: int, error) -> None:
        if token != self._recording_token or self.capture_state != CaptureState.RECORDING:
            self.events.record("error_ignored", trial_index=self.trial_index, error=str(error))
            return
        self._cancel_speech_timeout()
        self._recording_token += 1
        capture = self.capture
        (
            previous_state,
            capture.mode,
            capture.transcript,
            capture.recognizer_confidence,
            capture.speech_start_ms,
            capture.speech_end_ms,
        ) = self._capture_snapshot
        capture.last_update_ms = None
        # A failed re-recording goes back to reviewing the earlier transcript.
        self.capture_state = previous_state
        logger.warning("Speech capture error on trial %s: %s", self.trial_index, error)
        self.events.record("capture_error", trial_index=self.trial_index, error=str(error))
        self.adapter.abort()

    # ------------------------------------------------------------ typed lane

    def switch_to_typed(self) -> None:
        """Move to typed input, cancelling any recording in progress."""
        self._require("switch_to_typed", Phase.LISTENING)
        if self.capture_state == CaptureState.RECORDING:
            self._cancel_speech_timeout()
            self._recording_token += 1
            self.adapter.abort()
            self.events.record("recording_cancelled", trial_index=self.trial_index)
        capture = self.capture
        capture.mode = CaptureMode.TYPED
        capture.transcript = ""
        capture.recognizer_confidence = None
        capture.speech_start_ms = None
        capture.speech_end_ms = None
        capture.last_update_ms = None
        self.capture_state = CaptureState.IDLE
        self.events.record("switched_to_typed", trial_index=self.trial_index)

    def edit_answer(self, text: str) -> None:
        """Replace the answer text: a typed answer, or a reviewed transcript."""
        self._require("edit_answer", Phase.LISTENING)
        if self.capture_state == CaptureState.RECORDING:
            raise InvalidTransition("Stop recording before editing the answer.")
        if self.capture.mode == CaptureMode.VOICE and self.capture_state != CaptureState.REVIEW:
            raise InvalidTransition("Record an answer or switch to typing first.")
        self.capture.transcript = text or ""

    # ------------------------------------------------------------ submission

    def submit(self, answer: str | None = None) -> TrialResult | None:
        """
        Commit the answer for the active trial and show feedback.

        With no *answer*, the current transcript (typed or reviewed) is used.
        Passing an *answer* before anything has been recorded counts as a
        typed answer. A trial is finalised once: later calls return None.

        Raises:
            EmptyAnswer: the answer is empty or whitespace. No result is made.
            InvalidTransition: called outside the listening phase.
        """
        if self._finalized:
            self.events.record("submit_ignored", trial_index=self.trial_index)
            return None
        self._require("submit", Phase.LISTENING)
        if self.capture_state == CaptureState.RECORDING:
            self.stop_recording()

        capture = self.capture
        text = (capture.transcript if answer is None else answer) or ""
        text = text.strip()
        if not text:
            self.events.record("submit_rejected", trial_index=self.trial_index, reason="empty")
            raise EmptyAnswer("An answer is required before submitting.")
        if answer is not None:
            if capture.mode == CaptureMode.VOICE and self.capture_state != CaptureState.REVIEW:
                capture.mode = CaptureMode.TYPED
            capture.transcript = text

        self._finalized = True
        result = self._build_result(capture, text)
        self.current_result = result
        self.capture = None
        self.capture_state = None
        self.events.record(
            "submitted",
            trial_index=result.trial_index,
            mode=result.mode,
            is_correct=result.is_correct,
            confidence=result.transcript_confidence,
            reaction_time_ms=result.reaction_time_ms,
        )
        if self.on_result is not None:
            self.on_result(result)
        if self._enter(Phase.FEEDBACK, trial_index=result.trial_index, is_correct=result.is_correct):
            self._schedule(self.timing.feedback_interval_ms, self._advance, "feedback_interval")
        return result

    def _build_result(self, capture: TrialCapture, text: str) -> TrialResult:
        question = self.question
        now = self.scheduler.now_ms()
        reaction_time_ms = max(0, int(round(now - self.stimulus_onset_ms)))

        if capture.mode == CaptureMode.TYPED:
            confidence = score_typed_answer(text, question.correct_keywords)
            api_confidence = 0.0
            speech_start = speech_end = None
            speech_duration_ms = 0
        else:
            speech_start = capture.speech_start_ms
            speech_end = capture.speech_end_ms
            confidence = score_voice_answer(
                text,
                question.correct_keywords,
                speech_start,
                speech_end,
                capture.recognizer_confidence,
            )
            api_confidence = clamp(float(capture.recognizer_confidence or 0.0))
            if speech_start is not None and speech_end is not None:
                speech_duration_ms = max(0, int(round(speech_end - speech_start)))
            else:
                speech_duration_ms = 0

        if self.overrides.is_overridden(self.trial_index):
            self.events.record(
                "confidence_overridden", trial_index=self.trial_index, computed=confidence
            )
            confidence = self.overrides.apply(self.trial_index, confidence)

        return TrialResult(
            trial_index=self.trial_index,
            question_id=question.id,
            stimulus_text=question.text,
            transcript=text,
            transcript_confidence=clamp(confidence),
            original_api_confidence=api_confidence,
            reaction_time_ms=reaction_time_ms,
            speech_start_timestamp=speech_start,
            speech_end_timestamp=speech_end,
            speech_duration_ms=speech_duration_ms,
            is_correct=1 if question.is_correct(text) else 0,
            correct_answer=question.correct_answer,
            mode=CaptureMode(capture.mode).value,
            created_at=timezone.now().isoformat(),
        )

    # -------------------------------------------------------------- teardown

    def teardown(self) -> None:
        """Cancel every pending timer and release the recognizer."""
        self._torn_down = True
        self._new_generation()
        self._recording_token += 1
        if self.capture_state == CaptureState.RECORDING:
            self.capture_state = CaptureState.IDLE
        self.adapter.abort()
        self.events.record("teardown", phase=self.phase.value)

    # --------------------------------------------------------------- helpers

    def _require(self, action: str, *phases) -> None:
        if self._torn_down:
            raise InvalidTransition(f"{action} called after teardown.")
        if self.phase not in phases:
            raise InvalidTransition(f"{action} is not allowed during the {self.phase.label} phase.")

    def _enter(self, phase, **fields) -> bool:
        """Switch phase. Returns False when the trial index is out of range."""
        if phase in _TRIAL_PHASES and self.question is None:
            self.events.record(
                "index_out_of_range", phase=phase.value, trial_index=self.trial_index
            )
            self._complete()
            return False
        previous = self.phase
        self.phase = phase
        self.events.record("phase", phase=phase.value, previous=previous.value, **fields)
        return True

    def _set_fallback(self, reason: str) -> None:
        self.fallback_mode = True
        logger.info("Voice lane disabled for this session (%s)", reason)
        self.events.record("fallback_mode", reason=reason)

    def _schedule(self, delay_ms: float, callback, name: str):
        generation = self._generation

        def fire():
            if generation != self._generation or self._torn_down:
                self.events.record("timer_ignored", timer=name)
                return
            self.events.record("timer_fired", timer=name, trial_index=self.trial_index)
            callback()

        handle = self.scheduler.call_later(delay_ms, fire)
        self._timers.append(handle)
        return handle

    def _cancel_speech_timeout(self) -> None:
        if self._speech_timeout is not None:
            self._speech_timeout.cancel()
            self._speech_timeout = None

    def _new_generation(self) -> None:
        self._generation += 1
        for handle in self._timers:
            handle.cancel()
        self._timers = []
        self._speech_timeout = None
