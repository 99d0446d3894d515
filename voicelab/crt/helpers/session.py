"""
Session aggregation for the voice CRT.

A CRTSession runs the trial state machine over every question, keeps the
ordered TrialResults, forwards each one to the result sink, and reports the
summary through the host's completion callback once all questions are done.
"""
from __future__ import annotations

import logging

from django.utils import timezone

from voicelab.crt.helpers.metrics.crt import compute_crt_summary
from voicelab.crt.helpers.questions import QUESTION_BANK
from voicelab.crt.helpers.result_sink import HttpResultSink
from voicelab.crt.helpers.trial import TrialStateMachine

logger = logging.getLogger(__name__)


class MissingSessionIdentifiers(ValueError):
    """Raised when a session is created without an experiment or participant id."""


def compute_session_summary(results) -> dict:
    """Summary metrics for a list of TrialResults."""
    return compute_crt_summary([r.as_payload() for r in results])


class CRTSession:
    def __init__(
        self,
        experiment_id: str,
        participant_id: str,
        scheduler,
        *,
        questions=None,
        adapter=None,
        sink=None,
        on_complete=None,
        timing=None,
        overrides=None,
        event_log=None,
    ):
        if not experiment_id or not participant_id:
            raise MissingSessionIdentifiers(
                "experiment_id and participant_id are required to start a session."
            )
        self.experiment_id = str(experiment_id)
        self.participant_id = str(participant_id)
        self.sink = sink if sink is not None else HttpResultSink()
        self.on_complete = on_complete
        self.results = []
        self.summary: dict | None = None
        self.completed_at: str | None = None
        self.report: dict | None = None

        self.machine = TrialStateMachine(
            QUESTION_BANK if questions is None else questions,
            scheduler,
            adapter,
            timing=timing,
            overrides=overrides,
            on_result=self._handle_result,
            on_complete=self._handle_complete,
            event_log=event_log,
        )

    @property
    def events(self):
        return self.machine.events

    @property
    def is_complete(self) -> bool:
        return self.report is not None

    def payload_for(self, result) -> dict:
        payload = result.as_payload()
        payload["experimentId"] = self.experiment_id
        payload["participantId"] = self.participant_id
        return payload

    def _handle_result(self, result) -> None:
        if any(r.trial_index == result.trial_index for r in self.results):
            logger.warning(
                "Duplicate result for trial %s in session %s/%s ignored",
                result.trial_index,
                self.experiment_id,
                self.participant_id,
            )
            return
        self.results.append(result)
        try:
            self.sink.submit(self.payload_for(result))
        except Exception:
            logger.exception(
                "Result sink failed for trial %s in session %s/%s",
                result.trial_index,
                self.experiment_id,
                self.participant_id,
            )

    def _handle_complete(self) -> None:
        if self.report is not None:
            return
        self.summary = compute_session_summary(self.results)
        self.completed_at = timezone.now().isoformat()
        self.report = {
            "results": list(self.results),
            "summary": self.summary,
            "experimentId": self.experiment_id,
            "participantId": self.participant_id,
            "completedAt": self.completed_at,
        }
        self.events.record(
            "session_complete",
            trials=len(self.results),
            accuracy=self.summary["accuracy"],
        )
        if self.on_complete is not None:
            self.on_complete(self.report)
