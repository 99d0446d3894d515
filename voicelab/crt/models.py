from uuid import uuid4

from django.db import models
from django.db.models import CharField
from django.db.models import DateTimeField
from django.db.models import FloatField
from django.db.models import IntegerField
from django.db.models import Model
from django.db.models import PositiveIntegerField
from django.db.models import PositiveSmallIntegerField
from django.db.models import TextField
from django.db.models import UUIDField

from voicelab.crt.choices import CaptureMode


class VoiceResponse(Model):
    """One finished CRT trial as posted by the result sink."""

    CORRECTNESS_CHOICES = [(0, "Incorrect"), (1, "Correct")]

    id = UUIDField(primary_key=True, default=uuid4, editable=False)
    experiment_id = CharField(max_length=100)
    participant_id = CharField(max_length=100)
    trial_index = PositiveIntegerField()
    question_id = CharField(max_length=100, blank=True)
    stimulus_text = TextField(blank=True)
    transcript = TextField(blank=True)
    transcript_confidence = FloatField(null=True, blank=True)
    original_api_confidence = FloatField(null=True, blank=True)
    reaction_time_ms = PositiveIntegerField()
    speech_start_timestamp = FloatField(null=True, blank=True)
    speech_end_timestamp = FloatField(null=True, blank=True)
    speech_duration_ms = IntegerField(default=0)
    is_correct = PositiveSmallIntegerField(choices=CORRECTNESS_CHOICES, default=0)
    correct_answer = CharField(max_length=255, blank=True)
    mode = CharField(max_length=10, choices=CaptureMode.choices, default=CaptureMode.VOICE)
    client_created_at = DateTimeField(null=True, blank=True)
    created_at = DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["experiment_id", "participant_id"], name="crt_vr_experiment_participant"),
            models.Index(fields=["experiment_id", "created_at"], name="crt_vr_experiment_created"),
        ]

    def __str__(self) -> str:
        return f"{self.experiment_id}/{self.participant_id} trial {self.trial_index} ({self.mode})"

    def as_payload(self) -> dict:
        created_at = self.client_created_at or self.created_at
        return {
            "id": str(self.id),
            "experimentId": self.experiment_id,
            "participantId": self.participant_id,
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
            "createdAt": created_at.isoformat() if created_at else None,
        }
