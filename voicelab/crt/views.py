import json
import logging

from django.http import JsonResponse
from django.utils.dateparse import parse_datetime
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from voicelab.crt.choices import CaptureMode
from voicelab.crt.helpers.metrics.crt import compute_crt_summary
from voicelab.crt.helpers.questions import QUESTION_BANK
from voicelab.crt.helpers.trial import TrialTiming
from voicelab.crt.models import VoiceResponse
from voicelab.crt.registry import TEMPLATE_REGISTRY

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """A field in the posted trial record has the wrong type or range."""


def _int_field(data, key, default=None, minimum=None):
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise PayloadError(f"{key} must be an integer")
    try:
        value = int(value)
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"{key} must be an integer") from exc
    if minimum is not None and value < minimum:
        raise PayloadError(f"{key} must be >= {minimum}")
    return value


def _float_field(data, key, low=None, high=None):
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise PayloadError(f"{key} must be a number")
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"{key} must be a number") from exc
    if (low is not None and value < low) or (high is not None and value > high):
        raise PayloadError(f"{key} must be between {low} and {high}")
    return value


@method_decorator(csrf_exempt, name="dispatch")
class VoiceResponseView(View):
    """
    Result sink for finished CRT trials.

    POST body: one TrialResult (camelCase) plus experimentId and participantId.
    Returns:
        201 {"ok": true, "id": "<uuid>"}
        422 on invalid JSON, missing fields, or out-of-range values

    GET ?experimentId=&participantId=
    Returns:
        200 {"ok": true, "data": [...newest first], "summary": {...}}
    """

    REQUIRED_FIELDS = frozenset(
        {
            "experimentId",
            "participantId",
            "trialIndex",
            "reactionTimeMs",
        }
    )

    def post(self, request):
        try:
            data = json.loads(request.body)
        except (json.JSONDecodeError, ValueError):
            return JsonResponse({"error": "Invalid JSON"}, status=422)
        if not isinstance(data, dict):
            return JsonResponse({"error": "Expected a JSON object"}, status=422)

        present = {key for key, value in data.items() if value not in (None, "")}
        missing = self.REQUIRED_FIELDS - present
        if missing:
            return JsonResponse(
                {"error": f"Missing fields: {', '.join(sorted(missing))}"},
                status=422,
            )

        mode = data.get("mode") or CaptureMode.VOICE
        if mode not in CaptureMode.values:
            return JsonResponse({"error": f"Unknown mode: '{mode}'"}, status=422)

        try:
            trial_index = _int_field(data, "trialIndex", minimum=0)
            reaction_time_ms = _int_field(data, "reactionTimeMs", minimum=0)
            speech_duration_ms = _int_field(data, "speechDurationMs", default=0, minimum=0)
            is_correct = _int_field(data, "isCorrect", default=0)
            transcript_confidence = _float_field(data, "transcriptConfidence", 0.0, 1.0)
            original_api_confidence = _float_field(data, "originalApiConfidence", 0.0, 1.0)
            speech_start = _float_field(data, "speechStartTimestamp")
            speech_end = _float_field(data, "speechEndTimestamp")
        except PayloadError as exc:
            return JsonResponse({"error": str(exc)}, status=422)
        if is_correct not in (0, 1):
            return JsonResponse({"error": "isCorrect must be 0 or 1"}, status=422)

        client_created_at = None
        if data.get("createdAt"):
            client_created_at = parse_datetime(str(data["createdAt"]))
            if client_created_at is None:
                return JsonResponse({"error": "Invalid datetime format for createdAt"}, status=422)

        response = VoiceResponse.objects.create(
            experiment_id=str(data["experimentId"]),
            participant_id=str(data["participantId"]),
            trial_index=trial_index,
            question_id=str(data.get("questionId") or ""),
            stimulus_text=str(data.get("stimulusText") or ""),
            transcript=str(data.get("transcript") or ""),
            transcript_confidence=transcript_confidence,
            original_api_confidence=original_api_confidence,
            reaction_time_ms=reaction_time_ms,
            speech_start_timestamp=speech_start,
            speech_end_timestamp=speech_end,
            speech_duration_ms=speech_duration_ms,
            is_correct=is_correct,
            correct_answer=str(data.get("correctAnswer") or ""),
            mode=mode,
            client_created_at=client_created_at,
        )
        logger.info(
            "Saved voice response %s (%s/%s trial %s)",
            response.id,
            response.experiment_id,
            response.participant_id,
            response.trial_index,
        )
        return JsonResponse({"ok": True, "id": str(response.id)}, status=201)

    def get(self, request):
        responses = VoiceResponse.objects.all()
        experiment_id = request.GET.get("experimentId")
        participant_id = request.GET.get("participantId")
        if experiment_id:
            responses = responses.filter(experiment_id=experiment_id)
        if participant_id:
            responses = responses.filter(participant_id=participant_id)

        data = [r.as_payload() for r in responses.order_by("-created_at")]
        return JsonResponse({"ok": True, "data": data, "summary": compute_crt_summary(data)})


voice_responses_view = VoiceResponseView.as_view()


class TemplateConfigView(View):
    """
    Everything the embedding page needs to run a template.

    GET /api/templates/<template_id>
    Returns:
        200 {"ok": true, "template": {...registry metadata, "timing": {...}},
             "questions": [{"id", "text"}, ...]}
        404 for an unknown template id
    """

    def get(self, request, template_id):
        if template_id not in TEMPLATE_REGISTRY:
            return JsonResponse({"error": f"Unknown template: '{template_id}'"}, status=404)
        meta = TEMPLATE_REGISTRY[template_id]
        timing = TrialTiming.from_settings()
        template = {
            "id": template_id,
            "label": meta["label"],
            "fullName": meta["full_name"],
            "description": meta["description"],
            "details": meta["details"],
            "measures": list(meta["measures"]),
            "language": meta["language"],
            "durationDisplay": meta["duration_display"],
            "instructions": meta["instructions"],
            "timing": {
                "readyPauseMs": timing.ready_pause_ms,
                "readingIntervalMs": timing.reading_interval_ms,
                "speechTimeoutMs": timing.speech_timeout_ms,
                "feedbackIntervalMs": timing.feedback_interval_ms,
            },
        }
        # Accepted keywords stay server-side.
        questions = [{"id": q.id, "text": q.text} for q in QUESTION_BANK]
        return JsonResponse({"ok": True, "template": template, "questions": questions})


template_config_view = TemplateConfigView.as_view()
