import json
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from voicelab.crt.models import VoiceResponse
from voicelab.crt.registry import TEMPLATE_REGISTRY
from voicelab.crt.tests.factories import VoiceResponseFactory


def _valid_payload(**overrides):
    payload = {
        "experimentId": "exp-1",
        "participantId": "p-1",
        "trialIndex": 0,
        "questionId": "q1_bat_ball",
        "stimulusText": "A bat and a ball cost...",
        "transcript": "five rupees",
        "transcriptConfidence": 0.94,
        "originalApiConfidence": 0.9,
        "reactionTimeMs": 4500,
        "speechStartTimestamp": 4000,
        "speechEndTimestamp": 5200,
        "speechDurationMs": 1200,
        "isCorrect": 1,
        "correctAnswer": "5 rupees",
        "mode": "voice",
        "createdAt": timezone.now().isoformat(),
    }
    payload.update(overrides)
    return payload


def _post(client, payload, url=None):
    return client.post(
        url or reverse("crt:voice_responses"),
        data=json.dumps(payload) if not isinstance(payload, str) else payload,
        content_type="application/json",
    )


# ─────────────────────────────────────────────────────────────────────────────
# POST /api/voice-responses
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.django_db
class TestVoiceResponsePost:
    def test_url_has_no_trailing_slash(self):
        assert reverse("crt:voice_responses") == "/api/voice-responses"

    def test_valid_payload_returns_201(self, client):
        response = _post(client, _valid_payload())
        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        saved = VoiceResponse.objects.get(pk=body["id"])
        assert saved.transcript == "five rupees"
        assert saved.transcript_confidence == pytest.approx(0.94)
        assert saved.speech_duration_ms == 1200
        assert saved.mode == "voice"
        assert saved.client_created_at is not None

    def test_trailing_slash_also_accepted(self, client):
        response = _post(client, _valid_payload(), url="/api/voice-responses/")
        assert response.status_code == 201

    def test_typed_payload_with_null_timestamps(self, client):
        payload = _valid_payload(
            mode="typed",
            originalApiConfidence=0.0,
            speechStartTimestamp=None,
            speechEndTimestamp=None,
            speechDurationMs=0,
        )
        response = _post(client, payload)
        assert response.status_code == 201
        saved = VoiceResponse.objects.get()
        assert saved.speech_start_timestamp is None
        assert saved.mode == "typed"

    def test_minimal_payload(self, client):
        payload = {"experimentId": "e", "participantId": "p", "trialIndex": 2, "reactionTimeMs": 10}
        response = _post(client, payload)
        assert response.status_code == 201
        saved = VoiceResponse.objects.get()
        assert saved.mode == "voice"
        assert saved.is_correct == 0

    def test_invalid_json_returns_422(self, client):
        response = _post(client, "not json {")
        assert response.status_code == 422
        assert response.json()["error"] == "Invalid JSON"

    def test_non_object_returns_422(self, client):
        response = _post(client, [1, 2, 3])
        assert response.status_code == 422

    @pytest.mark.parametrize("field", ["experimentId", "participantId", "trialIndex", "reactionTimeMs"])
    def test_missing_required_field_returns_422(self, client, field):
        payload = _valid_payload()
        del payload[field]
        response = _post(client, payload)
        assert response.status_code == 422
        assert field in response.json()["error"]
        assert not VoiceResponse.objects.exists()

    def test_empty_identifier_counts_as_missing(self, client):
        response = _post(client, _valid_payload(participantId=""))
        assert response.status_code == 422

    def test_unknown_mode_returns_422(self, client):
        response = _post(client, _valid_payload(mode="telepathy"))
        assert response.status_code == 422
        assert "Unknown mode" in response.json()["error"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"trialIndex": -1},
            {"trialIndex": "first"},
            {"trialIndex": 1.5},
            {"reactionTimeMs": True},
            {"transcriptConfidence": 1.2},
            {"originalApiConfidence": -0.1},
            {"transcriptConfidence": "high"},
            {"isCorrect": 2},
            {"createdAt": "yesterday"},
        ],
    )
    def test_out_of_range_values_return_422(self, client, overrides):
        response = _post(client, _valid_payload(**overrides))
        assert response.status_code == 422
        assert not VoiceResponse.objects.exists()

    def test_no_csrf_token_needed(self):
        from django.test import Client

        csrf_client = Client(enforce_csrf_checks=True)
        response = _post(csrf_client, _valid_payload())
        assert response.status_code == 201


# ─────────────────────────────────────────────────────────────────────────────
# GET /api/voice-responses
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.django_db
class TestVoiceResponseGet:
    def test_returns_newest_first(self, client):
        older = VoiceResponseFactory(participant_id="p-1", trial_index=0)
        newer = VoiceResponseFactory(participant_id="p-1", trial_index=1)
        VoiceResponse.objects.filter(pk=older.pk).update(created_at=timezone.now() - timedelta(minutes=5))
        response = client.get(reverse("crt:voice_responses"))
        assert response.status_code == 200
        data = response.json()["data"]
        assert [row["id"] for row in data] == [str(newer.id), str(older.id)]

    def test_filters_by_experiment_and_participant(self, client):
        VoiceResponseFactory(experiment_id="exp-1", participant_id="p-1")
        VoiceResponseFactory(experiment_id="exp-1", participant_id="p-2")
        VoiceResponseFactory(experiment_id="exp-2", participant_id="p-1")
        url = reverse("crt:voice_responses")

        by_experiment = client.get(url, {"experimentId": "exp-1"}).json()["data"]
        assert len(by_experiment) == 2

        by_both = client.get(url, {"experimentId": "exp-1", "participantId": "p-1"}).json()["data"]
        assert len(by_both) == 1
        assert by_both[0]["participantId"] == "p-1"

    def test_includes_summary(self, client):
        VoiceResponseFactory(participant_id="p-1", is_correct=1, reaction_time_ms=4000)
        VoiceResponseFactory(participant_id="p-1", is_correct=0, reaction_time_ms=6000, mode="typed")
        body = client.get(reverse("crt:voice_responses"), {"participantId": "p-1"}).json()
        assert body["ok"] is True
        assert body["summary"]["total_trials"] == 2
        assert body["summary"]["accuracy"] == 50
        assert body["summary"]["average_reaction_time"] == 5000
        assert body["summary"]["mode_counts"] == {"voice": 1, "typed": 1}

    def test_empty(self, client):
        body = client.get(reverse("crt:voice_responses")).json()
        assert body["data"] == []
        assert body["summary"]["total_trials"] == 0

    def test_round_trip_through_post(self, client):
        _post(client, _valid_payload(trialIndex=2, transcript="47 days"))
        row = client.get(reverse("crt:voice_responses"), {"experimentId": "exp-1"}).json()["data"][0]
        assert row["trialIndex"] == 2
        assert row["transcript"] == "47 days"
        assert row["speechStartTimestamp"] == 4000


@pytest.mark.django_db
class TestVoiceResponseModel:
    def test_str(self):
        response = VoiceResponseFactory(experiment_id="exp-9", participant_id="p-3", trial_index=1)
        assert str(response) == "exp-9/p-3 trial 1 (voice)"

    def test_payload_prefers_client_timestamp(self):
        stamp = timezone.now() - timedelta(days=1)
        response = VoiceResponseFactory(client_created_at=stamp)
        assert response.as_payload()["createdAt"] == stamp.isoformat()

    def test_payload_falls_back_to_server_timestamp(self):
        response = VoiceResponseFactory()
        assert response.as_payload()["createdAt"] == response.created_at.isoformat()


# ─────────────────────────────────────────────────────────────────────────────
# GET /api/templates/<template_id>
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.django_db
class TestTemplateConfigView:
    def test_url(self):
        assert reverse("crt:template_config", args=["voice-crt"]) == "/api/templates/voice-crt"

    def test_returns_registry_metadata(self, client):
        body = client.get(reverse("crt:template_config", args=["voice-crt"])).json()
        template = body["template"]
        assert body["ok"] is True
        assert template["id"] == "voice-crt"
        assert template["fullName"] == TEMPLATE_REGISTRY["voice-crt"]["full_name"]
        assert template["language"] == "en-IN"
        assert "Reaction time" in template["measures"]
        assert template["instructions"].startswith("You'll see a reasoning question")
        assert template["durationDisplay"]

    def test_timing_follows_settings(self, client, settings):
        settings.CRT_SPEECH_TIMEOUT_MS = 15_000
        template = client.get(reverse("crt:template_config", args=["voice-crt"])).json()["template"]
        assert template["timing"] == {
            "readyPauseMs": 1000,
            "readingIntervalMs": 3000,
            "speechTimeoutMs": 15_000,
            "feedbackIntervalMs": 2000,
        }

    def test_questions_without_answers(self, client):
        questions = client.get(reverse("crt:template_config", args=["voice-crt"])).json()["questions"]
        assert [q["id"] for q in questions] == ["q1_bat_ball", "q2_machines", "q3_lotus"]
        assert all(set(q) == {"id", "text"} for q in questions)

    def test_unknown_template_returns_404(self, client):
        response = client.get(reverse("crt:template_config", args=["stroop"]))
        assert response.status_code == 404
        assert "Unknown template" in response.json()["error"]
