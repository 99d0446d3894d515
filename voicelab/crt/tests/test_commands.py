"""Tests for the simulate_crt_session management command."""
import json
from io import StringIO
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError


def _run(*args):
    out = StringIO()
    call_command("simulate_crt_session", *args, stdout=out)
    return out.getvalue()


class TestSimulateCrtSession:
    def test_typed_run_with_canonical_answers(self):
        output = _run()
        assert output.startswith("Voice-Based Cognitive Reflection Test (en-IN, 3 questions, typed answers)")
        assert "Trial 1: '5 rupees' (correct, confidence 1.00, 3000 ms)" in output
        assert "Trial 3: '47 days' (correct" in output
        assert "3/3 correct (100%), mean RT 3000 ms." in output

    def test_voice_run(self):
        output = _run("--voice")
        assert "3 questions, voice answers" in output
        assert "Trial 1: '5 rupees' (correct, confidence 0.94, 4200 ms)" in output
        assert "mean RT 4200 ms." in output

    def test_wrong_answers_counted(self):
        output = _run("--answers", "10 rupees", "100 minutes", "24 days")
        assert "(incorrect" in output
        assert "0/3 correct (0%)" in output

    def test_wrong_number_of_answers(self):
        with pytest.raises(CommandError, match="Expected 3 answers, got 1"):
            _run("--answers", "5")

    def test_empty_answer(self):
        with pytest.raises(CommandError, match="Trial 2"):
            _run("--answers", "5", " ", "47")

    def test_blank_participant(self):
        with pytest.raises(CommandError, match="participant_id"):
            _run("--participant-id", "")

    def test_json_report(self):
        output = _run("--json", "--experiment-id", "exp-json")
        start = output.index("{")
        end = output.rindex("}") + 1
        report = json.loads(output[start:end])
        assert report["experimentId"] == "exp-json"
        assert [r["trialIndex"] for r in report["results"]] == [0, 1, 2]
        assert report["summary"]["accuracy"] == 100

    def test_post_sends_each_trial(self):
        mock_response = MagicMock()
        mock_response.read.return_value = b'{"ok": true}'
        mock_response.__enter__ = lambda s: s
        mock_response.__exit__ = MagicMock(return_value=False)
        with patch(
            "voicelab.crt.helpers.result_sink.urllib.request.urlopen", return_value=mock_response
        ) as urlopen:
            _run("--post")
        assert urlopen.call_count == 3
        body = json.loads(urlopen.call_args[0][0].data)
        assert body["trialIndex"] == 2
        assert body["experimentId"] == "simulation"
