"""Unit tests for CRT summary metrics."""
from voicelab.crt.helpers.metrics.crt import compute_crt_summary


def _trial(is_correct=1, rt_ms=3000, mode="voice"):
    return {"isCorrect": is_correct, "reactionTimeMs": rt_ms, "mode": mode}


class TestComputeCrtSummary:
    def test_empty_trials(self):
        result = compute_crt_summary([])
        assert result["total_trials"] == 0
        assert result["correct_answers"] == 0
        assert result["accuracy"] == 0
        assert result["average_reaction_time"] is None
        assert result["fastest_reaction_time"] is None
        assert result["mode_counts"] == {"voice": 0, "typed": 0}

    def test_accuracy_and_mean(self):
        trials = [_trial(1, 4000), _trial(0, 6000), _trial(1, 5000)]
        result = compute_crt_summary(trials)
        assert result["total_trials"] == 3
        assert result["correct_answers"] == 2
        assert result["accuracy"] == 67
        assert result["average_reaction_time"] == 5000
        assert result["fastest_reaction_time"] == 4000
        assert result["slowest_reaction_time"] == 6000

    def test_rounding_is_half_up(self):
        trials = [_trial(1, 1000), _trial(0, 1001)]
        result = compute_crt_summary(trials)
        assert result["accuracy"] == 50
        assert result["average_reaction_time"] == 1001

    def test_one_of_three_rounds_down(self):
        trials = [_trial(1), _trial(0), _trial(0)]
        assert compute_crt_summary(trials)["accuracy"] == 33

    def test_mode_counts(self):
        trials = [_trial(mode="voice"), _trial(mode="typed"), _trial(mode="typed")]
        assert compute_crt_summary(trials)["mode_counts"] == {"voice": 1, "typed": 2}

    def test_missing_reaction_times_skipped(self):
        trials = [_trial(1, None), _trial(1, 2000)]
        result = compute_crt_summary(trials)
        assert result["average_reaction_time"] == 2000
        assert result["total_trials"] == 2
