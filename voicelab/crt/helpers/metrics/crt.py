"""Summary metric computation for the voice Cognitive Reflection Test."""
import math


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_crt_summary(trials):
    """
    Compute session summary metrics from a list of trial dicts.

    Each trial dict is expected to have (camelCase, as posted to the
    voice-responses endpoint):
      isCorrect (0 | 1)       — keyword match against the submitted answer
      reactionTimeMs (int)    — stimulus onset to submission, in ms
      mode ("voice"|"typed")  — how the answer was captured

    Returns dict with:
      total_trials, correct_answers,
      accuracy               — round(100 * correct / total), 0 when empty
      average_reaction_time  — round(mean reaction time), None when empty
      fastest_reaction_time, slowest_reaction_time,
      mode_counts            — {"voice": n, "typed": n}
    """
    total = len(trials)
    correct = sum(1 for t in trials if t.get("isCorrect") == 1)
    rts = [t["reactionTimeMs"] for t in trials if t.get("reactionTimeMs") is not None]
    mode_counts = {
        "voice": sum(1 for t in trials if t.get("mode") == "voice"),
        "typed": sum(1 for t in trials if t.get("mode") == "typed"),
    }

    return {
        "total_trials": total,
        "correct_answers": correct,
        "accuracy": _round_half_up(100 * correct / total) if total else 0,
        "average_reaction_time": _round_half_up(sum(rts) / len(rts)) if rts else None,
        "fastest_reaction_time": min(rts) if rts else None,
        "slowest_reaction_time": max(rts) if rts else None,
        "mode_counts": mode_counts,
    }
