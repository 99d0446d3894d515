"""
Confidence scoring for CRT answers.

All functions are pure: the same inputs always give the same score and no
state is kept between calls. Three sub-scores, each in [0, 1], feed the
blended value:

  keyword     — lexical match of the answer against the accepted phrases
  duration    — how long the spoken response took
  recognizer  — confidence reported by the speech recognizer, when present
"""
from __future__ import annotations

import re
from typing import Iterable

from django.conf import settings

_PUNCTUATION = re.compile(r"[.,!?;]")

OVERLAP_SCALE = 0.7
NEUTRAL_DURATION_SCORE = 0.5

# (keyword, duration, recognizer)
WEIGHTS_WITH_RECOGNIZER = (0.20, 0.20, 0.60)
# (keyword, duration)
WEIGHTS_WITHOUT_RECOGNIZER = (0.75, 0.25)

# Fixed score the reference template forced onto the third trial. Kept for
# reproducing old datasets only; never applied unless configured.
REFERENCE_CONFIDENCE_OVERRIDES = {2: 0.35}


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def tokenize(text: str | None) -> list[str]:
    """Lowercase, strip ``.,!?;`` and split on whitespace."""
    if not text:
        return []
    return _PUNCTUATION.sub("", text.lower()).split()


def _tokens_match(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def phrase_matches(phrase_tokens: list[str], transcript_tokens: list[str]) -> bool:
    """True if every phrase token matches some transcript token (exact or substring)."""
    if not phrase_tokens:
        return False
    return all(
        any(_tokens_match(token, candidate) for candidate in transcript_tokens)
        for token in phrase_tokens
    )


def keyword_score(transcript: str | None, keywords: Iterable[str]) -> float:
    """
    Score how well *transcript* matches any of the accepted keyword phrases.

    Returns 1.0 if some phrase fully matches. Otherwise returns the share of
    distinct keyword tokens present in the transcript, scaled by 0.7.
    """
    transcript_tokens = tokenize(transcript)
    phrases = [tokens for tokens in (tokenize(k) for k in keywords) if tokens]
    if not transcript_tokens or not phrases:
        return 0.0

    exact = 1.0 if any(phrase_matches(p, transcript_tokens) for p in phrases) else 0.0

    vocabulary = set().union(*phrases)
    overlap = len(set(transcript_tokens) & vocabulary) / len(vocabulary)
    return max(exact, overlap * OVERLAP_SCALE)


def duration_score(speech_start_ms: float | None, speech_end_ms: float | None) -> float:
    """
    Piecewise score of the response duration in milliseconds.

      d < 500          0.3
      500 <= d < 1000  0.6
      1000 <= d <= 3000  1.0
      3000 < d <= 5000   0.8
      d > 5000         0.5

    Missing timestamps score a neutral 0.5.
    """
    if speech_start_ms is None or speech_end_ms is None:
        return NEUTRAL_DURATION_SCORE
    duration = speech_end_ms - speech_start_ms
    if duration < 500:
        return 0.3
    if duration < 1000:
        return 0.6
    if duration <= 3000:
        return 1.0
    if duration <= 5000:
        return 0.8
    return 0.5


def recognizer_score(confidence: float | None) -> float | None:
    """Recognizer confidence clamped to [0, 1], or None when absent or not positive."""
    if confidence is None or confidence <= 0:
        return None
    return clamp(float(confidence))


def blended_confidence(keyword: float, duration: float, recognizer: float | None = None) -> float:
    if recognizer is not None:
        w_keyword, w_duration, w_recognizer = WEIGHTS_WITH_RECOGNIZER
        value = w_keyword * keyword + w_duration * duration + w_recognizer * recognizer
    else:
        w_keyword, w_duration = WEIGHTS_WITHOUT_RECOGNIZER
        value = w_keyword * keyword + w_duration * duration
    return clamp(value)


def score_voice_answer(
    transcript: str | None,
    keywords: Iterable[str],
    speech_start_ms: float | None = None,
    speech_end_ms: float | None = None,
    recognizer_confidence: float | None = None,
) -> float:
    return blended_confidence(
        keyword_score(transcript, keywords),
        duration_score(speech_start_ms, speech_end_ms),
        recognizer_score(recognizer_confidence),
    )


def score_typed_answer(transcript: str | None, keywords: Iterable[str]) -> float:
    """Typed answers are deliberate, so only the keyword score counts."""
    return keyword_score(transcript, keywords)


class ConfidenceOverrides:
    """
    Fixed confidence values keyed by trial index, applied after scoring.

    Empty by default. Configure with the ``CRT_CONFIDENCE_OVERRIDES`` setting,
    e.g. ``{2: 0.35}`` to reproduce the reference template's third-trial value.
    """

    def __init__(self, table: dict | None = None):
        self._table = {int(index): clamp(float(value)) for index, value in (table or {}).items()}

    @classmethod
    def from_settings(cls) -> ConfidenceOverrides:
        return cls(getattr(settings, "CRT_CONFIDENCE_OVERRIDES", None))

    def apply(self, trial_index: int, confidence: float) -> float:
        return self._table.get(trial_index, confidence)

    def is_overridden(self, trial_index: int) -> bool:
        return trial_index in self._table

    def __bool__(self) -> bool:
        return bool(self._table)

    def __repr__(self) -> str:
        return f"ConfidenceOverrides({self._table!r})"
