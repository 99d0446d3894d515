"""Question bank for the Cognitive Reflection Test."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    correct_keywords: tuple[str, ...]
    correct_answer: str
    explanation: str = ""

    def is_correct(self, answer: str) -> bool:
        """True if any accepted keyword occurs in *answer* (case-insensitive)."""
        return is_correct(self, answer)


_RAW_QUESTIONS = [
    {
        "id": "q1_bat_ball",
        "text": (
            "A bat and a ball cost one hundred and ten rupees in total. "
            "The bat costs one hundred rupees more than the ball. "
            "How much does the ball cost?"
        ),
        "correctKeywords": ["five", "5", "5 rupees", "five rupees"],
        "correctAnswer": "5 rupees",
        "explanation": (
            "The intuitive answer is 10, but the correct answer is 5 rupees "
            "(ball = 5, bat = 105, total = 110)"
        ),
    },
    {
        "id": "q2_machines",
        "text": (
            "If it takes five machines five minutes to make five widgets, "
            "how long would it take one hundred machines to make one hundred widgets?"
        ),
        "correctKeywords": ["five", "5", "5 minutes", "five minutes"],
        "correctAnswer": "5 minutes",
        "explanation": (
            "Each machine makes 1 widget in 5 minutes, so 100 machines make "
            "100 widgets in 5 minutes"
        ),
    },
    {
        "id": "q3_lotus",
        "text": (
            "In a lake, there is a patch of lotus flowers. Every day, the patch doubles in size. "
            "If it takes forty eight days for the patch to cover the entire lake, "
            "how long would it take for the patch to cover half of the lake?"
        ),
        "correctKeywords": ["forty seven", "47", "47 days", "forty seven days"],
        "correctAnswer": "47 days",
        "explanation": (
            "If it doubles every day, then one day before it covers the full lake "
            "(day 48), it covers half (day 47)"
        ),
    },
]


def _pick(entry: dict, *keys, default=None):
    for key in keys:
        if key in entry:
            return entry[key]
    return default


def load_question_bank(raw: Iterable[dict] | None = None) -> tuple[Question, ...]:
    """
    Build an ordered tuple of Questions from plain dicts.

    Accepts either the camelCase keys used by the front end
    (``correctKeywords``, ``correctAnswer``) or their snake_case equivalents.

    Raises:
        ValueError: if an entry has no id, no text, no keywords, or the ids
            are not unique.
    """
    questions = []
    seen_ids = set()
    for position, entry in enumerate(_RAW_QUESTIONS if raw is None else raw):
        question_id = _pick(entry, "id")
        text = _pick(entry, "text")
        keywords = _pick(entry, "correctKeywords", "correct_keywords", default=[])
        if not question_id or not text:
            raise ValueError(f"Question at position {position} needs an id and text.")
        if not keywords:
            raise ValueError(f"Question '{question_id}' has no accepted keywords.")
        if question_id in seen_ids:
            raise ValueError(f"Duplicate question id '{question_id}'.")
        seen_ids.add(question_id)
        questions.append(
            Question(
                id=str(question_id),
                text=str(text),
                correct_keywords=tuple(str(k) for k in keywords),
                correct_answer=str(_pick(entry, "correctAnswer", "correct_answer", default="")),
                explanation=str(_pick(entry, "explanation", default="")),
            )
        )
    return tuple(questions)


def is_correct(question: Question, answer: str) -> bool:
    if not answer:
        return False
    lowered = answer.lower()
    return any(keyword.lower() in lowered for keyword in question.correct_keywords)


QUESTION_BANK: tuple[Question, ...] = load_question_bank()
