# Registry of experiment templates served by this app.
# Each entry defines metadata used by both the backend engine and the page
# embedding it.

TEMPLATE_REGISTRY: dict[str, dict] = {
    "voice-crt": {
        "label": "Voice CRT",
        "full_name": "Voice-Based Cognitive Reflection Test",
        "description": "Reasoning test using voice responses to measure intuitive vs reflective thinking",
        "details": (
            "Participants answer classic cognitive reflection questions using voice input. "
            "Speech is converted to text in the browser; accuracy, response time and a "
            "blended confidence score are recorded for every answer."
        ),
        "measures": [
            "Analytical reasoning",
            "Response inhibition",
            "Voice fluency",
            "Reaction time",
        ],
        "language": "en-IN",
        "duration_display": "~5-7 min",
        "ready_pause_ms": 1000,
        "reading_interval_ms": 3000,
        "speech_timeout_ms": 30_000,
        "feedback_interval_ms": 2000,
        "instructions": (
            "You'll see a reasoning question on screen. Read it carefully. "
            "Press record and speak your answer, or type it instead. "
            "You can check and correct the transcript before submitting. "
            "These questions often have intuitive (but incorrect) answers, so take your time."
        ),
    },
}
