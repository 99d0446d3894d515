from django.db.models import TextChoices


class Phase(TextChoices):
    CONSENT = "consent", "Consent"
    INSTRUCTION = "instruction", "Instruction"
    READY = "ready", "Ready"
    QUESTION = "question", "Question"
    LISTENING = "listening", "Listening"
    FEEDBACK = "feedback", "Feedback"
    COMPLETE = "complete", "Complete"


class CaptureState(TextChoices):
    """Substates of the listening phase."""

    IDLE = "idle", "Idle"
    RECORDING = "recording", "Recording"
    REVIEW = "review", "Answer review"


class CaptureMode(TextChoices):
    VOICE = "voice", "Voice"
    TYPED = "typed", "Typed"
