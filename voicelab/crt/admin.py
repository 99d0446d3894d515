from django.contrib import admin

from .models import VoiceResponse


@admin.register(VoiceResponse)
class VoiceResponseAdmin(admin.ModelAdmin):
    list_display = [
        "experiment_id",
        "participant_id",
        "trial_index",
        "mode",
        "is_correct",
        "transcript_confidence",
        "reaction_time_ms",
        "created_at",
    ]
    list_filter = ["mode", "is_correct", "question_id"]
    search_fields = ["experiment_id", "participant_id", "transcript"]
    ordering = ["-created_at"]
