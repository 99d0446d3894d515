import uuid

from django.db import migrations
from django.db import models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="VoiceResponse",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("experiment_id", models.CharField(max_length=100)),
                ("participant_id", models.CharField(max_length=100)),
                ("trial_index", models.PositiveIntegerField()),
                ("question_id", models.CharField(blank=True, max_length=100)),
                ("stimulus_text", models.TextField(blank=True)),
                ("transcript", models.TextField(blank=True)),
                ("transcript_confidence", models.FloatField(blank=True, null=True)),
                ("original_api_confidence", models.FloatField(blank=True, null=True)),
                ("reaction_time_ms", models.PositiveIntegerField()),
                ("speech_start_timestamp", models.FloatField(blank=True, null=True)),
                ("speech_end_timestamp", models.FloatField(blank=True, null=True)),
                ("speech_duration_ms", models.IntegerField(default=0)),
                (
                    "is_correct",
                    models.PositiveSmallIntegerField(choices=[(0, "Incorrect"), (1, "Correct")], default=0),
                ),
                ("correct_answer", models.CharField(blank=True, max_length=255)),
                (
                    "mode",
                    models.CharField(
                        choices=[("voice", "Voice"), ("typed", "Typed")], default="voice", max_length=10
                    ),
                ),
                ("client_created_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["experiment_id", "participant_id"], name="crt_vr_experiment_participant"),
                    models.Index(fields=["experiment_id", "created_at"], name="crt_vr_experiment_created"),
                ],
            },
        ),
    ]
