from django.apps import AppConfig


class CrtConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "voicelab.crt"
    verbose_name = "Voice CRT"
