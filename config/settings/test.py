"""
With these settings, tests run faster.
"""

from .base import *  # noqa: F403

# GENERAL
# ------------------------------------------------------------------------------
SECRET_KEY = "test-only-0b6d1c5e8f7a4c2e9d3b1a0f5e4c7d2a"
TEST_RUNNER = "django.test.runner.DiscoverRunner"
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    },
}

# PASSWORDS
# ------------------------------------------------------------------------------
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# HUEY
# ------------------------------------------------------------------------------
HUEY = {
    "huey_class": "huey.MemoryHuey",
    "name": "voicelab-test",
    "immediate": True,
}

VOICE_RESPONSES_URL = "http://testserver/api/voice-responses"
CRT_CONFIDENCE_OVERRIDES = {}
