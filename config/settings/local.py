from config.env import LocalEnv

from .base import *  # noqa: F403

env = LocalEnv()

# GENERAL
# ------------------------------------------------------------------------------
DEBUG = env.DJANGO_DEBUG
SECRET_KEY = env.DJANGO_SECRET_KEY
ALLOWED_HOSTS = env.DJANGO_ALLOWED_HOSTS or ["localhost", "0.0.0.0", "127.0.0.1"]  # noqa: S104

# HUEY
# ------------------------------------------------------------------------------
HUEY["immediate"] = env.HUEY_IMMEDIATE  # noqa: F405

LOGGING["loggers"]["voicelab"]["level"] = "DEBUG"  # noqa: F405
