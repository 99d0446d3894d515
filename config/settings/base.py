"""Base settings to build other settings files upon."""
from config.env import BASE_DIR
from config.env import VoicelabEnv

APPS_DIR = BASE_DIR / "voicelab"

env = VoicelabEnv()


# GENERAL
# ------------------------------------------------------------------------------
DEBUG = env.DJANGO_DEBUG
SECRET_KEY = env.DJANGO_SECRET_KEY
ALLOWED_HOSTS = env.DJANGO_ALLOWED_HOSTS
TIME_ZONE = "UTC"
LANGUAGE_CODE = "en-us"
USE_I18N = True
USE_TZ = True

# DATABASES
# ------------------------------------------------------------------------------
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": env.DATABASE_PATH,
    },
}
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# URLS
# ------------------------------------------------------------------------------
ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

# APPS
# ------------------------------------------------------------------------------
DJANGO_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.admin",
]
THIRD_PARTY_APPS = [
    "huey.contrib.djhuey",
]
LOCAL_APPS = [
    "voicelab.crt",
]
INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

# MIDDLEWARE
# ------------------------------------------------------------------------------
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

# STATIC
# ------------------------------------------------------------------------------
STATIC_ROOT = str(BASE_DIR / "staticfiles")
STATIC_URL = "/static/"
MEDIA_ROOT = str(APPS_DIR / "media")
MEDIA_URL = "/media/"

# TEMPLATES
# ------------------------------------------------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# ADMIN
# ------------------------------------------------------------------------------
ADMIN_URL = "admin/"

# LOGGING
# ------------------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(levelname)s %(asctime)s %(module)s %(process)d %(thread)d %(message)s",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "voicelab": {
            "level": env.VOICELAB_LOG_LEVEL,
            "handlers": ["console"],
            "propagate": False,
        },
    },
}

# HUEY
# ------------------------------------------------------------------------------
HUEY = {
    "huey_class": "huey.SqliteHuey",
    "name": "voicelab",
    "filename": env.HUEY_DB_PATH,
    "immediate": env.HUEY_IMMEDIATE,
}

# VOICE CRT
# ------------------------------------------------------------------------------
# Where finished trial records are POSTed by the result sink.
VOICE_RESPONSES_URL = env.VOICE_RESPONSES_URL
# Phase timings (ms); defaults live in the template registry.
CRT_READY_PAUSE_MS = 1000
CRT_READING_INTERVAL_MS = 3000
CRT_SPEECH_TIMEOUT_MS = 30_000
CRT_FEEDBACK_INTERVAL_MS = 2000
# Fixed confidence values keyed by trial index. Empty unless a study protocol
# explicitly asks for one.
CRT_CONFIDENCE_OVERRIDES: dict[int, float] = {}
