"""
Django settings for the customgpt_be project.

Persistence is a MongoDB document store reached through the ``datastore``
app, so the relational ``DATABASES`` setting is left empty.
"""
import os
from pathlib import Path

import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() in ("1", "true", "yes")
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "datastore",
    "authentication",
    "custom_gpts",
    "conversations",
    "team",
    "user_settings",
]

DATABASES = {}

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2SHA1PasswordHasher",
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Document store
DATASTORE = {
    "URI": os.getenv("MONGODB_URI"),
    "NAME": os.getenv("MONGODB_DB_NAME"),
    "MAX_POOL_SIZE": int(os.getenv("MONGODB_MAX_POOL_SIZE", "10")),
    "MIN_POOL_SIZE": int(os.getenv("MONGODB_MIN_POOL_SIZE", "0")),
    "SERVER_SELECTION_TIMEOUT_MS": int(os.getenv("MONGODB_SERVER_SELECTION_TIMEOUT_MS", "10000")),
    "CONNECT_TIMEOUT_MS": int(os.getenv("MONGODB_CONNECT_TIMEOUT_MS", "10000")),
    "SOCKET_TIMEOUT_MS": int(os.getenv("MONGODB_SOCKET_TIMEOUT_MS", "20000")),
    "MAX_IDLE_TIME_MS": int(os.getenv("MONGODB_MAX_IDLE_TIME_MS", "30000")),
}

# Application
APP_URL = os.getenv("APP_URL", "http://localhost:5173")
VERIFICATION_CODE_TTL_MINUTES = int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "30"))
PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "30"))
INVITATION_TTL_DAYS = int(os.getenv("INVITATION_TTL_DAYS", "7"))
PROFILE_PICTURE_MAX_BYTES = 5 * 1024 * 1024

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name}: {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "pymongo": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}

SENTRY_DSN = os.getenv("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2")),
        environment=os.getenv("SENTRY_ENVIRONMENT", "development"),
        send_default_pii=False,
    )
