"""
Development settings for the Booking Engine project.

These settings override the base settings for local development environments.
"""

import os

from .base import *  # noqa: F401,F403
from .base import env

SECRET_KEY = env("SECRET_KEY", "django-insecure-development-key-not-for-production")

DEBUG = env("DEBUG", "True") == "True"

ALLOWED_HOSTS = ["*"]

SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("POSTGRES_DB", "bookingengine"),
        "USER": os.environ.get("POSTGRES_USER", "bookingengine"),
        "PASSWORD": os.environ.get("POSTGRES_PASSWORD", "bookingengine"),
        "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
        "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        "CONN_MAX_AGE": 300,
        "OPTIONS": {
            "connect_timeout": 5,
            "sslmode": os.environ.get("POSTGRES_SSL_MODE", "disable"),
        },
        "ATOMIC_REQUESTS": True,
    }
}

if os.environ.get("USE_SQLITE", "False").lower() == "true":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.path.join(BASE_DIR, "db.sqlite3"),  # noqa: F405
            "ATOMIC_REQUESTS": True,
        }
    }
