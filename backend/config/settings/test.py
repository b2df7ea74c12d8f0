"""
Test settings.
"""

import dj_database_url

from .base import *  # noqa

DEBUG = False

SECRET_KEY = "softzen-test-key"

# In-memory SQLite unless DATABASE_URL points at PostgreSQL (pytest -m postgres)
DATABASES = {
    "default": dj_database_url.config(default="sqlite://:memory:"),
}

# Faster password hashing for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Celery - run tasks synchronously in tests
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

# Disable logging during tests
LOGGING = {
    "version": 1,
    "disable_existing_loggers": True,
    "handlers": {
        "null": {
            "class": "logging.NullHandler",
        },
    },
    "root": {
        "handlers": ["null"],
        "level": "DEBUG",
    },
}
