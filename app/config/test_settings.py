"""
Settings for the test suite.

Layers test defaults over config.settings: an in-memory SQLite database,
a local-memory cache, eager Celery and a fast password hasher. Environment
variables still win where they are set, so the suite can run against
PostgreSQL by exporting DATABASE_URL.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")

from config.settings import *  # noqa: E402,F401,F403

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}

STRIPE_SECRET_KEY = "sk_test_settlements"
STRIPE_WEBHOOK_SECRET = "whsec_test_settlements"
SETTLEMENT_FEE_RATE_BASIS_POINTS = 1500
SETTLEMENT_INTERNAL_SECRET = "internal-test-secret"
SETTLEMENT_REDIRECT_ALLOWED_HOSTS = ["app.example.com"]

# Let caplog see settlement records through the root logger
LOGGING["loggers"]["settlements"]["propagate"] = True  # noqa: F405
