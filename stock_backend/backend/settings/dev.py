# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS

- SQLite (DATABASE_URL default) and a Vite frontend on :5173
- Outbox emails go to the console unless EMAIL_HOST is set
- Engine loggers at DEBUG unless LOG_LEVEL says otherwise
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, TESTING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1", "0.0.0.0"])

CORS_ALLOWED_ORIGINS = env.list("CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"])

EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

if not TESTING and "LOG_LEVEL" not in env.ENVIRON:
    for logger in LOGGING["loggers"].values():
        logger["level"] = "DEBUG"
