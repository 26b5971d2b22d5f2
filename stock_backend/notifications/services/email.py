# notifications/services/email.py

"""
EMAIL TRANSPORT (strategy)

- DjangoEmailSender : django.core.mail (SMTP in production)
- LoggingEmailSender: writes the message to the log only

The sender is chosen ONCE per process from configuration:
EMAIL_HOST set -> Django mail, otherwise logging.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


class EmailSender:
    name = "base"

    def send(self, *, subject: str, body: str, recipients: list[str]) -> int:
        raise NotImplementedError


class DjangoEmailSender(EmailSender):
    name = "django"

    def send(self, *, subject: str, body: str, recipients: list[str]) -> int:
        if not recipients:
            return 0
        return send_mail(
            subject,
            body,
            settings.DEFAULT_FROM_EMAIL,
            list(recipients),
            fail_silently=False,
        )


class LoggingEmailSender(EmailSender):
    name = "logging"

    def send(self, *, subject: str, body: str, recipients: list[str]) -> int:
        logger.info("Email (not sent) to=%s subject=%s\n%s", recipients, subject, body)
        return len(recipients)


@lru_cache(maxsize=1)
def get_email_sender() -> EmailSender:
    if (getattr(settings, "EMAIL_HOST", "") or "").strip():
        return DjangoEmailSender()
    return LoggingEmailSender()
