"""Diagnostic logging setup with redaction of personal and secret data."""
import logging
import re

EMAIL_PATTERN = re.compile(r'[\w.+-]+@[\w-]+(\.[\w-]+)+')
SENSITIVE_KEY_PATTERN = re.compile(r'password|otp|code|token|secret|key', re.IGNORECASE)
REDACTED = '[REDACTED]'


def redact(value):
    """Return ``value`` with e-mail addresses and sensitive mapping values masked."""
    if isinstance(value, str):
        return EMAIL_PATTERN.sub(REDACTED, value)
    if isinstance(value, dict):
        return {
            k: REDACTED if SENSITIVE_KEY_PATTERN.search(str(k)) else redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    return value


class RedactingFilter(logging.Filter):
    """Masks sensitive data before a record reaches any handler."""

    def filter(self, record):
        record.msg = redact(record.msg)
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif record.args:
            record.args = tuple(redact(a) for a in record.args)
        return True


def configure_logging(app):
    """Set the level from ``LOG_LEVEL`` and redact on every app handler.

    ``app.logger`` is the ``auditflow`` package logger, so module loggers
    created with ``logging.getLogger(__name__)`` propagate to these handlers.
    """
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    app.logger.setLevel(level)
    for handler in app.logger.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())
