"""Small helpers shared across services."""
import uuid
from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp, matching what the database columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id():
    return uuid.uuid4().hex


def normalize_email(email):
    return (email or '').strip().lower()


def is_allowed_email(email, allowed_domain):
    """True when ``email`` ends with the configured company domain."""
    email = normalize_email(email)
    domain = (allowed_domain or '').strip().lower()
    if not email or not domain:
        return False
    return email.endswith(domain)
