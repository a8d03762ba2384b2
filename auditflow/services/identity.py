"""
Password identity provider and in-memory pending sign-in store.

The provider owns the ``auth_accounts`` table and a "provider session"
stored in the signed Flask session cookie. A warm provider session only
proves the password step: the two-factor controller decides whether it
becomes an application session.
"""
import secrets
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from flask import session
from werkzeug.security import check_password_hash, generate_password_hash

from auditflow.errors import InvalidCredentials, TooManyAttempts
from auditflow.models import AuthAccount
from auditflow.utils import normalize_email

PROVIDER_SESSION_KEY = 'provider_uid'


class LoginThrottle:
    """Counts failed password attempts per e-mail within a sliding window."""

    def __init__(self, clock, max_attempts=5, window_seconds=900):
        self.clock = clock
        self.max_attempts = max_attempts
        self.window = timedelta(seconds=window_seconds)
        self._failures = {}
        self._lock = threading.Lock()

    def _recent(self, key):
        cutoff = self.clock() - self.window
        recent = [t for t in self._failures.get(key, []) if t > cutoff]
        if recent:
            self._failures[key] = recent
        else:
            self._failures.pop(key, None)
        return recent

    def is_locked(self, key):
        with self._lock:
            return len(self._recent(key)) >= self.max_attempts

    def record_failure(self, key):
        with self._lock:
            self._failures[key] = self._recent(key) + [self.clock()]
            self._sweep()

    def _sweep(self):
        cutoff = self.clock() - self.window
        stale = [k for k, times in self._failures.items() if not times or times[-1] <= cutoff]
        for key in stale:
            del self._failures[key]

    def reset(self, key):
        with self._lock:
            self._failures.pop(key, None)


class PasswordIdentityProvider:
    def __init__(self, db_session, throttle):
        self.db_session = db_session
        self.throttle = throttle

    def create_account(self, uid, email, password):
        account = AuthAccount(uid=uid, email=normalize_email(email),
                              password_hash=generate_password_hash(password))
        self.db_session.add(account)
        return account

    def set_password(self, uid, password):
        account = self.db_session.get(AuthAccount, uid)
        if account is None:
            raise InvalidCredentials()
        account.password_hash = generate_password_hash(password)
        return account

    def sign_in(self, email, password):
        """Verify credentials and open a provider session; returns the uid."""
        email = normalize_email(email)
        if self.throttle.is_locked(email):
            raise TooManyAttempts()

        account = AuthAccount.query.filter_by(email=email).first()
        if account is None or not check_password_hash(account.password_hash, password or ''):
            self.throttle.record_failure(email)
            raise InvalidCredentials()

        self.throttle.reset(email)
        session[PROVIDER_SESSION_KEY] = account.uid
        return account.uid

    def sign_out(self):
        session.pop(PROVIDER_SESSION_KEY, None)

    def current_user_id(self):
        return session.get(PROVIDER_SESSION_KEY)


@dataclass
class PendingAuth:
    """Sign-in state held between the password step and the code step."""
    user_id: str
    email: str
    password: str = field(repr=False)
    display_name: str
    user: dict
    created_at: Optional[object] = None


class PendingAuthStore:
    """Process-memory store of ``PendingAuth`` keyed by an opaque token.

    Entries never leave this process; the browser only holds the token.
    """

    def __init__(self, clock, ttl_seconds=900):
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)
        self._entries = {}
        self._lock = threading.Lock()

    def put(self, pending):
        pending.created_at = self.clock()
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._sweep()
            self._entries[token] = pending
        return token

    def get(self, token):
        if not token:
            return None
        with self._lock:
            self._sweep()
            return self._entries.get(token)

    def discard(self, token):
        if token:
            with self._lock:
                self._entries.pop(token, None)

    def __len__(self):
        return len(self._entries)

    def _sweep(self):
        cutoff = self.clock() - self.ttl
        for token in [t for t, p in self._entries.items() if p.created_at < cutoff]:
            del self._entries[token]
