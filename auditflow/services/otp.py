"""
One-time login codes.

Codes are numeric, kept only as an HMAC digest, valid for a limited time
and for a limited number of guesses. Each user has at most one active code:
issuing a new one replaces the previous record.
"""
import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError

from auditflow.errors import InvalidCode, PersistenceFailed
from auditflow.models import PendingOTP

logger = logging.getLogger(__name__)


def generate_otp(length=6):
    """Random numeric code of ``length`` digits without a leading zero."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


class OTPService:
    def __init__(self, session, secret_key, clock, ttl_seconds=300, max_attempts=3, length=6):
        self.session = session
        self.secret_key = secret_key.encode() if isinstance(secret_key, str) else secret_key
        self.clock = clock
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self.length = length

    def hash_code(self, user_id, code):
        message = f'{user_id}:{code.strip()}'.encode()
        return hmac.new(self.secret_key, message, hashlib.sha256).hexdigest()

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("One-time code store failed: %s", e)
            raise PersistenceFailed() from e

    def _get(self, user_id):
        return self.session.get(PendingOTP, user_id, populate_existing=True)

    def issue(self, user_id, email):
        """Create and store a fresh code for ``user_id``; returns the plain code."""
        code = generate_otp(self.length)
        now = self.clock()
        record = self._get(user_id)
        if record is None:
            record = PendingOTP(user_id=user_id)
            self.session.add(record)
        record.email = email
        record.otp_hash = self.hash_code(user_id, code)
        record.created_at = now
        record.expires_at = now + self.ttl
        record.attempts = 0
        record.max_attempts = self.max_attempts
        self._commit()
        return code

    def _pending(self, user_id):
        return self.session.query(PendingOTP).filter(PendingOTP.user_id == user_id)

    def verify(self, user_id, code):
        """Consume the stored code or raise ``InvalidCode``.

        Wrong, expired, exhausted and missing codes are all the same error.
        The consuming delete and the attempt counter are conditional SQL
        statements against the hash that was read, so a code is accepted at
        most once and concurrent wrong guesses are all counted.
        """
        record = self._get(user_id)
        if record is None:
            raise InvalidCode()

        stored_hash = record.otp_hash
        same_code = self._pending(user_id).filter(PendingOTP.otp_hash == stored_hash)

        if record.is_expired(self.clock()) or record.attempts >= record.max_attempts:
            same_code.delete(synchronize_session='fetch')
            self._commit()
            raise InvalidCode()

        usable = same_code.filter(PendingOTP.attempts < PendingOTP.max_attempts)
        if not hmac.compare_digest(stored_hash, self.hash_code(user_id, code or '')):
            usable.update({PendingOTP.attempts: PendingOTP.attempts + 1},
                          synchronize_session='fetch')
            same_code.filter(PendingOTP.attempts >= PendingOTP.max_attempts).delete(
                synchronize_session='fetch')
            self._commit()
            raise InvalidCode()

        consumed = usable.delete(synchronize_session='fetch')
        self._commit()
        if consumed != 1:
            logger.warning("Code for user %s was consumed or replaced concurrently", user_id)
            raise InvalidCode()

    def has_pending(self, user_id):
        """True while an unexpired, unconsumed code exists for ``user_id``."""
        record = self._get(user_id)
        return record is not None and not record.is_expired(self.clock())

    def discard(self, user_id):
        if self._pending(user_id).delete(synchronize_session='fetch'):
            self._commit()

    def cleanup_expired(self, user_id):
        expired = self._pending(user_id).filter(PendingOTP.expires_at < self.clock())
        if expired.delete(synchronize_session='fetch'):
            self._commit()

    def purge_expired(self):
        """Delete every expired code; returns how many were removed."""
        count = (self.session.query(PendingOTP)
                 .filter(PendingOTP.expires_at < self.clock())
                 .delete(synchronize_session='fetch'))
        self._commit()
        return count
