"""
Two-factor sign-in controller.

Login happens in three steps::

    verify_credentials(email, password)   -> PendingAuth, code e-mailed
    resend_otp(pending)                    -> new code e-mailed
    verify_otp_and_login(pending, code)    -> AuthenticatedSession

The password step leaves a warm provider session behind. ``resume_session``
runs before application requests and refuses any provider session whose
user still has an outstanding code, or which never completed the code step.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from flask import session
from sqlalchemy.exc import SQLAlchemyError

from auditflow.errors import (
    AccountBlocked, AccountNotFound, AccountPendingApproval, AuditFlowError, DomainRejected,
    InvalidCode, NoPendingAuth, NotificationDispatchFailed, PersistenceFailed,
    SessionExpired,
)
from auditflow.models import User
from auditflow.services.identity import PendingAuth
from auditflow.utils import is_allowed_email

logger = logging.getLogger(__name__)

TWO_FACTOR_SESSION_KEY = 'two_factor_uid'
JUST_VERIFIED_SESSION_KEY = 'otp_just_verified'


@dataclass
class AuthenticatedSession:
    user_id: str
    email: str
    display_name: str
    role: str
    authenticated_at: datetime

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'email': self.email,
            'display_name': self.display_name,
            'role': self.role,
            'authenticated_at': self.authenticated_at.isoformat() + 'Z',
        }


class TwoFactorAuthController:
    def __init__(self, provider, otp_service, mailer, audit_log, db_session,
                 allowed_domain, clock):
        self.provider = provider
        self.otp_service = otp_service
        self.mailer = mailer
        self.audit_log = audit_log
        self.db_session = db_session
        self.allowed_domain = allowed_domain
        self.clock = clock

    # ==================== Helpers ====================

    def _load_profile(self, user_id):
        """Fetch the user profile; any failure ends the provider session."""
        try:
            user = self.db_session.get(User, user_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.db_session.rollback()
            self.provider.sign_out()
            logger.error("Profile lookup failed for %s: %s", user_id, e)
            raise PersistenceFailed() from e

        error = None
        if user is None:
            error = AccountNotFound()
        elif user.blocked:
            error = AccountBlocked()
        elif not user.approved:
            error = AccountPendingApproval()
        if error is not None:
            self.provider.sign_out()
            logger.warning("Sign-in rejected for %s: %s", user_id, error.kind)
            raise error
        return user

    def _dispatch_code(self, user_id, email, display_name):
        code = self.otp_service.issue(user_id, email)
        result = self.mailer.send_one_time_code(email, code, display_name)
        if not result.success:
            self.otp_service.discard(user_id)
            self.provider.sign_out()
            logger.error("Could not send verification code to %s: %s", email, result.error)
            raise NotificationDispatchFailed()

    def terminate(self):
        """End both the provider session and the application session."""
        self.provider.sign_out()
        session.clear()

    # ==================== Login steps ====================

    def verify_credentials(self, email, password):
        if not is_allowed_email(email, self.allowed_domain):
            raise DomainRejected()

        user_id = self.provider.sign_in(email, password)
        user = self._load_profile(user_id)

        self._dispatch_code(user.id, user.email, user.display_name)
        self.audit_log.log_action('otp_sent', user.id, 'Verification code sent')
        return PendingAuth(
            user_id=user.id,
            email=user.email,
            password=password,
            display_name=user.display_name,
            user=user.to_dict(),
        )

    def resend_otp(self, pending):
        if pending is None:
            raise NoPendingAuth()
        if self.provider.current_user_id() != pending.user_id:
            # Provider session was dropped meanwhile; the held password reopens it
            self.provider.sign_in(pending.email, pending.password)
        self._dispatch_code(pending.user_id, pending.email, pending.display_name)
        self.audit_log.log_action('otp_resent', pending.user_id, 'Verification code resent')

    def verify_otp_and_login(self, pending, code):
        if pending is None:
            raise NoPendingAuth()

        # Checked first so an ended provider session does not burn the code
        if self.provider.current_user_id() != pending.user_id:
            raise SessionExpired()

        try:
            self.otp_service.verify(pending.user_id, code)
        except InvalidCode:
            self.audit_log.log_action('otp_failed', pending.user_id, 'Invalid verification code')
            raise

        session[TWO_FACTOR_SESSION_KEY] = pending.user_id
        session[JUST_VERIFIED_SESSION_KEY] = True
        self.audit_log.log_action('otp_verified', pending.user_id, 'Verification code accepted')
        self.audit_log.log_action('login', pending.user_id, 'User logged in')

        snapshot = pending.user
        return AuthenticatedSession(
            user_id=pending.user_id,
            email=snapshot['email'],
            display_name=snapshot['display_name'],
            role=snapshot['role'],
            authenticated_at=self.clock(),
        )

    # ==================== Session resumption ====================

    def resume_session(self):
        """Return the signed-in ``User`` or None; raise when the session must end.

        A provider session is only trusted after the code step. A still
        pending code for the user means the code step was never finished
        in this session, so the session is ended. The pending-code check is
        skipped once, right after a successful verification.
        """
        user_id = self.provider.current_user_id()
        if not user_id:
            return None

        just_verified = session.pop(JUST_VERIFIED_SESSION_KEY, False)
        completed = session.get(TWO_FACTOR_SESSION_KEY) == user_id

        if not (just_verified and completed) and self.otp_service.has_pending(user_id):
            logger.warning("Ending session of %s: verification code still pending", user_id)
            self.terminate()
            raise SessionExpired()
        if not completed:
            self.terminate()
            raise SessionExpired()

        try:
            return self._load_profile(user_id)
        except AuditFlowError:
            session.clear()
            raise

    def logout(self):
        user_id = self.provider.current_user_id()
        self.terminate()
        if user_id:
            self.audit_log.log_action('logout', user_id, 'User logged out')
