"""
Error hierarchy for AuditFlow.

Every error carries a stable ``kind`` (used by API clients), a short
user-facing message and the HTTP status the API answers with. Messages
never include raw provider text.
"""
from flask_babel import lazy_gettext as _l


class AuditFlowError(Exception):
    kind = 'error'
    status_code = 400
    default_message = _l('Something went wrong. Please try again.')

    def __init__(self, message=None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)

    def __str__(self):
        return str(self.message)

    def to_dict(self):
        return {'error': self.kind, 'message': str(self.message)}


# ==================== Authentication ====================

class AuthenticationError(AuditFlowError):
    kind = 'authentication_error'
    status_code = 401
    default_message = _l('Authentication failed.')


class AuthenticationRequired(AuthenticationError):
    kind = 'authentication_required'
    default_message = _l('Please sign in to continue.')


class DomainRejected(AuthenticationError):
    kind = 'domain_rejected'
    status_code = 403
    default_message = _l('Access is restricted to company e-mail addresses.')


class AccountNotFound(AuthenticationError):
    kind = 'account_not_found'
    status_code = 403
    default_message = _l('No profile exists for this account. Contact an administrator.')


class AccountBlocked(AuthenticationError):
    kind = 'account_blocked'
    status_code = 403
    default_message = _l('This account has been blocked. Contact an administrator.')


class AccountPendingApproval(AuthenticationError):
    kind = 'account_pending_approval'
    status_code = 403
    default_message = _l('This account is awaiting administrator approval.')


class InvalidCredentials(AuthenticationError):
    kind = 'invalid_credentials'
    default_message = _l('Invalid email or password. Please try again.')


class TooManyAttempts(AuthenticationError):
    kind = 'too_many_attempts'
    status_code = 429
    default_message = _l('Too many failed attempts. Please wait and try again later.')


class NoPendingAuth(AuthenticationError):
    kind = 'no_pending_auth'
    default_message = _l('Your sign-in attempt has expired. Please sign in again.')


class InvalidCode(AuthenticationError):
    kind = 'invalid_code'
    default_message = _l('Invalid or expired verification code.')


class SessionExpired(AuthenticationError):
    kind = 'session_expired'
    default_message = _l('Session expired, please sign in again.')


class NotificationDispatchFailed(AuditFlowError):
    kind = 'notification_dispatch_failed'
    status_code = 502
    default_message = _l('We could not send the verification email. Please try again.')


# ==================== Projects and reviews ====================

class Unauthorized(AuditFlowError):
    kind = 'unauthorized'
    status_code = 403
    default_message = _l('You are not allowed to perform this action.')


class NotFound(AuditFlowError):
    kind = 'not_found'
    status_code = 404
    default_message = _l('The requested resource does not exist.')


class InvalidTeamAssignment(AuditFlowError):
    kind = 'invalid_team_assignment'
    default_message = _l('A user can only hold one role in a project team.')


class PersistenceFailed(AuditFlowError):
    kind = 'persistence_failed'
    status_code = 503
    default_message = _l('Changes could not be saved. Please try again.')


class InvalidRequest(AuditFlowError):
    kind = 'invalid_request'
    default_message = _l('The request is missing required data or contains invalid values.')
