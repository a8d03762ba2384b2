"""Authentication routes, session guard and access decorators."""
from functools import wraps

from flask import Blueprint, g, jsonify, request, session

from auditflow.errors import AuthenticationRequired, DomainRejected, InvalidRequest, Unauthorized
from auditflow.models import User
from auditflow.services import get_services
from auditflow.utils import is_allowed_email

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

PENDING_AUTH_SESSION_KEY = 'pending_auth'

# Endpoints that belong to the sign-in flow itself; the session guard skips them
GUARD_EXEMPT_ENDPOINTS = {
    'auth.login',
    'auth.resend_otp',
    'auth.verify_otp',
    'auth.logout',
    'auth.password_reset',
    'main.index',
    'main.set_language',
    'static',
}


# ==================== RBAC Decorators (MUST be defined before routes that use them) ====================

def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthenticationRequired()
        return f(*args, **kwargs)
    return decorated_function


def role_required(roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = g.get('user')
            if user is None:
                raise AuthenticationRequired()
            if user.role not in roles:
                raise Unauthorized()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    return role_required(['admin', 'dev'])(f)


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequest()
    return data


def _pending_auth():
    return get_services().pending_auth.get(session.get(PENDING_AUTH_SESSION_KEY))


# ==================== Session guard ====================

@auth_bp.before_app_request
def load_logged_in_user():
    g.user = None
    if request.endpoint is None or request.endpoint in GUARD_EXEMPT_ENDPOINTS:
        return
    g.user = get_services().auth.resume_session()


# ==================== Routes ====================

@auth_bp.route('/login', methods=['POST'])
def login():
    data = _json_body()
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''
    if not email or not password:
        raise InvalidRequest()

    services = get_services()
    services.pending_auth.discard(session.get(PENDING_AUTH_SESSION_KEY))
    session.clear()

    pending = services.auth.verify_credentials(email, password)
    session[PENDING_AUTH_SESSION_KEY] = services.pending_auth.put(pending)
    return jsonify({'status': 'otp_sent', 'email': pending.email}), 202


@auth_bp.route('/otp/resend', methods=['POST'])
def resend_otp():
    get_services().auth.resend_otp(_pending_auth())
    return jsonify({'status': 'otp_sent'})


@auth_bp.route('/otp/verify', methods=['POST'])
def verify_otp():
    data = _json_body()
    code = str(data.get('code') or '').strip()
    if not code:
        raise InvalidRequest()

    services = get_services()
    authenticated = services.auth.verify_otp_and_login(_pending_auth(), code)
    services.pending_auth.discard(session.pop(PENDING_AUTH_SESSION_KEY, None))
    return jsonify({'status': 'authenticated', 'session': authenticated.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    services = get_services()
    services.pending_auth.discard(session.get(PENDING_AUTH_SESSION_KEY))
    services.auth.logout()
    return jsonify({'status': 'logged_out'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify(g.user.to_dict())


@auth_bp.route('/password-reset', methods=['POST'])
def password_reset():
    """Accepts a reset request for company addresses only."""
    email = (_json_body().get('email') or '').strip()
    if not is_allowed_email(email, get_services().auth.allowed_domain):
        raise DomainRejected()

    user = User.query.filter_by(email=email.lower()).first()
    if user is not None:
        get_services().audit_log.log_action('password_reset', user.id, 'Password reset requested')
    # Same answer whether or not the account exists
    return jsonify({'status': 'accepted'}), 202
