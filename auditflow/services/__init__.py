"""Service wiring.

Services receive their collaborators explicitly; ``init_services`` builds
them once per application and routes fetch them with ``get_services``.
"""
from dataclasses import dataclass

from flask import current_app

from auditflow.extensions import db
from auditflow.services.audit_log import AuditLog
from auditflow.services.auth_flow import TwoFactorAuthController
from auditflow.services.identity import LoginThrottle, PasswordIdentityProvider, PendingAuthStore
from auditflow.services.mailer import OTPMailer
from auditflow.services.otp import OTPService
from auditflow.services.reviews import ReviewService
from auditflow.utils import utcnow

EXTENSION_KEY = 'auditflow'


@dataclass
class Services:
    audit_log: AuditLog
    otp: OTPService
    mailer: OTPMailer
    provider: PasswordIdentityProvider
    pending_auth: PendingAuthStore
    auth: TwoFactorAuthController
    reviews: ReviewService


def init_services(app, clock=utcnow):
    cfg = app.config
    audit_log = AuditLog(db.session, clock)
    otp = OTPService(
        db.session, cfg['SECRET_KEY'], clock,
        ttl_seconds=cfg['OTP_TTL_SECONDS'],
        max_attempts=cfg['OTP_MAX_ATTEMPTS'],
        length=cfg['OTP_LENGTH'],
    )
    mailer = OTPMailer(
        cfg['RESEND_API_URL'], cfg['RESEND_API_KEY'],
        cfg['OTP_EMAIL_SENDER'], cfg['OTP_EMAIL_SUBJECT'],
        timeout=cfg['MAIL_TIMEOUT_SECONDS'],
        suppress_send=cfg['MAIL_SUPPRESS_SEND'],
        ttl_minutes=max(1, cfg['OTP_TTL_SECONDS'] // 60),
    )
    throttle = LoginThrottle(clock, cfg['LOGIN_MAX_ATTEMPTS'], cfg['LOGIN_WINDOW_SECONDS'])
    provider = PasswordIdentityProvider(db.session, throttle)
    pending_auth = PendingAuthStore(clock, cfg['PENDING_AUTH_TTL_SECONDS'])
    auth = TwoFactorAuthController(
        provider, otp, mailer, audit_log, db.session,
        cfg['ALLOWED_EMAIL_DOMAIN'], clock,
    )
    reviews = ReviewService(db.session, audit_log, clock, retries=cfg['REVIEW_WRITE_RETRIES'])

    services = Services(audit_log, otp, mailer, provider, pending_auth, auth, reviews)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services():
    return current_app.extensions[EXTENSION_KEY]
