"""
AuditFlow - Configuration classes.

Values are read from the environment (a .env file is loaded by the
application factory) with development-friendly defaults.
"""
import os


def _bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev_key_please_change')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///auditflow.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Only staff of the firm may sign in or reset a password
    ALLOWED_EMAIL_DOMAIN = os.environ.get('ALLOWED_EMAIL_DOMAIN', '@bumex.mr')

    # One-time codes
    OTP_LENGTH = int(os.environ.get('OTP_LENGTH', 6))
    OTP_TTL_SECONDS = int(os.environ.get('OTP_TTL_SECONDS', 300))
    OTP_MAX_ATTEMPTS = int(os.environ.get('OTP_MAX_ATTEMPTS', 3))

    # Password throttle (identity provider)
    LOGIN_MAX_ATTEMPTS = int(os.environ.get('LOGIN_MAX_ATTEMPTS', 5))
    LOGIN_WINDOW_SECONDS = int(os.environ.get('LOGIN_WINDOW_SECONDS', 900))

    PENDING_AUTH_TTL_SECONDS = int(os.environ.get('PENDING_AUTH_TTL_SECONDS', 900))

    # OTP e-mail dispatch (Resend HTTP API)
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY')
    RESEND_API_URL = os.environ.get('RESEND_API_URL', 'https://api.resend.com/emails')
    OTP_EMAIL_SENDER = os.environ.get('OTP_EMAIL_SENDER', 'Bumex <noreply@verify.bumex.mr>')
    OTP_EMAIL_SUBJECT = os.environ.get('OTP_EMAIL_SUBJECT', 'Your Bumex Login Verification Code')
    MAIL_TIMEOUT_SECONDS = int(os.environ.get('MAIL_TIMEOUT_SECONDS', 10))
    MAIL_SUPPRESS_SEND = _bool('MAIL_SUPPRESS_SEND')

    REVIEW_WRITE_RETRIES = int(os.environ.get('REVIEW_WRITE_RETRIES', 3))

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    BABEL_DEFAULT_LOCALE = 'en'
    LANGUAGES = ['en', 'fr']

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    MAIL_SUPPRESS_SEND = _bool('MAIL_SUPPRESS_SEND', True)


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'testing-secret'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    MAIL_SUPPRESS_SEND = True
    RESEND_API_KEY = 'test-key'


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig,
}
