"""Pending one-time code model."""
from auditflow.extensions import db
from auditflow.utils import utcnow


class PendingOTP(db.Model):
    __tablename__ = 'pending_otps'

    # One active code per user; a new code replaces the old one
    user_id = db.Column(db.String(36), primary_key=True)
    email = db.Column(db.String(120), nullable=False)
    otp_hash = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    attempts = db.Column(db.Integer, default=0, nullable=False)
    max_attempts = db.Column(db.Integer, default=3, nullable=False)

    def is_expired(self, now):
        return now > self.expires_at
