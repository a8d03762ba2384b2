"""Audit log model."""
from auditflow.extensions import db
from auditflow.models.types import JSONType
from auditflow.utils import utcnow


class ActivityLog(db.Model):
    __tablename__ = 'logs'

    id = db.Column(db.Integer, primary_key=True)
    action = db.Column(db.String(50), nullable=False)  # login, otp_sent, section_reviewed, ...
    user_id = db.Column(db.String(36), index=True)
    details = db.Column(db.Text)
    extra = db.Column('metadata', JSONType, default=dict)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow, index=True)
