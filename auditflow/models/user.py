"""User profile and identity-provider account models."""
from auditflow.extensions import db
from auditflow.utils import new_id, utcnow

USER_ROLES = ['users', 'semi-admin', 'admin', 'dev']


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(120), unique=True, nullable=False)
    name = db.Column(db.String(100))  # First Name
    last_name = db.Column(db.String(100))
    role = db.Column(db.String(20), default='users', nullable=False)  # users, semi-admin, admin, dev
    approved = db.Column(db.Boolean, default=False, nullable=False)
    blocked = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    @property
    def display_name(self):
        full = f"{self.name or ''} {self.last_name or ''}".strip()
        return full or self.email

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'last_name': self.last_name,
            'display_name': self.display_name,
            'role': self.role,
            'approved': self.approved,
            'blocked': self.blocked,
        }


class AuthAccount(db.Model):
    """Credentials owned by the identity provider, keyed by the profile id."""
    __tablename__ = 'auth_accounts'

    uid = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
