"""Models package - Re-exports all models for convenient importing."""
from auditflow.extensions import db
from auditflow.models.user import User, AuthAccount, USER_ROLES
from auditflow.models.project import Project, SectionReviewRecord
from auditflow.models.pending_otp import PendingOTP
from auditflow.models.activity_log import ActivityLog

__all__ = ['db', 'User', 'AuthAccount', 'USER_ROLES', 'Project', 'SectionReviewRecord',
           'PendingOTP', 'ActivityLog']
