"""Audit trail written to the ``logs`` table."""
import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from auditflow.errors import PersistenceFailed
from auditflow.models import ActivityLog

logger = logging.getLogger(__name__)


class AuditLog:
    def __init__(self, session, clock):
        self.session = session
        self.clock = clock

    def entry(self, action, user_id, details='', **metadata):
        """Build a log row and add it to the current transaction."""
        row = ActivityLog(
            action=action,
            user_id=user_id,
            details=details,
            extra=metadata,
            created_at=self.clock(),
        )
        if has_request_context():
            row.ip_address = request.remote_addr
            row.user_agent = (request.user_agent.string or '')[:255] or None
        self.session.add(row)
        return row

    def log_action(self, action, user_id, details='', **metadata):
        """Append a log row in its own commit."""
        row = self.entry(action, user_id, details, **metadata)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Could not write audit entry %s: %s", action, e)
            raise PersistenceFailed() from e
        return row

    def for_user(self, user_id, limit=50):
        return (ActivityLog.query
                .filter_by(user_id=user_id)
                .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
                .limit(limit)
                .all())
