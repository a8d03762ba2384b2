"""
Review / sign-off workflow for project sections.

Every write follows the same pattern: read the section row, apply the
transition in memory, then commit the row together with its audit entry.
If another reviewer committed first the version check fails, the session
is rolled back (discarding the local change) and the whole step, including
the permission check, runs again on fresh data.
"""
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from auditflow.errors import InvalidRequest, PersistenceFailed, Unauthorized
from auditflow.models import SectionReviewRecord
from auditflow.services.permissions import (
    REVIEW_TIERS, can_sign_off_section, get_project_role, is_dev_or_admin, tier_index,
)
from auditflow.services.review_state import COMPLETED, SectionReview

logger = logging.getLogger(__name__)

INDICATOR_READY = 'orange'
INDICATOR_REVIEWED = 'green'
INDICATOR_NONE = 'none'

SIGN_OFF_LEVELS = ('incharge', 'manager')


class ReviewService:
    def __init__(self, session, audit_log, clock, retries=3):
        self.session = session
        self.audit_log = audit_log
        self.clock = clock
        self.retries = retries

    def _timestamp(self):
        return self.clock().isoformat() + 'Z'

    def _load_record(self, project, section_id):
        return (self.session.query(SectionReviewRecord)
                .filter_by(project_id=project.id, section_id=section_id)
                .populate_existing()
                .one_or_none())

    # ==================== Read-only views ====================

    def get_section_review(self, project, section_id):
        return SectionReview.from_record(self._load_record(project, section_id))

    def get_current_review_level(self, project, section_id):
        return self.get_section_review(project, section_id).current_review_level

    def get_section_review_status(self, project, section_id):
        return self.get_section_review(project, section_id).status

    def get_completed_review_roles(self, project, section_id):
        return self.get_section_review(project, section_id).completed_roles()

    def get_pending_review_roles(self, project, section_id):
        return self.get_section_review(project, section_id).pending_roles()

    def can_user_review_section(self, user, project, section_id):
        role = get_project_role(user, project)
        return role is not None and role == self.get_current_review_level(project, section_id)

    def get_section_review_indicator(self, user, project, section_id):
        """'orange' when it is the viewer's turn, 'green' when fully reviewed."""
        level = self.get_current_review_level(project, section_id)
        if level == COMPLETED:
            return INDICATOR_REVIEWED
        if get_project_role(user, project) == level:
            return INDICATOR_READY
        return INDICATOR_NONE

    def get_all_section_reviews(self, project, section_id):
        """Reviews and withdrawals of a section, newest first."""
        state = self.get_section_review(project, section_id)
        history = []
        for tier in REVIEW_TIERS:
            for entry in state.entries_for(tier):
                history.append({
                    'role': tier,
                    'user_id': entry['user_id'],
                    'user_name': entry['user_name'],
                    'reviewed_at': entry['reviewed_at'],
                    'type': 'review',
                })
        for log in state.unreview_logs:
            history.append({
                'role': 'unreview',
                'user_id': log.get('unreviewed_by'),
                'user_name': f"{log.get('unreviewed_by_name')} unreviewed {log.get('original_reviewer_name')}",
                'reviewed_at': log.get('unreviewed_at'),
                'type': 'unreview',
            })
        return sorted(history, key=lambda item: item['reviewed_at'] or '', reverse=True)

    # ==================== Transitions ====================

    def review(self, project, section_id, user):
        """Record ``user``'s review at the section's current level."""
        def transition(state):
            role = get_project_role(user, project)
            if role is None or role != state.current_review_level:
                raise Unauthorized()
            return state.with_review(role, user.id, user.display_name, self._timestamp()), role

        return self._commit(project, section_id, user, transition, 'section_reviewed')

    def unreview(self, project, section_id, user, tier=None):
        """Withdraw reviews from the acting tier upwards."""
        def transition(state):
            start = self._unreview_tier(user, project, state, tier)
            cleared = state.without_reviews_from(start, user.id, user.display_name, self._timestamp())
            if cleared == state:
                return None, start
            return cleared, start

        return self._commit(project, section_id, user, transition, 'section_unreviewed')

    def _unreview_tier(self, user, project, state, tier):
        if tier is not None:
            if tier == 'in_charge':
                tier = 'incharge'
            if tier_index(tier) == -1:
                raise InvalidRequest()
        role = get_project_role(user, project)
        if is_dev_or_admin(user):
            return tier or role or state.highest_reviewed_tier() or 'staff'
        if role is None or (tier is not None and tier != role):
            raise Unauthorized()
        return role

    def _commit(self, project, section_id, user, transition, action):
        for attempt in range(self.retries + 1):
            record = self._load_record(project, section_id)
            state = SectionReview.from_record(record)
            new_state, tier = transition(state)
            if new_state is None:
                return state

            if record is None:
                record = SectionReviewRecord(project_id=project.id, section_id=section_id)
                self.session.add(record)
            new_state.apply_to(record)
            self.audit_log.entry(
                action, user.id, f'Section {section_id} {action.split("_", 1)[1]} by {tier}',
                project_id=project.id, section_id=section_id, role=tier,
            )
            try:
                self.session.commit()
            except (StaleDataError, IntegrityError) as e:
                self.session.rollback()
                logger.warning("Concurrent update of section %s/%s (attempt %d): %s",
                               project.id, section_id, attempt + 1, e)
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error("Could not save review of section %s/%s: %s", project.id, section_id, e)
                raise PersistenceFailed() from e
            return new_state

        logger.error("Giving up on section %s/%s after %d conflicting writes",
                     project.id, section_id, self.retries + 1)
        raise PersistenceFailed()

    # ==================== Legacy sign-off ====================

    def get_sign_off(self, project, section_id):
        return (project.sign_offs or {}).get(section_id, {'signed': False})

    def sign_off(self, project, section_id, user, level):
        self._check_sign_off(project, user, level)
        record = {'signed': True, 'signedBy': user.id, 'signedAt': self._timestamp()}
        return self._write_sign_off(project, section_id, user, record, 'section_signed_off')

    def unsign(self, project, section_id, user, level):
        self._check_sign_off(project, user, level)
        return self._write_sign_off(project, section_id, user, {'signed': False}, 'section_unsigned')

    def _check_sign_off(self, project, user, level):
        if level not in SIGN_OFF_LEVELS:
            raise InvalidRequest()
        if not can_sign_off_section(user, project, level):
            raise Unauthorized()

    def _write_sign_off(self, project, section_id, user, record, action):
        sign_offs = dict(project.sign_offs or {})
        sign_offs[section_id] = record
        project.sign_offs = sign_offs
        self.audit_log.entry(action, user.id, f'Section {section_id}',
                             project_id=project.id, section_id=section_id)
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Could not save sign-off of section %s/%s: %s", project.id, section_id, e)
            raise PersistenceFailed() from e
        return record
