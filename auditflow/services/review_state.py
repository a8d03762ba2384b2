"""
Section review state machine.

A section advances one tier at a time through
staff -> incharge -> manager -> partner -> lead_partner -> completed.
``SectionReview`` is an immutable value: transitions return a new value and
the caller decides when to persist it.
"""
from dataclasses import dataclass, field, replace

from auditflow.services.permissions import REVIEW_TIERS

COMPLETED = 'completed'
LEVELS = REVIEW_TIERS + [COMPLETED]

NOT_REVIEWED = 'not_reviewed'
READY_FOR_REVIEW = 'ready_for_review'
REVIEWED = 'reviewed'


def reviews_key(tier):
    return f'{tier}_reviews'


def _entries(value):
    """Validate a list of review entries decoded from storage."""
    entries = []
    for item in value or []:
        if not isinstance(item, dict) or 'user_id' not in item:
            raise ValueError(f'Malformed review entry: {item!r}')
        entries.append({
            'user_id': item['user_id'],
            'user_name': item.get('user_name', ''),
            'reviewed_at': item.get('reviewed_at', ''),
        })
    return tuple(entries)


@dataclass(frozen=True)
class SectionReview:
    staff_reviews: tuple = ()
    incharge_reviews: tuple = ()
    manager_reviews: tuple = ()
    partner_reviews: tuple = ()
    lead_partner_reviews: tuple = ()
    unreview_logs: tuple = field(default=(), compare=False)

    # ==================== Derived state ====================

    def entries_for(self, tier):
        return getattr(self, reviews_key(tier))

    @property
    def current_review_level(self):
        """First tier, scanning from staff, that has no review yet."""
        for tier in REVIEW_TIERS:
            if not self.entries_for(tier):
                return tier
        return COMPLETED

    @property
    def status(self):
        if self.current_review_level == COMPLETED:
            return REVIEWED
        if any(self.entries_for(tier) for tier in REVIEW_TIERS):
            return READY_FOR_REVIEW
        return NOT_REVIEWED

    def completed_roles(self):
        return [tier for tier in REVIEW_TIERS if self.entries_for(tier)]

    def pending_roles(self):
        return [tier for tier in REVIEW_TIERS if not self.entries_for(tier)]

    # ==================== Transitions ====================

    def with_review(self, tier, user_id, user_name, reviewed_at):
        """Record a review at ``tier``, which must be the current level."""
        if tier != self.current_review_level:
            raise ValueError(f'Cannot review at {tier} while level is {self.current_review_level}')
        entry = {'user_id': user_id, 'user_name': user_name, 'reviewed_at': reviewed_at}
        return replace(self, **{reviews_key(tier): self.entries_for(tier) + (entry,)})

    def without_reviews_from(self, tier, unreviewed_by, unreviewed_by_name, unreviewed_at):
        """Clear ``tier`` and every tier above it.

        Each cleared entry leaves a trace in ``unreview_logs``.
        """
        start = REVIEW_TIERS.index(tier)
        cleared = {}
        logs = list(self.unreview_logs)
        for cleared_tier in REVIEW_TIERS[start:]:
            for entry in self.entries_for(cleared_tier):
                logs.append({
                    'unreviewed_by': unreviewed_by,
                    'unreviewed_by_name': unreviewed_by_name,
                    'original_reviewer_id': entry['user_id'],
                    'original_reviewer_name': entry['user_name'],
                    'original_role': cleared_tier,
                    'unreviewed_at': unreviewed_at,
                })
            cleared[reviews_key(cleared_tier)] = ()
        return replace(self, unreview_logs=tuple(logs), **cleared)

    def highest_reviewed_tier(self):
        completed = self.completed_roles()
        return completed[-1] if completed else None

    # ==================== Storage boundary ====================

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        values = {reviews_key(tier): _entries(data.get(reviews_key(tier))) for tier in REVIEW_TIERS}
        values['unreview_logs'] = tuple(dict(log) for log in data.get('unreview_logs') or [])
        return cls(**values)

    @classmethod
    def from_record(cls, record):
        if record is None:
            return cls()
        data = {reviews_key(tier): getattr(record, reviews_key(tier)) for tier in REVIEW_TIERS}
        data['unreview_logs'] = record.unreview_logs
        return cls.from_dict(data)

    def to_dict(self):
        data = {reviews_key(tier): [dict(e) for e in self.entries_for(tier)] for tier in REVIEW_TIERS}
        data['unreview_logs'] = [dict(log) for log in self.unreview_logs]
        data['status'] = self.status
        data['current_review_level'] = self.current_review_level
        return data

    def apply_to(self, record):
        """Copy this state onto a ``SectionReviewRecord``."""
        for key, value in self.to_dict().items():
            setattr(record, key, value)
        return record
