"""Project (audit engagement) and per-section review models."""
from sqlalchemy.orm import attribute_keyed_dict

from auditflow.extensions import db
from auditflow.models.types import JSONType
from auditflow.utils import new_id, utcnow


def empty_team_assignments():
    return {
        'lead_partner_id': None,
        'partner_ids': [],
        'manager_ids': [],
        'in_charge_ids': [],
        'staff_ids': [],
    }


class Project(db.Model):
    __tablename__ = 'projects'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(200), nullable=False)
    client_name = db.Column(db.String(200))
    fiscal_year = db.Column(db.String(10))
    engagement_type = db.Column(db.String(50))
    archived = db.Column(db.Boolean, default=False, nullable=False)

    team_assignments = db.Column(JSONType, default=empty_team_assignments, nullable=False)
    # Legacy boolean sign-offs: {section_id: {signed, signedBy, signedAt}}
    sign_offs = db.Column(JSONType, default=dict, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    reviews = db.relationship(
        'SectionReviewRecord',
        collection_class=attribute_keyed_dict('section_id'),
        cascade='all, delete-orphan',
        backref='project',
    )

    @property
    def team(self):
        """Team assignments with every key present."""
        team = empty_team_assignments()
        team.update(self.team_assignments or {})
        return team

    def member_ids(self):
        team = self.team
        ids = set(team['partner_ids']) | set(team['manager_ids'])
        ids |= set(team['in_charge_ids']) | set(team['staff_ids'])
        if team['lead_partner_id']:
            ids.add(team['lead_partner_id'])
        return ids

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'client_name': self.client_name,
            'fiscal_year': self.fiscal_year,
            'engagement_type': self.engagement_type,
            'archived': self.archived,
            'team_assignments': self.team,
        }


class SectionReviewRecord(db.Model):
    """Stored review state of one section of one project.

    ``version`` is SQLAlchemy's version id: an UPDATE only matches the row it
    was read from, so two reviewers racing on the same section cannot both
    commit.
    """
    __tablename__ = 'section_reviews'
    __table_args__ = (db.UniqueConstraint('project_id', 'section_id'),)

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.String(36), db.ForeignKey('projects.id'), nullable=False)
    section_id = db.Column(db.String(100), nullable=False)

    staff_reviews = db.Column(JSONType, default=list, nullable=False)
    incharge_reviews = db.Column(JSONType, default=list, nullable=False)
    manager_reviews = db.Column(JSONType, default=list, nullable=False)
    partner_reviews = db.Column(JSONType, default=list, nullable=False)
    lead_partner_reviews = db.Column(JSONType, default=list, nullable=False)
    unreview_logs = db.Column(JSONType, default=list, nullable=False)

    status = db.Column(db.String(20), default='not_reviewed', nullable=False)
    current_review_level = db.Column(db.String(20), default='staff', nullable=False)

    version = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {'version_id_col': version}
