"""
Role and permission helpers.

Pure functions over a user and a project: nothing here touches the
database. Global roles come from ``User.role``; project roles come from the
project's team assignments.
"""
from auditflow.errors import InvalidTeamAssignment

# Review ladder, lowest first
REVIEW_TIERS = ['staff', 'incharge', 'manager', 'partner', 'lead_partner']

# Team assignment keys checked by get_project_role, first match wins
_TIER_KEYS = [
    ('partner', 'partner_ids'),
    ('manager', 'manager_ids'),
    ('incharge', 'in_charge_ids'),
    ('staff', 'staff_ids'),
]


def is_dev(user):
    return user is not None and user.role == 'dev'


def is_admin(user):
    return user is not None and user.role == 'admin'


def is_dev_or_admin(user):
    return is_dev(user) or is_admin(user)


def get_project_role(user, project):
    """Return the user's review tier within ``project`` or None.

    Tiers are checked from the top: lead partner, partners, managers,
    in-charges, staff. The first match wins, so a user listed in two tiers
    acts with the higher one.
    """
    if user is None or project is None:
        return None
    team = project.team
    if team.get('lead_partner_id') and team['lead_partner_id'] == user.id:
        return 'lead_partner'
    for role, key in _TIER_KEYS:
        if user.id in (team.get(key) or []):
            return role
    return None


def tier_index(role):
    """Position of ``role`` in the review ladder, -1 when not a tier."""
    if role == 'in_charge':
        role = 'incharge'
    try:
        return REVIEW_TIERS.index(role)
    except ValueError:
        return -1


def _at_least(project_role, minimum):
    index = tier_index(project_role)
    return index != -1 and index >= tier_index(minimum)


def is_staff_up(project_role):
    return _at_least(project_role, 'staff')


def is_in_charge_up(project_role):
    return _at_least(project_role, 'incharge')


def is_manager_up(project_role):
    return _at_least(project_role, 'manager')


def can_edit_project(user, project):
    if is_dev_or_admin(user):
        return True
    return is_staff_up(get_project_role(user, project))


def can_sign_off_section(user, project, level):
    """Legacy sign-off check: ``level`` is 'incharge' or 'manager'."""
    if is_dev_or_admin(user):
        return True
    project_role = get_project_role(user, project)
    if level == 'incharge':
        return is_in_charge_up(project_role)
    if level == 'manager':
        return is_manager_up(project_role)
    return False


def can_unreview_specific(user, project, review_role, review_user_id):
    """Whether ``user`` may withdraw one specific review entry."""
    if user is None:
        return False
    if is_dev_or_admin(user):
        return True
    # Reviewers cannot withdraw their own sign-off
    if user.id == review_user_id:
        return False
    user_index = tier_index(get_project_role(user, project))
    review_index = tier_index(review_role)
    if user_index == -1 or review_index == -1:
        return False
    return user_index > review_index


def can_manage_team(user):
    return is_dev_or_admin(user)


def validate_team_assignments(team):
    """Normalise a team assignment payload and reject dual membership."""
    if not isinstance(team, dict):
        raise InvalidTeamAssignment()

    lead = team.get('lead_partner_id') or None
    cleaned = {'lead_partner_id': lead}
    seen = {lead} if lead else set()
    for _role, key in _TIER_KEYS:
        ids = team.get(key) or []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise InvalidTeamAssignment()
        unique = list(dict.fromkeys(ids))
        if seen.intersection(unique):
            raise InvalidTeamAssignment()
        seen.update(unique)
        cleaned[key] = unique
    return cleaned
