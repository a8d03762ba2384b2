import pytest

from auditflow.errors import InvalidTeamAssignment
from auditflow.models import Project, User
from auditflow.services.permissions import (
    can_edit_project, can_sign_off_section, can_unreview_specific, get_project_role,
    is_dev_or_admin, is_in_charge_up, is_manager_up, is_staff_up, validate_team_assignments,
)


def _user(uid, role='users'):
    return User(id=uid, email=f'{uid}@bumex.mr', role=role)


@pytest.fixture
def project():
    return Project(name='P', team_assignments={
        'lead_partner_id': 'lp',
        'partner_ids': ['p1'],
        'manager_ids': ['m1'],
        'in_charge_ids': ['i1'],
        'staff_ids': ['s1', 's2'],
    })


@pytest.mark.parametrize('uid,expected', [
    ('lp', 'lead_partner'),
    ('p1', 'partner'),
    ('m1', 'manager'),
    ('i1', 'incharge'),
    ('s2', 'staff'),
    ('nobody', None),
])
def test_get_project_role(project, uid, expected):
    assert get_project_role(_user(uid), project) == expected


def test_get_project_role_without_user(project):
    assert get_project_role(None, project) is None


def test_first_match_wins_for_dual_assignment():
    project = Project(name='P', team_assignments={'manager_ids': ['x'], 'staff_ids': ['x']})
    assert get_project_role(_user('x'), project) == 'manager'


def test_missing_team_keys_are_tolerated():
    project = Project(name='P', team_assignments={'staff_ids': ['s1']})
    assert get_project_role(_user('s1'), project) == 'staff'
    assert get_project_role(_user('m1'), project) is None


def test_dev_or_admin():
    assert is_dev_or_admin(_user('a', 'admin'))
    assert is_dev_or_admin(_user('d', 'dev'))
    assert not is_dev_or_admin(_user('s', 'semi-admin'))
    assert not is_dev_or_admin(None)


def test_tier_helpers():
    assert is_staff_up('staff') and is_staff_up('lead_partner')
    assert not is_in_charge_up('staff')
    assert is_in_charge_up('incharge')
    assert is_in_charge_up('in_charge')
    assert not is_manager_up('incharge')
    assert is_manager_up('partner')
    assert not is_staff_up(None)


def test_can_edit_project(project):
    assert can_edit_project(_user('s1'), project)
    assert can_edit_project(_user('outsider', 'admin'), project)
    assert not can_edit_project(_user('outsider'), project)


def test_can_sign_off_section(project):
    assert can_sign_off_section(_user('i1'), project, 'incharge')
    assert not can_sign_off_section(_user('i1'), project, 'manager')
    assert can_sign_off_section(_user('m1'), project, 'manager')
    assert not can_sign_off_section(_user('s1'), project, 'incharge')
    assert can_sign_off_section(_user('x', 'dev'), project, 'manager')
    assert not can_sign_off_section(_user('m1'), project, 'partner')


def test_can_unreview_specific(project):
    assert can_unreview_specific(_user('m1'), project, 'staff', 's1')
    assert not can_unreview_specific(_user('s1'), project, 'manager', 'm1')
    # Own review cannot be withdrawn by its author
    assert not can_unreview_specific(_user('m1'), project, 'manager', 'm1')
    assert can_unreview_specific(_user('adm', 'admin'), project, 'lead_partner', 'lp')
    assert not can_unreview_specific(_user('outsider'), project, 'staff', 's1')
    assert not can_unreview_specific(None, project, 'staff', 's1')


def test_validate_team_assignments_normalises():
    cleaned = validate_team_assignments({'lead_partner_id': 'lp', 'staff_ids': ['a', 'a', 'b']})
    assert cleaned == {
        'lead_partner_id': 'lp',
        'partner_ids': [],
        'manager_ids': [],
        'in_charge_ids': [],
        'staff_ids': ['a', 'b'],
    }


@pytest.mark.parametrize('team', [
    {'manager_ids': ['x'], 'staff_ids': ['x']},
    {'lead_partner_id': 'x', 'partner_ids': ['x']},
    {'staff_ids': 'x'},
    None,
])
def test_validate_team_assignments_rejects(team):
    with pytest.raises(InvalidTeamAssignment):
        validate_team_assignments(team)
