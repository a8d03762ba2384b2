from datetime import datetime, timedelta

import pytest

from auditflow import create_app
from auditflow.extensions import db
from auditflow.models import Project
from auditflow.services import get_services
from auditflow.services.users import create_user

PASSWORD = 'Sup3r-Secret!'


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now=datetime(2024, 3, 1, 9, 0, 0)):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def database_uri():
    return 'sqlite://'


@pytest.fixture
def app(clock, database_uri):
    app = create_app('testing', clock=clock,
                     config_overrides={'SQLALCHEMY_DATABASE_URI': database_uri})
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services()


@pytest.fixture
def make_user(app):
    counter = {'n': 0}

    def _make_user(email=None, role='users', approved=True, blocked=False, name='Test', last_name=None):
        counter['n'] += 1
        email = email or f'user{counter["n"]}@bumex.mr'
        user = create_user(email, PASSWORD, name=name, last_name=last_name or f'User{counter["n"]}',
                           role=role, approved=approved)
        if blocked:
            user.blocked = True
            db.session.commit()
        return user

    return _make_user


@pytest.fixture
def team(make_user):
    """One user per review tier plus an outsider and an admin."""
    return {
        'staff': make_user(name='Sara'),
        'incharge': make_user(name='Ivan'),
        'manager': make_user(name='Mona'),
        'partner': make_user(name='Paul'),
        'lead_partner': make_user(name='Lina'),
        'outsider': make_user(name='Omar'),
        'admin': make_user(name='Ada', role='admin'),
    }


@pytest.fixture
def project(app, team):
    project = Project(
        name='Statutory audit 2024',
        client_name='Acme SA',
        fiscal_year='2024',
        team_assignments={
            'lead_partner_id': team['lead_partner'].id,
            'partner_ids': [team['partner'].id],
            'manager_ids': [team['manager'].id],
            'in_charge_ids': [team['incharge'].id],
            'staff_ids': [team['staff'].id],
        },
    )
    db.session.add(project)
    db.session.commit()
    return project
