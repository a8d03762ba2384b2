"""User provisioning and account-status changes."""
import logging

from sqlalchemy.exc import SQLAlchemyError

from auditflow.errors import InvalidRequest, PersistenceFailed
from auditflow.models import USER_ROLES, AuthAccount, User, db
from auditflow.services import get_services
from auditflow.utils import new_id, normalize_email

logger = logging.getLogger(__name__)


def _commit():
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("User update failed: %s", e)
        raise PersistenceFailed() from e


def create_user(email, password, name='', last_name='', role='users', approved=False):
    """Create the profile and the identity-provider account together."""
    email = normalize_email(email)
    if not email or not password or role not in USER_ROLES:
        raise InvalidRequest()
    if (User.query.filter_by(email=email).first() is not None
            or AuthAccount.query.filter_by(email=email).first() is not None):
        raise InvalidRequest(f'The user {email} is already registered.')

    user = User(id=new_id(), email=email, name=name or None, last_name=last_name or None,
                role=role, approved=approved)
    db.session.add(user)
    get_services().provider.create_account(user.id, email, password)
    _commit()
    return user


def set_approved(user, approved):
    user.approved = approved
    _commit()
    return user


def set_blocked(user, blocked):
    user.blocked = blocked
    _commit()
    return user


def set_role(user, role):
    if role not in USER_ROLES:
        raise InvalidRequest()
    user.role = role
    _commit()
    return user
