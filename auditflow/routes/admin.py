"""Admin routes - user management. Users are blocked, never deleted."""
from flask import Blueprint, g, jsonify, request

from auditflow.errors import InvalidRequest, NotFound
from auditflow.models import USER_ROLES, User, db
from auditflow.routes.auth import admin_required
from auditflow.services import get_services, users as user_service

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound()
    return user


def _not_self(user):
    if user.id == g.user.id:
        raise InvalidRequest('You cannot change your own account status or role.')


# ==================== USER MANAGEMENT ====================

@admin_bp.route('/users')
@admin_required
def users_list():
    """List all users for admin management."""
    users = User.query.order_by(User.created_at.desc()).all()
    return jsonify({'users': [u.to_dict() for u in users], 'valid_roles': USER_ROLES})


@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    """Create a new user from admin panel."""
    data = request.get_json(silent=True) or {}
    user = user_service.create_user(
        data.get('email'),
        data.get('password'),
        name=data.get('name', ''),
        last_name=data.get('last_name', ''),
        role=data.get('role', 'users'),
        approved=bool(data.get('approved', False)),
    )
    return jsonify(user.to_dict()), 201


@admin_bp.route('/users/<user_id>')
@admin_required
def user_detail(user_id):
    user = _get_user(user_id)
    activity = get_services().audit_log.for_user(user.id)
    return jsonify(dict(user.to_dict(), activity=[
        {'action': a.action, 'details': a.details, 'ip_address': a.ip_address,
         'created_at': a.created_at.isoformat() + 'Z'}
        for a in activity
    ]))


@admin_bp.route('/users/<user_id>/approve', methods=['POST'])
@admin_required
def approve_user(user_id):
    user = _get_user(user_id)
    return jsonify(user_service.set_approved(user, True).to_dict())


@admin_bp.route('/users/<user_id>/block', methods=['POST'])
@admin_required
def block_user(user_id):
    user = _get_user(user_id)
    _not_self(user)
    return jsonify(user_service.set_blocked(user, True).to_dict())


@admin_bp.route('/users/<user_id>/unblock', methods=['POST'])
@admin_required
def unblock_user(user_id):
    user = _get_user(user_id)
    return jsonify(user_service.set_blocked(user, False).to_dict())


@admin_bp.route('/users/<user_id>/role', methods=['POST'])
@admin_required
def update_user_role(user_id):
    """Update a user's role."""
    user = _get_user(user_id)
    _not_self(user)
    new_role = (request.get_json(silent=True) or {}).get('role')
    if new_role not in USER_ROLES:
        raise InvalidRequest('Invalid role.')
    return jsonify(user_service.set_role(user, new_role).to_dict())
