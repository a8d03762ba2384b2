"""Project routes - team assignments, section reviews and legacy sign-offs."""
from flask import Blueprint, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from auditflow.errors import InvalidRequest, NotFound, PersistenceFailed, Unauthorized
from auditflow.models import Project, db
from auditflow.routes.auth import login_required
from auditflow.services import get_services
from auditflow.services.permissions import (
    can_edit_project, can_manage_team, get_project_role, is_dev_or_admin,
    validate_team_assignments,
)

projects_bp = Blueprint('projects', __name__, url_prefix='/projects')


def _get_project(project_id):
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFound()
    return project


def _get_viewable_project(project_id):
    project = _get_project(project_id)
    if not can_edit_project(g.user, project):
        raise Unauthorized()
    return project


def _review_payload(project, section_id):
    reviews = get_services().reviews
    state = reviews.get_section_review(project, section_id)
    return {
        'project_id': project.id,
        'section_id': section_id,
        'review': state.to_dict(),
        'indicator': reviews.get_section_review_indicator(g.user, project, section_id),
        'can_review': reviews.can_user_review_section(g.user, project, section_id),
        'history': reviews.get_all_section_reviews(project, section_id),
    }


# ========================================
# PROJECTS
# ========================================

@projects_bp.route('')
@login_required
def project_list():
    """Projects the current user belongs to (all of them for dev/admin)."""
    query = Project.query.filter_by(archived=False).order_by(Project.name)
    projects = query.all()
    if not is_dev_or_admin(g.user):
        projects = [p for p in projects if g.user.id in p.member_ids()]
    return jsonify([
        dict(p.to_dict(), project_role=get_project_role(g.user, p)) for p in projects
    ])


@projects_bp.route('/<project_id>')
@login_required
def project_detail(project_id):
    project = _get_viewable_project(project_id)
    return jsonify(dict(
        project.to_dict(),
        project_role=get_project_role(g.user, project),
        sign_offs=project.sign_offs or {},
    ))


@projects_bp.route('/<project_id>/team', methods=['PUT'])
@login_required
def update_team(project_id):
    if not can_manage_team(g.user):
        raise Unauthorized()
    project = _get_project(project_id)
    project.team_assignments = validate_team_assignments(request.get_json(silent=True))
    get_services().audit_log.entry('team_updated', g.user.id, f'Team of project {project.id}',
                                   project_id=project.id)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise PersistenceFailed() from e
    return jsonify(project.to_dict())


# ========================================
# SECTION REVIEWS
# ========================================

@projects_bp.route('/<project_id>/reviews/<section_id>')
@login_required
def section_review(project_id, section_id):
    project = _get_viewable_project(project_id)
    return jsonify(_review_payload(project, section_id))


@projects_bp.route('/<project_id>/reviews/<section_id>/review', methods=['POST'])
@login_required
def review_section(project_id, section_id):
    project = _get_project(project_id)
    get_services().reviews.review(project, section_id, g.user)
    return jsonify(_review_payload(project, section_id))


@projects_bp.route('/<project_id>/reviews/<section_id>/unreview', methods=['POST'])
@login_required
def unreview_section(project_id, section_id):
    project = _get_project(project_id)
    data = request.get_json(silent=True) or {}
    get_services().reviews.unreview(project, section_id, g.user, tier=data.get('tier'))
    return jsonify(_review_payload(project, section_id))


# ========================================
# LEGACY SIGN-OFFS
# ========================================

@projects_bp.route('/<project_id>/signoffs/<section_id>', methods=['POST', 'DELETE'])
@login_required
def section_sign_off(project_id, section_id):
    project = _get_project(project_id)
    data = request.get_json(silent=True) or {}
    level = data.get('level') or request.args.get('level')
    if not level:
        raise InvalidRequest()

    reviews = get_services().reviews
    if request.method == 'POST':
        record = reviews.sign_off(project, section_id, g.user, level)
    else:
        record = reviews.unsign(project, section_id, g.user, level)
    return jsonify({'section_id': section_id, 'sign_off': record})
