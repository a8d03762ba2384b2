"""Routes package - Blueprint registration."""
from auditflow.routes.main import main_bp
from auditflow.routes.auth import auth_bp
from auditflow.routes.projects import projects_bp
from auditflow.routes.admin import admin_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(projects_bp)
    app.register_blueprint(admin_bp)
