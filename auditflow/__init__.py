"""
AuditFlow - Application Factory
"""
import os

import click
from dotenv import load_dotenv
from flask import Flask, has_request_context, jsonify, request
from werkzeug.exceptions import HTTPException

from auditflow.errors import AuditFlowError
from auditflow.extensions import db, babel
from auditflow.log_utils import configure_logging
from auditflow.routes import register_blueprints
from auditflow.services import init_services
from auditflow.utils import utcnow
from config.settings import config


def get_locale():
    """Determine the best locale for the user."""
    if not has_request_context():
        return None
    lang = request.cookies.get('babel_translation')
    if lang:
        return lang
    return request.accept_languages.best_match(['en', 'fr'])


def create_app(config_name=None, clock=None, config_overrides=None):
    """Application Factory."""
    load_dotenv()

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    babel.init_app(app, locale_selector=get_locale)

    init_services(app, clock or utcnow)

    # Register blueprints
    register_blueprints(app)
    register_error_handlers(app)

    # CLI Commands
    register_cli_commands(app)

    return app


def register_error_handlers(app):

    @app.errorhandler(AuditFlowError)
    def handle_auditflow_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        kind = (error.name or 'error').lower().replace(' ', '_')
        return jsonify({'error': kind, 'message': error.description}), error.code


def register_cli_commands(app):
    """Register CLI commands."""

    @app.cli.command("init-db")
    def init_db_command():
        """Creates database tables."""
        db.create_all()
        click.echo("Initialized the database.")

    @app.cli.command("create-user")
    @click.argument("email")
    @click.password_option()
    @click.option("--name", default="")
    @click.option("--last-name", default="")
    @click.option("--role", default="users",
                  type=click.Choice(['users', 'semi-admin', 'admin', 'dev']))
    @click.option("--approved/--not-approved", default=True)
    def create_user_command(email, password, name, last_name, role, approved):
        """Creates a user profile and its login account."""
        from auditflow.services.users import create_user
        try:
            user = create_user(email, password, name=name, last_name=last_name,
                               role=role, approved=approved)
        except AuditFlowError as e:
            raise click.ClickException(str(e)) from e
        click.echo(f"Created user {user.email} ({user.role}) with id {user.id}.")

    @app.cli.command("purge-otps")
    def purge_otps_command():
        """Deletes expired one-time codes."""
        from auditflow.services import get_services
        try:
            removed = get_services().otp.purge_expired()
        except AuditFlowError as e:
            raise click.ClickException(str(e)) from e
        click.echo(f"Removed {removed} expired code(s).")
