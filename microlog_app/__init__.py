"""Application factory for the microbiology log app."""
from __future__ import annotations

import click
from flask import Flask
from werkzeug.exceptions import HTTPException

from .config import BaseConfig
from .extensions import csrf, db, login_manager, migrate
from .auth import auth_bp
from .dashboard import dashboard_bp
from .failed_login import FailedLoginTracker
from .logs import logs_bp
from .models import ROLES, ROLE_USER, User
from .statistics import statistics_bp
from .users import users_bp
from . import security  # noqa: F401  registers the unauthorized handler


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or BaseConfig)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions.
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)

    # Per-process tracker; a multi-worker deployment needs a shared store.
    app.failed_login_tracker = FailedLoginTracker(
        max_attempts=app.config["LOGIN_MAX_ATTEMPTS"],
        lockout_seconds=app.config["LOGIN_LOCKOUT_MINUTES"] * 60,
    )

    # Register blueprints.
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(users_bp, url_prefix="/users")
    app.register_blueprint(logs_bp, url_prefix="/logs")
    app.register_blueprint(dashboard_bp, url_prefix="/dashboard")
    app.register_blueprint(statistics_bp, url_prefix="/statistics")

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return {"error": error.description}, error.code

    @app.cli.command("create-db")
    def create_db_command() -> None:
        """Create tables using SQLAlchemy metadata."""
        with app.app_context():
            db.create_all()
            print("Database tables created.")

    @app.cli.command("create-user")
    @click.argument("name")
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    @click.option("--fullname", default="")
    @click.option("--role", type=click.Choice(ROLES), default=ROLE_USER)
    def create_user_command(name: str, password: str, fullname: str, role: str) -> None:
        """Create a login account."""
        with app.app_context():
            if User.query.filter_by(name=name).first():
                raise click.ClickException(f"User {name} already exists.")
            user = User(name=name, fullname=fullname, role=role)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            print(f"User {name} created.")

    return app
