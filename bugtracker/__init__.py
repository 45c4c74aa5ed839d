"""
Bug Tracker
Flask Application Factory.

Usage:
    from bugtracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import atexit
import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from bugtracker.config import config
from bugtracker.core.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from bugtracker.middleware.jwt_auth import init_jwt_middleware
from bugtracker.middleware.logging_config import configure_logging
from bugtracker.middleware.rate_limiter import init_rate_limits, limiter
from bugtracker.middleware.timing import init_request_timing
from bugtracker.models import db
from bugtracker.services.notification import (
    EmailNotifier,
    MailSettings,
    NotificationDispatcher,
)
from bugtracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()


def _init_dispatcher(app) -> NotificationDispatcher:
    notifier = EmailNotifier(MailSettings.from_config(app.config))
    dispatcher = NotificationDispatcher(
        notifier,
        run_async=app.config.get("NOTIFY_ASYNC", True),
        max_workers=app.config.get("NOTIFY_WORKERS", 2),
    )
    app.extensions["notification_dispatcher"] = dispatcher
    if dispatcher.run_async:
        atexit.register(dispatcher.shutdown, wait=False)
    if not notifier.is_configured():
        app.logger.info("MAIL_SERVER not set — notification e-mails will be logged only")
    return dispatcher


def _register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        code = E.VALIDATION_REQUIRED if "required" in e.details.values() else E.VALIDATION_INVALID
        return api_error(code, e.message, details=e.details)

    @app.errorhandler(InvalidStateError)
    def handle_invalid_state(e):
        return api_error(E.INVALID_STATE, e.message)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        return api_error(E.CONFLICT_DUPLICATE, f"{e.resource} with this {e.field} already exists")

    @app.errorhandler(AuthenticationError)
    def handle_authentication(e):
        return api_error(E.UNAUTHORIZED, e.message)

    @app.errorhandler(SQLAlchemyError)
    def handle_database(e):
        logger.exception("Database error on %s %s", request.method, request.path)
        db.session.rollback()
        return api_error(E.DATABASE, "Internal server error")

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retry_after": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        db.session.rollback()
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Production config validates its environment on instantiation
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + JWT parsing ─────────────────────────────────────
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Notification dispatcher (one per app, shared by requests) ────────
    _init_dispatcher(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from bugtracker.models import bug as _bug_models     # noqa: F401
    from bugtracker.models import user as _user_models   # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ───────────────────────
    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
        db_dir = os.path.dirname(db_uri[len("sqlite:///"):])
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from bugtracker.blueprints import register_blueprints
    register_blueprints(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    _register_error_handlers(app)

    # ── Health check ─────────────────────────────────────────────────────
    @app.route("/health")
    def health():
        dispatcher = app.extensions["notification_dispatcher"]
        return {
            "status": "ok",
            "app": "Bug Tracker",
            "notifications": dict(dispatcher.stats),
        }

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed demo users, bugs and comments (password: password123)."""
        from bugtracker.services.user_service import seed_demo_data
        from bugtracker.store import SQLAlchemyStore

        counts = seed_demo_data(
            SQLAlchemyStore(db.session),
            bcrypt_rounds=app.config.get("BCRYPT_ROUNDS", 12),
        )
        click.echo(
            f"Seeded {counts['users']} users, {counts['bugs']} bugs, "
            f"{counts['comments']} comments."
        )

    return app
