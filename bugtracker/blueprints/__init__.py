"""
Bug Tracker
Blueprint registry and request helpers shared by the blueprints.
"""

from flask import current_app, g, request

from bugtracker.models import db
from bugtracker.services.bug_lifecycle import BugLifecycle
from bugtracker.services.reports import BugReports
from bugtracker.store import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, SQLAlchemyStore

MAX_PAGE_SIZE = 100
# OFFSET must fit a signed 64-bit integer
_MAX_OFFSET = 2**63 - 1


def parse_pagination(default_limit=DEFAULT_PAGE_SIZE, max_limit=MAX_PAGE_SIZE):
    """Read 1-based ``page`` / ``limit`` query params.

    Garbage falls back to the defaults; limit is capped at max_limit and
    page at the last one whose offset the database can address.

    Returns:
        (page, limit)
    """
    try:
        page = max(int(request.args.get("page", DEFAULT_PAGE)), 1)
    except (ValueError, TypeError):
        page = DEFAULT_PAGE
    try:
        limit = int(request.args.get("limit", default_limit))
        limit = min(limit, max_limit) if limit > 0 else default_limit
    except (ValueError, TypeError):
        limit = default_limit
    page = min(page, _MAX_OFFSET // limit + 1)
    return page, limit


def get_store() -> SQLAlchemyStore:
    """Store bound to the request's database session."""
    if "bug_store" not in g:
        g.bug_store = SQLAlchemyStore(db.session)
    return g.bug_store


def get_dispatcher():
    return current_app.extensions["notification_dispatcher"]


def get_lifecycle() -> BugLifecycle:
    return BugLifecycle(get_store(), get_dispatcher())


def get_reports() -> BugReports:
    return BugReports(get_store())


def register_blueprints(app):
    from bugtracker.blueprints.bug_bp import bugs_bp
    from bugtracker.blueprints.report_bp import reports_bp
    from bugtracker.blueprints.user_bp import users_bp

    app.register_blueprint(users_bp)
    app.register_blueprint(bugs_bp)
    app.register_blueprint(reports_bp)
