"""
Rate limiting configuration.

The Limiter instance lives here so blueprints can attach route-level
limits; ``init_rate_limits`` adds per-blueprint limits after the
blueprints are registered.  Storage comes from RATELIMIT_STORAGE_URI
(Redis in production, memory for dev).

Usage:
    from bugtracker.middleware.rate_limiter import init_rate_limits, limiter
    limiter.init_app(app)
    init_rate_limits(app, limiter)
"""

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
)


def login_limit():
    """Limit string for the login route, read from config on each request."""
    return current_app.config.get("LOGIN_RATE_LIMIT", "10 per minute")


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Bug endpoints:     120/minute
        - Report endpoints:  60/minute  (full-table aggregation)
        - Login:             LOGIN_RATE_LIMIT, set on the route itself

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("bugs")
    if bp:
        limiter.limit("120/minute")(bp)

    bp = app.blueprints.get("reports")
    if bp:
        limiter.limit("60/minute")(bp)

    app.logger.info("Rate limiter configured — bugs: 120/min, reports: 60/min, login: %s",
                    app.config.get("LOGIN_RATE_LIMIT"))
