"""
Permission Decorators — JWT-aware role checks for route protection.

Usage:
    @bugs_bp.route("", methods=["POST"])
    @login_required
    def create_bug():
        ...

    @bugs_bp.route("/<int:bug_id>", methods=["DELETE"])
    @require_roles("admin")
    def delete_bug(bug_id):
        ...

Must sit below ``@bp.route`` so it wraps the view itself.
"""

import functools
import logging

from flask import g

from bugtracker.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def _unauthenticated():
    reason = getattr(g, "jwt_error", None)
    return api_error(E.UNAUTHORIZED, reason or "Authentication required")


def login_required(f):
    """Decorator: require a valid access token."""
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        if getattr(g, "jwt_user_id", None) is None:
            return _unauthenticated()
        return f(*args, **kwargs)
    return decorated


def require_roles(*roles: str):
    """
    Decorator: require a valid access token whose role is one of *roles*.

    Args:
        roles: Allowed role names, e.g. "admin", "developer".
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user_id = getattr(g, "jwt_user_id", None)
            if user_id is None:
                return _unauthenticated()

            role = getattr(g, "jwt_role", None)
            if role not in roles:
                logger.warning(
                    "User %d denied: role '%s' not in %s on %s",
                    user_id, role, roles, f.__name__,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            return f(*args, **kwargs)
        return decorated
    return decorator
