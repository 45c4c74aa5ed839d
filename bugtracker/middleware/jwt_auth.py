"""
JWT Auth Middleware — Parses JWT from Authorization header, sets g.jwt_*.

The hook never rejects a request itself: it only records who is calling.
Route decorators in ``permission_required`` decide whether an anonymous
caller or a given role may proceed.

    Authorization: Bearer <token>  →  g.jwt_user_id, g.jwt_email, g.jwt_role
    invalid / expired token        →  g.jwt_error holds the reason
"""

import logging

import jwt as pyjwt
from flask import g, request

from bugtracker.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/users/login",
    "/api/users/register",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_email = None
        g.jwt_role = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/"):
            return
        if path.startswith(JWT_SKIP_PREFIXES):
            return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
            g.jwt_user_id = int(payload["sub"])
            g.jwt_email = payload.get("email")
            g.jwt_role = payload.get("role")
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "Token expired"
        except (pyjwt.InvalidTokenError, KeyError, ValueError):
            g.jwt_error = "Invalid token"
            logger.debug("Rejected bearer token on %s", path)
