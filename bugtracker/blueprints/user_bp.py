"""
Bug Tracker
User Blueprint — registration, login and user lookup.

Endpoints:
    POST /api/users/register     public, 201 / 409 duplicate e-mail
    POST /api/users/login        public, returns access token
    GET  /api/users              authenticated
    GET  /api/users/<id>         authenticated
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from bugtracker.blueprints import get_store
from bugtracker.blueprints.validation import validate_login, validate_register
from bugtracker.middleware.permission_required import login_required
from bugtracker.middleware.rate_limiter import limiter, login_limit
from bugtracker.services import user_service
from bugtracker.services.jwt_service import generate_access_token

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.route("/register", methods=["POST"])
def register():
    data = validate_register(request.get_json(silent=True))
    user = user_service.register_user(
        get_store(),
        data["name"],
        data["email"],
        data["password"],
        data["role"],
        bcrypt_rounds=current_app.config.get("BCRYPT_ROUNDS", 12),
    )
    return jsonify(user.to_dict()), 201


@users_bp.route("/login", methods=["POST"])
@limiter.limit(login_limit)
def login():
    data = validate_login(request.get_json(silent=True))
    user = user_service.authenticate_user(get_store(), data["email"], data["password"])
    token = generate_access_token(user.id, user.email, user.role)
    return jsonify({"token": token, "user": user.to_dict()})


@users_bp.route("", methods=["GET"])
@login_required
def list_users():
    return jsonify([u.to_dict() for u in user_service.list_users(get_store())])


@users_bp.route("/<int:user_id>", methods=["GET"])
@login_required
def get_user(user_id):
    return jsonify(user_service.get_user(get_store(), user_id).to_dict())
