"""
Bug Tracker
Bug Blueprint — CRUD, comments and audit trail for bugs.

Endpoints:
    GET    /api/bugs                      list (status, priority, assigned_to, page, limit)
    GET    /api/bugs/<id>                 detail with comments
    POST   /api/bugs                      create (any authenticated user)
    PUT    /api/bugs/<id>                 sparse update (admin, developer)
    DELETE /api/bugs/<id>                 delete (admin)
    POST   /api/bugs/<id>/comments        add comment
    GET    /api/bugs/<id>/history         field-level change history
"""

import logging

from flask import Blueprint, g, jsonify, request

from bugtracker.blueprints import get_lifecycle, parse_pagination
from bugtracker.blueprints.validation import (
    validate_bug_create,
    validate_bug_update,
    validate_comment,
)
from bugtracker.core.exceptions import ValidationError
from bugtracker.middleware.permission_required import login_required, require_roles
from bugtracker.models.bug import BUG_PRIORITIES, BUG_STATUSES
from bugtracker.store import BugFilters

logger = logging.getLogger(__name__)

bugs_bp = Blueprint("bugs", __name__, url_prefix="/api/bugs")


def _filters_from_args() -> BugFilters:
    status = request.args.get("status") or None
    if status is not None and status not in BUG_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(BUG_STATUSES)}")
    priority = request.args.get("priority") or None
    if priority is not None and priority not in BUG_PRIORITIES:
        raise ValidationError(f"priority must be one of: {', '.join(BUG_PRIORITIES)}")
    assigned_to = request.args.get("assigned_to")
    if assigned_to:
        try:
            assigned_to = int(assigned_to)
        except ValueError:
            raise ValidationError("assigned_to must be an integer") from None
    else:
        assigned_to = None
    return BugFilters(status=status, priority=priority, assigned_to=assigned_to)


# ═══════════════════════════════════════════════════════════════════════════
#  READ
# ═══════════════════════════════════════════════════════════════════════════

@bugs_bp.route("", methods=["GET"])
@login_required
def list_bugs():
    """List bugs, newest first, with pagination metadata."""
    page, limit = parse_pagination()
    result = get_lifecycle().list_bugs(_filters_from_args(), page=page, per_page=limit)
    return jsonify(result)


@bugs_bp.route("/<int:bug_id>", methods=["GET"])
@login_required
def get_bug(bug_id):
    return jsonify(get_lifecycle().get_detail(bug_id))


@bugs_bp.route("/<int:bug_id>/history", methods=["GET"])
@login_required
def get_bug_history(bug_id):
    entries = get_lifecycle().history(bug_id)
    return jsonify([e.to_dict() for e in entries])


# ═══════════════════════════════════════════════════════════════════════════
#  MUTATIONS
# ═══════════════════════════════════════════════════════════════════════════

@bugs_bp.route("", methods=["POST"])
@login_required
def create_bug():
    data = validate_bug_create(request.get_json(silent=True))
    bug = get_lifecycle().create(g.jwt_user_id, data)
    return jsonify(bug.to_dict()), 201


@bugs_bp.route("/<int:bug_id>", methods=["PUT"])
@require_roles("admin", "developer")
def update_bug(bug_id):
    lifecycle = get_lifecycle()
    # a missing bug wins over a malformed body
    lifecycle.get(bug_id)
    patch = validate_bug_update(request.get_json(silent=True))
    bug = lifecycle.update(bug_id, g.jwt_user_id, patch)
    return jsonify(bug.to_dict())


@bugs_bp.route("/<int:bug_id>", methods=["DELETE"])
@require_roles("admin")
def delete_bug(bug_id):
    get_lifecycle().delete(bug_id)
    return jsonify({"message": "Bug deleted successfully", "id": bug_id})


@bugs_bp.route("/<int:bug_id>/comments", methods=["POST"])
@login_required
def add_comment(bug_id):
    lifecycle = get_lifecycle()
    lifecycle.get(bug_id)
    body = validate_comment(request.get_json(silent=True))
    comment = lifecycle.add_comment(bug_id, g.jwt_user_id, body)
    return jsonify(comment), 201
