"""
Bug Tracker
Report Blueprint — read-only aggregates over the bug set (admin, developer).

Endpoints:
    GET /api/reports/bugs-by-priority
    GET /api/reports/bugs-per-day?days=30
    GET /api/reports/developer-performance
    GET /api/reports/sla-violations
    GET /api/reports/bug-status-summary
"""

from flask import Blueprint, jsonify, request

from bugtracker.blueprints import get_reports
from bugtracker.core.exceptions import ValidationError
from bugtracker.middleware.permission_required import require_roles
from bugtracker.services.reports import DEFAULT_WINDOW_DAYS, MAX_WINDOW_DAYS

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

_REPORT_ROLES = ("admin", "developer")


@reports_bp.route("/bugs-by-priority", methods=["GET"])
@require_roles(*_REPORT_ROLES)
def bugs_by_priority():
    return jsonify(get_reports().by_priority())


@reports_bp.route("/bugs-per-day", methods=["GET"])
@require_roles(*_REPORT_ROLES)
def bugs_per_day():
    days = request.args.get("days", DEFAULT_WINDOW_DAYS, type=int)
    if days is None or days < 0:
        raise ValidationError("days must be a non-negative integer", {"days": "type"})
    if days > MAX_WINDOW_DAYS:
        raise ValidationError(f"days must be at most {MAX_WINDOW_DAYS}", {"days": "range"})
    return jsonify(get_reports().per_day(days))


@reports_bp.route("/developer-performance", methods=["GET"])
@require_roles(*_REPORT_ROLES)
def developer_performance():
    return jsonify(get_reports().developer_performance())


@reports_bp.route("/sla-violations", methods=["GET"])
@require_roles(*_REPORT_ROLES)
def sla_violations():
    return jsonify(get_reports().sla_violations())


@reports_bp.route("/bug-status-summary", methods=["GET"])
@require_roles(*_REPORT_ROLES)
def bug_status_summary():
    return jsonify(get_reports().status_summary())
