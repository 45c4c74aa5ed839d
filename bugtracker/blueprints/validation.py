"""
Request payload validation.

Each ``validate_*`` function takes the decoded JSON body and either returns
the cleaned values or raises ``ValidationError`` naming the first bad field.
Keys that no rule mentions are ignored.
"""

from bugtracker.core.exceptions import ValidationError
from bugtracker.models.bug import BUG_PRIORITIES, BUG_SEVERITIES, BUG_STATUSES
from bugtracker.models.user import USER_ROLES
from bugtracker.services.bug_patch import BugPatch


def _require_object(data):
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _string(data, field, *, required=False, min_len=None, max_len=None):
    if field not in data:
        if required:
            raise ValidationError(f"{field} is required", {field: "required"})
        return None
    value = data[field]
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {field: "type"})
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required", {field: "required"})
    if min_len is not None and len(value) < min_len:
        raise ValidationError(
            f"{field} must be at least {min_len} characters long", {field: "min_length"},
        )
    if max_len is not None and len(value) > max_len:
        raise ValidationError(
            f"{field} must be at most {max_len} characters long", {field: "max_length"},
        )
    return value


def _choice(data, field, choices):
    if field not in data:
        return None
    value = data[field]
    if value not in choices:
        raise ValidationError(
            f"{field} must be one of: {', '.join(choices)}", {field: "choice"},
        )
    return value


def _nullable_int(data, field):
    value = data[field]
    # bool is an int subclass; reject it explicitly
    if value is None or (isinstance(value, int) and not isinstance(value, bool)):
        return value
    raise ValidationError(f"{field} must be an integer or null", {field: "type"})


# ── Bugs ─────────────────────────────────────────────────────────────────

def validate_bug_create(data) -> dict:
    data = _require_object(data)
    cleaned = {
        "title": _string(data, "title", required=True, min_len=3, max_len=255),
        "description": _string(data, "description", required=True, min_len=10),
        "priority": _choice(data, "priority", BUG_PRIORITIES),
        "severity": _choice(data, "severity", BUG_SEVERITIES),
    }
    return {k: v for k, v in cleaned.items() if v is not None}


def validate_bug_update(data) -> BugPatch:
    """Validate the present fields of an update body and build the patch.

    An explicit ``"assigned_to": null`` is kept as an unassign request.
    """
    data = _require_object(data)
    present = {}
    if "title" in data:
        present["title"] = _string(data, "title", required=True, min_len=3, max_len=255)
    if "description" in data:
        present["description"] = _string(data, "description", required=True, min_len=10)
    if "priority" in data:
        present["priority"] = _choice(data, "priority", BUG_PRIORITIES)
    if "severity" in data:
        present["severity"] = _choice(data, "severity", BUG_SEVERITIES)
    if "status" in data:
        present["status"] = _choice(data, "status", BUG_STATUSES)
    if "assigned_to" in data:
        present["assigned_to"] = _nullable_int(data, "assigned_to")
    return BugPatch.from_payload(present)


def validate_comment(data) -> str:
    data = _require_object(data)
    return _string(data, "comment", required=True, min_len=1)


# ── Users ────────────────────────────────────────────────────────────────

def validate_register(data) -> dict:
    data = _require_object(data)
    cleaned = {
        "name": _string(data, "name", required=True, min_len=2, max_len=100),
        "email": _string(data, "email", required=True),
        "password": _password(data, min_len=6),
        "role": _choice(data, "role", USER_ROLES),
    }
    return cleaned


def validate_login(data) -> dict:
    data = _require_object(data)
    return {
        "email": _string(data, "email", required=True),
        "password": _password(data),
    }


def _password(data, min_len=None):
    # Not stripped: whitespace is part of a password
    value = data.get("password")
    if not isinstance(value, str) or not value:
        raise ValidationError("password is required", {"password": "required"})
    if min_len is not None and len(value) < min_len:
        raise ValidationError(
            f"password must be at least {min_len} characters long", {"password": "min_length"},
        )
    return value
