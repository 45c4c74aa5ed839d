"""
Bug Tracker
Bug domain models.

Models:
    - Bug:         tracked defect with priority, severity and lifecycle status
    - BugComment:  append-only discussion entry on a bug
    - BugHistory:  field-level change audit trail for bugs

Architecture ref:
    User ──1:N──▶ Bug (reporter)      User ──1:N──▶ Bug (assignee, optional)
    Bug  ──1:N──▶ BugComment / BugHistory   (cascade delete)
"""

from datetime import datetime, timezone

from bugtracker.models import db


# ── Constants ────────────────────────────────────────────────────────────

BUG_PRIORITIES = ("low", "medium", "high", "critical")

BUG_SEVERITIES = ("minor", "major", "critical")

BUG_STATUSES = ("open", "in_progress", "resolved", "closed", "reopened")

DEFAULT_PRIORITY = "medium"
DEFAULT_SEVERITY = "major"
INITIAL_STATUS = "open"

# Fixed report ordering: most urgent first.
PRIORITY_RANK = {"critical": 1, "high": 2, "medium": 3, "low": 4}

STATUS_RANK = {status: rank for rank, status in enumerate(BUG_STATUSES, start=1)}

# ── SLA thresholds ───────────────────────────────────────────────────────
# Hours a bug may stay open / in progress before it breaches its SLA.
# Priorities without an entry never breach.
SLA_THRESHOLD_HOURS = {
    "critical": 24,
    "high": 48,
}

SLA_ACTIVE_STATUSES = ("open", "in_progress")


def _iso(value):
    return value.isoformat() if value else None


class Bug(db.Model):
    """
    Defect record.

    ``reporter_id`` and ``created_at`` never change after creation.
    ``resolved_at`` is stamped the first time the bug is resolved and is
    not cleared by later transitions.
    """

    __tablename__ = "bugs"
    __table_args__ = (
        db.Index("idx_bugs_status", "status"),
        db.Index("idx_bugs_priority", "priority"),
        db.Index("idx_bugs_created", "created_at"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    # ── Classification
    priority = db.Column(
        db.String(10), nullable=False, default=DEFAULT_PRIORITY,
        comment="low | medium | high | critical",
    )
    severity = db.Column(
        db.String(10), nullable=False, default=DEFAULT_SEVERITY,
        comment="minor | major | critical",
    )
    status = db.Column(
        db.String(20), nullable=False, default=INITIAL_STATUS,
        comment="open | in_progress | resolved | closed | reopened",
    )

    # ── People
    reporter_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True,
    )
    assigned_to = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )

    # ── Relationships
    comments = db.relationship(
        "BugComment", backref="bug", lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="BugComment.created_at",
    )
    history = db.relationship(
        "BugHistory", backref="bug", lazy="dynamic",
        cascade="all, delete-orphan",
        order_by="BugHistory.changed_at.desc()",
    )

    # ── Timestamps
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "severity": self.severity,
            "status": self.status,
            "reporter_id": self.reporter_id,
            "assigned_to": self.assigned_to,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "resolved_at": _iso(self.resolved_at),
        }

    def __repr__(self):
        return f"<Bug {self.id}: [{self.priority}/{self.status}] {(self.title or '')[:30]}>"


class BugComment(db.Model):
    """Comment on a bug. Created once, never edited."""

    __tablename__ = "bug_comments"

    id = db.Column(db.Integer, primary_key=True)
    bug_id = db.Column(
        db.Integer, db.ForeignKey("bugs.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True,
    )
    comment = db.Column(db.Text, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "bug_id": self.bug_id,
            "user_id": self.user_id,
            "comment": self.comment,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<BugComment {self.id}: bug#{self.bug_id} by user#{self.user_id}>"


class BugHistory(db.Model):
    """
    Field-level change audit trail for bugs.

    One row per changed field per update.  Rows are append-only.
    """

    __tablename__ = "bug_history"

    id = db.Column(db.Integer, primary_key=True)
    bug_id = db.Column(
        db.Integer, db.ForeignKey("bugs.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False,
        comment="Who made the change",
    )
    field_changed = db.Column(db.String(50), nullable=False)
    old_value = db.Column(db.Text, default="")
    new_value = db.Column(db.Text, default="")
    changed_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "bug_id": self.bug_id,
            "user_id": self.user_id,
            "field_changed": self.field_changed,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_at": _iso(self.changed_at),
        }

    def __repr__(self):
        return f"<BugHistory {self.id}: bug#{self.bug_id} {self.field_changed}>"
