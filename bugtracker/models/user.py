"""
Bug Tracker
User domain model.

Models:
    - User: account that reports bugs, is assigned bugs, or administers them
"""

from datetime import datetime, timezone

from bugtracker.models import db


# ── Constants ────────────────────────────────────────────────────────────────

USER_ROLES = ("admin", "developer", "reporter")

# Roles allowed to mutate bugs / read reports.
ELEVATED_ROLES = ("admin", "developer")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(200), nullable=False, unique=True, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(
        db.String(20), nullable=False, default="reporter",
        comment="admin | developer | reporter",
    )
    created_at = db.Column(
        db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self):
        # password_hash is never part of a read path
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.id}: {self.email} ({self.role})>"
