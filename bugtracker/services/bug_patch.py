"""Typed partial update for bugs and the field-level differ.

A ``BugPatch`` lists exactly the mutable bug fields.  Each field is either
``None`` (absent from the request) or a ``Present`` wrapper carrying the
requested value, so "set assignee to null" (``Present(None)``) and "leave
assignee alone" (``None``) can never be confused.

Usage:
    patch = BugPatch.from_payload({"status": "resolved", "assigned_to": None})
    before = snapshot_bug(bug)
    changes = diff_snapshot(before, patch)
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Generic, Mapping, TypeVar

T = TypeVar("T")

# Bug attributes a patch may touch, in history-recording order.
MUTABLE_FIELDS = ("title", "description", "priority", "severity", "status", "assigned_to")


@dataclass(frozen=True)
class Present(Generic[T]):
    """Marks a patch field as supplied, carrying its (possibly null) value."""

    value: T


@dataclass(frozen=True)
class BugPatch:
    title: Present[str] | None = None
    description: Present[str] | None = None
    priority: Present[str] | None = None
    severity: Present[str] | None = None
    status: Present[str] | None = None
    assigned_to: Present[int | None] | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> BugPatch:
        """Build a patch from a request body; unknown keys are ignored."""
        return cls(**{name: Present(data[name]) for name in MUTABLE_FIELDS if name in data})

    def present(self) -> dict[str, Any]:
        """Return ``{field: requested value}`` for every supplied field."""
        out = {}
        for f in fields(self):
            marker = getattr(self, f.name)
            if marker is not None:
                out[f.name] = marker.value
        return out

    def is_empty(self) -> bool:
        return not self.present()


@dataclass(frozen=True)
class FieldChange:
    """One changed field: the unit recorded as a history entry."""

    field: str
    old: Any
    new: Any

    @property
    def old_value(self) -> str:
        return stringify(self.old)

    @property
    def new_value(self) -> str:
        return stringify(self.new)


def stringify(value: Any) -> str:
    """History representation: null becomes the empty string."""
    return "" if value is None else str(value)


def snapshot_bug(bug) -> dict[str, Any]:
    """Capture the mutable fields (plus reporter and resolution stamp) of *bug*."""
    snap = {name: getattr(bug, name) for name in MUTABLE_FIELDS}
    snap["reporter_id"] = bug.reporter_id
    snap["resolved_at"] = bug.resolved_at
    return snap


def diff_snapshot(before: Mapping[str, Any], patch: BugPatch) -> list[FieldChange]:
    """Return the fields of *patch* whose value differs from *before*.

    Absent fields and fields re-sent with their current value produce
    nothing.
    """
    return [
        FieldChange(name, before[name], new)
        for name, new in patch.present().items()
        if before[name] != new
    ]
