"""
Bug history recorder.

Writes one immutable ``BugHistory`` row per changed field.  Uses the
store's staging semantics so callers keep transaction control.
"""

from bugtracker.models.bug import BugHistory


def record_changes(store, *, bug_id, user_id, changes, changed_at):
    """
    Append a history entry for every ``FieldChange`` in *changes*.

    Returns the staged BugHistory instances (empty list when nothing changed).
    """
    entries = [
        BugHistory(
            bug_id=bug_id,
            user_id=user_id,
            field_changed=change.field,
            old_value=change.old_value,
            new_value=change.new_value,
            changed_at=changed_at,
        )
        for change in changes
    ]
    if not entries:
        return []
    return store.add_history(entries)
