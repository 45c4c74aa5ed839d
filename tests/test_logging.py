"""
Bug Tracker
Tests — log formatting and the bug context carried by lifecycle logs.
"""

import json
import logging

import pytest

from bugtracker.middleware.logging_config import JSONFormatter, ReadableFormatter
from bugtracker.services.bug_lifecycle import BugLifecycle
from bugtracker.services.bug_patch import BugPatch

LIFECYCLE_LOGGER = "bugtracker.services.bug_lifecycle"


@pytest.fixture()
def engine(mem_store, dispatcher, clock):
    return BugLifecycle(mem_store, dispatcher, clock=clock)


@pytest.fixture()
def bug(engine, add_user):
    reporter = add_user("Bob Reporter", role="reporter")
    return engine.create(reporter.id, {"title": "Export hangs", "description": "CSV export never ends"})


def _record(**extra):
    record = logging.LogRecord(LIFECYCLE_LOGGER, logging.INFO, __file__, 10,
                               "Bug #%s deleted", (7,), None)
    record.__dict__.update(extra)
    return record


class TestLifecycleLogContext:
    def test_update_carries_bug_and_user(self, engine, bug, add_user, caplog):
        dev = add_user("John Developer")
        with caplog.at_level(logging.INFO, logger=LIFECYCLE_LOGGER):
            engine.update(bug.id, dev.id, BugPatch.from_payload({"status": "in_progress"}))
        [record] = [r for r in caplog.records if "updated" in r.getMessage()]
        assert record.bug_id == bug.id
        assert record.user_id == dev.id

    def test_comment_and_delete_carry_bug(self, engine, bug, caplog):
        with caplog.at_level(logging.INFO, logger=LIFECYCLE_LOGGER):
            engine.add_comment(bug.id, bug.reporter_id, "Still happening")
            engine.delete(bug.id)
        records = [r for r in caplog.records if r.name == LIFECYCLE_LOGGER]
        assert [r.bug_id for r in records] == [bug.id, bug.id]
        assert records[0].user_id == bug.reporter_id

    def test_json_output_has_bug_context(self, engine, bug, add_user, caplog):
        dev = add_user("John Developer")
        with caplog.at_level(logging.INFO, logger=LIFECYCLE_LOGGER):
            engine.update(bug.id, dev.id, BugPatch.from_payload({"priority": "high"}))
        [record] = [r for r in caplog.records if "updated" in r.getMessage()]
        entry = json.loads(JSONFormatter().format(record))
        assert entry["bug_id"] == bug.id
        assert entry["user_id"] == dev.id
        assert entry["logger"] == LIFECYCLE_LOGGER


class TestFormatters:
    def test_json_skips_unset_fields(self):
        entry = json.loads(JSONFormatter().format(_record(bug_id=7)))
        assert entry["message"] == "Bug #7 deleted"
        assert entry["bug_id"] == 7
        assert "user_id" not in entry
        assert "request_id" not in entry

    def test_json_request_fields(self):
        entry = json.loads(JSONFormatter().format(
            _record(method="GET", path="/api/bugs", status=200, duration_ms=12.5, request_id="abc"),
        ))
        assert (entry["method"], entry["status"], entry["request_id"]) == ("GET", 200, "abc")

    def test_readable_tags(self):
        line = ReadableFormatter().format(_record(bug_id=7, user_id=2, duration_ms=41.6))
        assert line.endswith("Bug #7 deleted [bug_id=7 user_id=2 42ms]")

    def test_readable_without_context(self):
        assert ReadableFormatter().format(_record()).endswith("Bug #7 deleted")
