"""
Bug Tracker
Tests — Bug API.

Covers:
    - auth: 401 without / with bad token, 403 for wrong role
    - create + validation errors
    - list filters + pagination metadata
    - detail with comments, comments endpoint
    - update: history, empty patch, notifications, unassign
    - delete cascade + 404 afterwards
"""

import pytest

from bugtracker.models.bug import BugHistory


def _create_bug(client, headers, **overrides):
    payload = {
        "title": "Login page not loading",
        "description": "The login page shows a blank screen on Safari.",
        "priority": "high",
        "severity": "major",
    }
    payload.update(overrides)
    res = client.post("/api/bugs", json=payload, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# AUTH
# ═════════════════════════════════════════════════════════════════════════════

class TestAuth:
    def test_requires_token(self, client):
        res = client.get("/api/bugs")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_rejects_garbage_token(self, client):
        res = client.get("/api/bugs", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid token"

    def test_reporter_cannot_update(self, client, reporter, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.put(f"/api/bugs/{bug['id']}", json={"status": "closed"},
                         headers=auth_headers(reporter))
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_developer_cannot_delete(self, client, reporter, developer, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.delete(f"/api/bugs/{bug['id']}", headers=auth_headers(developer))
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateBug:
    def test_create(self, client, reporter, auth_headers, recording_notifier):
        bug = _create_bug(client, auth_headers(reporter), status="resolved")
        assert bug["status"] == "open"
        assert bug["reporter_id"] == reporter.id
        assert bug["resolved_at"] is None
        assert bug["priority"] == "high"
        assert recording_notifier.sent == []

    def test_defaults(self, client, reporter, auth_headers):
        res = client.post("/api/bugs", json={
            "title": "Typo in footer",
            "description": "The footer says Copyrigth instead of Copyright.",
        }, headers=auth_headers(reporter))
        assert res.status_code == 201
        body = res.get_json()
        assert body["priority"] == "medium"
        assert body["severity"] == "major"

    def test_null_priority_rejected(self, client, reporter, auth_headers):
        res = client.post("/api/bugs", json={
            "title": "Typo in footer",
            "description": "The footer says Copyrigth instead of Copyright.",
            "priority": None,
        }, headers=auth_headers(reporter))
        assert res.status_code == 400

    @pytest.mark.parametrize("payload,field,code", [
        ({"description": "Long enough description"}, "title", "ERR_VALIDATION_REQUIRED"),
        ({"title": "Valid title"}, "description", "ERR_VALIDATION_REQUIRED"),
        ({"title": "ab", "description": "Long enough description"}, "title",
         "ERR_VALIDATION_INVALID"),
        ({"title": "Valid title", "description": "short"}, "description",
         "ERR_VALIDATION_INVALID"),
        ({"title": "Valid title", "description": "Long enough description",
          "priority": "urgent"}, "priority", "ERR_VALIDATION_INVALID"),
        ({"title": "Valid title", "description": "Long enough description",
          "severity": "blocker"}, "severity", "ERR_VALIDATION_INVALID"),
    ])
    def test_validation(self, client, reporter, auth_headers, payload, field, code):
        res = client.post("/api/bugs", json=payload, headers=auth_headers(reporter))
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == code
        assert field in body["error"]

    def test_non_object_body(self, client, reporter, auth_headers):
        res = client.post("/api/bugs", json=["nope"], headers=auth_headers(reporter))
        assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# READ
# ═════════════════════════════════════════════════════════════════════════════

class TestReadBugs:
    def test_list_with_filters_and_pagination(self, client, reporter, admin, auth_headers):
        h = auth_headers(reporter)
        for i in range(3):
            _create_bug(client, h, title=f"Critical bug {i}", priority="critical")
        _create_bug(client, h, title="Low bug", priority="low")

        res = client.get("/api/bugs?priority=critical&limit=2&page=1", headers=h)
        assert res.status_code == 200
        body = res.get_json()
        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert len(body["bugs"]) == 2
        assert all(b["priority"] == "critical" for b in body["bugs"])
        assert body["bugs"][0]["reporter_name"] == "Bob Reporter"

    def test_list_defaults(self, client, reporter, auth_headers):
        _create_bug(client, auth_headers(reporter))
        body = client.get("/api/bugs?page=abc", headers=auth_headers(reporter)).get_json()
        assert body["pagination"]["page"] == 1
        assert body["pagination"]["limit"] == 10

    def test_list_huge_page_is_empty(self, client, reporter, auth_headers):
        _create_bug(client, auth_headers(reporter))
        res = client.get("/api/bugs?page=100000000000000000000", headers=auth_headers(reporter))
        assert res.status_code == 200
        body = res.get_json()
        assert body["bugs"] == []
        assert body["pagination"]["total"] == 1
        assert (body["pagination"]["page"] - 1) * body["pagination"]["limit"] <= 2**63 - 1

    def test_list_invalid_status_filter(self, client, reporter, auth_headers):
        res = client.get("/api/bugs?status=done", headers=auth_headers(reporter))
        assert res.status_code == 400

    def test_detail(self, client, reporter, developer, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.post(f"/api/bugs/{bug['id']}/comments", json={"comment": "Repro on 17.2"},
                          headers=auth_headers(developer))
        assert res.status_code == 201
        assert res.get_json()["user_name"] == "John Developer"

        detail = client.get(f"/api/bugs/{bug['id']}", headers=auth_headers(reporter)).get_json()
        assert detail["reporter_email"] == "bob@example.com"
        assert detail["assigned_to_name"] is None
        assert [c["comment"] for c in detail["comments"]] == ["Repro on 17.2"]

    def test_detail_not_found(self, client, reporter, auth_headers):
        res = client.get("/api/bugs/999", headers=auth_headers(reporter))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Bug not found"

    def test_empty_comment_rejected(self, client, reporter, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.post(f"/api/bugs/{bug['id']}/comments", json={"comment": "  "},
                          headers=auth_headers(reporter))
        assert res.status_code == 400

    def test_comment_on_missing_bug(self, client, reporter, auth_headers):
        res = client.post("/api/bugs/999/comments", json={"comment": "hi"},
                          headers=auth_headers(reporter))
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# UPDATE
# ═════════════════════════════════════════════════════════════════════════════

class TestUpdateBug:
    def test_assign_and_progress(self, client, reporter, developer, admin, auth_headers,
                                 recording_notifier):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.put(
            f"/api/bugs/{bug['id']}",
            json={"assigned_to": developer.id, "status": "in_progress", "priority": "high"},
            headers=auth_headers(admin),
        )
        assert res.status_code == 200
        body = res.get_json()
        assert body["assigned_to"] == developer.id
        assert body["status"] == "in_progress"

        history = client.get(f"/api/bugs/{bug['id']}/history",
                             headers=auth_headers(reporter)).get_json()
        # priority was already "high"
        assert sorted(h["field_changed"] for h in history) == ["assigned_to", "status"]
        assert all(h["user_id"] == admin.id for h in history)

        by_kind = {kind: user.email for kind, _, user in recording_notifier.sent}
        assert by_kind == {"assignment": "john@example.com", "status_change": "bob@example.com"}

    def test_resolve_sets_resolved_at(self, client, reporter, developer, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        body = client.put(f"/api/bugs/{bug['id']}", json={"status": "resolved"},
                          headers=auth_headers(developer)).get_json()
        assert body["resolved_at"] is not None

    def test_empty_patch(self, client, reporter, developer, auth_headers, recording_notifier):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.put(f"/api/bugs/{bug['id']}", json={}, headers=auth_headers(developer))
        assert res.status_code == 400
        assert res.get_json() == {"error": "No updates provided", "code": "ERR_INVALID_STATE"}
        assert BugHistory.query.count() == 0
        assert recording_notifier.sent == []

    def test_unassign_with_null(self, client, reporter, developer, admin, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        client.put(f"/api/bugs/{bug['id']}", json={"assigned_to": developer.id},
                   headers=auth_headers(admin))
        body = client.put(f"/api/bugs/{bug['id']}", json={"assigned_to": None},
                          headers=auth_headers(admin)).get_json()
        assert body["assigned_to"] is None

    def test_assign_unknown_user(self, client, reporter, admin, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.put(f"/api/bugs/{bug['id']}", json={"assigned_to": 999},
                         headers=auth_headers(admin))
        assert res.status_code == 404
        assert res.get_json()["error"] == "User not found"

    @pytest.mark.parametrize("payload", [
        {"status": "done"},
        {"assigned_to": "7"},
        {"assigned_to": True},
        {"title": "x"},
    ])
    def test_invalid_update(self, client, reporter, admin, auth_headers, payload):
        bug = _create_bug(client, auth_headers(reporter))
        res = client.put(f"/api/bugs/{bug['id']}", json=payload, headers=auth_headers(admin))
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_update_missing_bug(self, client, admin, auth_headers):
        res = client.put("/api/bugs/404", json={"status": "closed"}, headers=auth_headers(admin))
        assert res.status_code == 404

    @pytest.mark.parametrize("payload", [{"status": "done"}, ["nope"], {}])
    def test_update_missing_bug_before_body_checks(self, client, admin, auth_headers, payload):
        res = client.put("/api/bugs/404", json=payload, headers=auth_headers(admin))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Bug not found"

    def test_comment_missing_bug_before_body_checks(self, client, reporter, auth_headers):
        res = client.post("/api/bugs/404/comments", json={"comment": ""},
                          headers=auth_headers(reporter))
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# DELETE
# ═════════════════════════════════════════════════════════════════════════════

class TestDeleteBug:
    def test_delete(self, client, reporter, admin, auth_headers):
        bug = _create_bug(client, auth_headers(reporter))
        client.post(f"/api/bugs/{bug['id']}/comments", json={"comment": "dup"},
                    headers=auth_headers(admin))
        client.put(f"/api/bugs/{bug['id']}", json={"status": "closed"},
                   headers=auth_headers(admin))

        res = client.delete(f"/api/bugs/{bug['id']}", headers=auth_headers(admin))
        assert res.status_code == 200
        assert res.get_json()["message"] == "Bug deleted successfully"

        assert client.get(f"/api/bugs/{bug['id']}", headers=auth_headers(admin)).status_code == 404
        assert client.get(f"/api/bugs/{bug['id']}/history",
                          headers=auth_headers(admin)).status_code == 404
        assert BugHistory.query.filter_by(bug_id=bug["id"]).count() == 0

    def test_delete_missing(self, client, admin, auth_headers):
        assert client.delete("/api/bugs/31", headers=auth_headers(admin)).status_code == 404
