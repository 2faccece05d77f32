"""
Tests for the admin audit log listing.
"""

from cemse_backend.services.audit import log_create, log_update


class TestAuditLogList:

    def test_admin_only(self, signed_in, client):
        assert client.get("/api/audit-logs").status_code == 401

        user, _ = signed_in()
        assert user.get("/api/audit-logs").status_code == 403

        director, _ = signed_in(role="DIRECTOR")
        assert director.get("/api/audit-logs").status_code == 403

    def test_lists_recorded_actions(self, signed_in):
        admin, profile = signed_in(role="ADMIN")

        body = admin.get("/api/audit-logs").json()

        assert body["pagination"]["limit"] == 50
        login = [log for log in body["logs"] if log["action"] == "LOGIN_SUCCESS"]
        assert login[0]["user_id"] == profile.id
        assert login[0]["ip_address"] == "testclient"

    def test_filters(self, signed_in):
        admin, _ = signed_in(role="ADMIN")
        log_create("School", "s-1", "Alpha", "p-9", metadata={"code": "A-1"})
        log_update("School", "s-1", "Alpha", "p-9", {"name": {"from": "A", "to": "Alpha"}})
        log_create("Case", "c-1", "CASE-2026-0001", "p-8")

        by_entity = admin.get("/api/audit-logs", params={"entity_type": "School"}).json()
        assert by_entity["pagination"]["total"] == 2

        by_action = admin.get("/api/audit-logs", params={"action": "created"}).json()
        assert {log["entity_id"] for log in by_action["logs"]} == {"s-1", "c-1"}

        by_user = admin.get("/api/audit-logs", params={"user_id": "p-8"}).json()
        assert [log["action"] for log in by_user["logs"]] == ["CASE_CREATED"]

        entry = admin.get("/api/audit-logs", params={"entity_id": "s-1", "action": "SCHOOL_CREATED"}).json()["logs"][0]
        assert entry["metadata"] == {"code": "A-1"}

    def test_limit_bounds(self, signed_in):
        admin, _ = signed_in(role="ADMIN")
        assert admin.get("/api/audit-logs", params={"limit": 200}).status_code == 200
        assert admin.get("/api/audit-logs", params={"limit": 201}).status_code == 400
