"""
Tests for the case statistics endpoints.
"""

from datetime import date, datetime, timedelta, timezone
from itertools import count

import pytest

from cemse_backend.interface.metrics import MetricsQuery
from cemse_backend.model.case import Case
from cemse_backend.services.metrics import case_metrics, month_keys

_numbers = count(1)


@pytest.fixture
def add_case(db):

    def factory(school, created_at=None, **kwargs):
        values = {
            "case_number": f"CASE-2026-{next(_numbers):04d}",
            "incident_date": date(2026, 3, 14),
            "incident_time": "10:30",
            "violence_type": "VERBAL",
            "description": "Repeated insults during recess.",
            "location": "Patio",
            "victim_name": "Student A",
            "aggressor_name": "Student B",
            "school_id": school.id,
        }
        values.update(kwargs)
        case = Case(**values)
        if created_at is not None:
            case.created_at = created_at
        db.add(case)
        db.commit()
        return case

    return factory


@pytest.fixture
def schools(make_school):
    return make_school(name="Colegio Norte", code="CN-001"), make_school(name="Colegio Sur", code="CS-001")


class TestMonthKeys:

    def test_twelve_months_ending_now(self):
        keys = month_keys(date(2026, 3, 5))
        assert len(keys) == 12
        assert keys[0] == "2025-04"
        assert keys[-1] == "2026-03"

    def test_december_boundary(self):
        assert month_keys(date(2026, 12, 1), months=2) == ["2026-11", "2026-12"]


class TestCaseMetrics:

    def test_counts_and_breakdowns(self, signed_in, schools, add_case):
        north, south = schools
        add_case(north, status="OPEN", priority="HIGH", violence_type="PHYSICAL")
        add_case(north, status="IN_PROGRESS", priority="HIGH")
        add_case(south, status="RESOLVED", priority="LOW")
        add_case(south, status="OPEN", is_deleted=True)
        client, _ = signed_in(role="ADMIN")

        response = client.get("/api/cases/metrics")

        assert response.status_code == 200
        metrics = response.json()
        assert metrics["total_cases"] == 3
        assert metrics["open_cases"] == 1
        assert metrics["in_progress_cases"] == 1
        assert metrics["resolved_cases"] == 1
        assert metrics["closed_cases"] == 0
        assert metrics["recent_cases"] == 3
        assert metrics["cases_by_violence_type"] == [
            {"type": "PHYSICAL", "count": 1},
            {"type": "VERBAL", "count": 2},
        ]
        assert metrics["cases_by_priority"] == [{"priority": "LOW", "count": 1}, {"priority": "HIGH", "count": 2}]
        assert metrics["cases_by_school"] == [
            {"school_id": north.id, "school_name": "Colegio Norte", "school_code": "CN-001", "count": 2},
            {"school_id": south.id, "school_name": "Colegio Sur", "school_code": "CS-001", "count": 1},
        ]

    def test_timeline_is_zero_filled(self, signed_in, schools, add_case):
        north, _ = schools
        add_case(north)
        add_case(north, created_at=datetime.now(timezone.utc) - timedelta(days=400))
        client, _ = signed_in(role="SUPER_ADMIN")

        metrics = client.get("/api/cases/metrics").json()

        timeline = metrics["cases_over_time"]
        assert len(timeline) == 12
        assert timeline[-1] == {"month": datetime.now(timezone.utc).strftime("%Y-%m"), "count": 1}
        assert sum(point["count"] for point in timeline) == 1
        assert metrics["total_cases"] == 2
        assert metrics["recent_cases"] == 1

    def test_filters(self, signed_in, schools, add_case):
        north, south = schools
        add_case(north, incident_date=date(2026, 1, 10), priority="URGENT")
        add_case(north, incident_date=date(2026, 2, 10))
        add_case(south, incident_date=date(2026, 2, 20))
        client, _ = signed_in(role="ADMIN")

        def total(**params):
            response = client.get("/api/cases/metrics", params=params)
            assert response.status_code == 200, response.text
            return response.json()["total_cases"]

        assert total(school_id=north.id) == 2
        assert total(priority="URGENT") == 1
        assert total(start_date="2026-02-01") == 2
        assert total(start_date="2026-02-01", end_date="2026-02-15") == 1
        assert total(violence_type="SEXUAL") == 0

    def test_invalid_filters(self, signed_in):
        client, _ = signed_in(role="ADMIN")

        assert client.get("/api/cases/metrics", params={"status": "LOST"}).status_code == 400
        response = client.get("/api/cases/metrics", params={"start_date": "2026-05-01", "end_date": "2026-04-01"})
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.parametrize("role", ["USER", "PROFESOR", "DIRECTOR"])
    def test_admins_only(self, signed_in, make_school, role):
        school = make_school()
        client, _ = signed_in(role=role, school_id=school.id if role != "USER" else None)
        assert client.get("/api/cases/metrics").status_code == 403

    def test_anonymous(self, client):
        assert client.get("/api/cases/metrics").status_code == 401


class TestSchoolMetrics:

    def test_director_sees_own_school(self, signed_in, schools, add_case):
        north, south = schools
        add_case(north, status="CLOSED")
        add_case(south)
        client, _ = signed_in(role="DIRECTOR", school_id=north.id)

        response = client.get(f"/api/schools/{north.id}/metrics")

        assert response.status_code == 200
        metrics = response.json()
        assert metrics["school_id"] == north.id
        assert metrics["school_name"] == "Colegio Norte"
        assert metrics["total_cases"] == 1
        assert metrics["closed_cases"] == 1
        assert "cases_by_school" not in metrics

    def test_school_id_filter_cannot_widen_scope(self, signed_in, schools, add_case):
        north, south = schools
        add_case(south)
        client, _ = signed_in(role="ADMIN")

        response = client.get(f"/api/schools/{north.id}/metrics", params={"school_id": south.id})

        assert response.json()["total_cases"] == 0

    def test_director_of_other_school(self, signed_in, schools):
        north, south = schools
        client, _ = signed_in(role="DIRECTOR", school_id=south.id)
        assert client.get(f"/api/schools/{north.id}/metrics").status_code == 403

    def test_profesor_forbidden(self, signed_in, schools):
        north, _ = schools
        client, _ = signed_in(role="PROFESOR", school_id=north.id)
        assert client.get(f"/api/schools/{north.id}/metrics").status_code == 403

    def test_missing_school(self, signed_in):
        client, _ = signed_in(role="ADMIN")
        assert client.get("/api/schools/missing/metrics").status_code == 404


class TestMetricsService:

    def test_restricted_to_school(self, db, schools, add_case):
        north, south = schools
        add_case(north, status="ARCHIVED")
        add_case(south)

        metrics = case_metrics(db, MetricsQuery(), school_id=north.id)

        assert metrics["total_cases"] == 1
        assert metrics["archived_cases"] == 1
        assert "cases_by_school" not in metrics
