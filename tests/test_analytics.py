"""
Tests for the analytics aggregations and the admin analytics routes.

The clock is pinned so that period windows and day buckets are exact.
"""

from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from campus_portal.main import create_app
from campus_portal.services.analytics_service import AnalyticsService, PACKAGE_BANDS, period_window
from campus_portal.services.chatbot_client import Unavailable

NOW = datetime(2026, 3, 31)


@pytest.fixture
def analytics(db):
    return AnalyticsService(db, clock=lambda: NOW)


@pytest.fixture
def student_oid(db):
    return db.users.insert_one({
        "first_name": "Asha",
        "last_name": "Patil",
        "email": "asha@college.edu",
        "role": "student",
        "student_id": "CE001",
        "department": "Computer Engineering",
        "year": 3,
        "is_active": True,
        "is_verified": False,
        "created_at": NOW - timedelta(days=2),
    }).inserted_id


def placement(student, ctc, status, created_at, industry="Technology", verified=False):
    return {
        "student": student,
        "company": {"name": "Acme", "industry": industry},
        "package": {"ctc": ctc},
        "status": status,
        "is_verified": verified,
        "created_at": created_at,
    }


@pytest.fixture
def populated(db, student_oid):
    db.placements.insert_many([
        placement(student_oid, 300000, "Applied", datetime(2026, 3, 5)),
        placement(student_oid, 700000, "Offer Received", datetime(2026, 3, 10)),
        placement(student_oid, 1500000, "Offer Accepted", datetime(2026, 3, 10, 18), verified=True),
        placement(student_oid, 2500000, "Offer Received", datetime(2026, 3, 30, 23), industry="Finance"),
        # Outside every window except 1y
        placement(student_oid, 5000000, "Offer Accepted", datetime(2025, 12, 1)),
    ])
    return student_oid


class TestPeriodWindow:

    def test_day_periods(self):
        assert period_window("7d", NOW) == (NOW - timedelta(days=7), NOW)
        assert period_window("90d", NOW) == (NOW - timedelta(days=90), NOW)

    def test_year(self):
        assert period_window("1y", NOW) == (datetime(2025, 3, 31), NOW)

    def test_year_from_leap_day(self):
        leap = datetime(2028, 2, 29, 12)
        assert period_window("1y", leap)[0] == datetime(2027, 2, 28, 12)


class TestPlacementAnalytics:

    def test_empty_store_is_all_zero(self, analytics):
        result = analytics.placement_analytics("30d")

        assert result["summary"] == {
            "total_placements": 0,
            "total_offers": 0,
            "total_accepted": 0,
            "verified": 0,
            "avg_package": 0,
            "max_package": 0,
            "min_package": 0,
        }
        assert [band["count"] for band in result["package_distribution"]] == [0] * len(PACKAGE_BANDS)
        assert result["by_department"] == []
        assert len(result["placement_trend"]) == 30
        assert all(day["count"] == 0 for day in result["placement_trend"])
        assert set(result["by_status"].values()) == {0}

    def test_window_summary(self, analytics, populated):
        summary = analytics.placement_analytics("30d")["summary"]

        assert summary["total_placements"] == 4
        assert summary["total_offers"] == 2
        assert summary["total_accepted"] == 1
        assert summary["verified"] == 1
        assert summary["avg_package"] == 1250000
        assert summary["max_package"] == 2500000
        assert summary["min_package"] == 300000

    def test_package_bands(self, analytics, populated):
        bands = analytics.placement_analytics("30d")["package_distribution"]
        assert bands == [
            {"range": "0-5 LPA", "count": 1},
            {"range": "5-10 LPA", "count": 1},
            {"range": "10-20 LPA", "count": 1},
            {"range": "20+ LPA", "count": 1},
        ]

    def test_band_boundaries(self, analytics, db, student_oid):
        for ctc in (0, 500000, 1000000, 2000000):
            db.placements.insert_one(placement(student_oid, ctc, "Applied", datetime(2026, 3, 15)))
        counts = [band["count"] for band in analytics.package_distribution()]
        assert counts == [1, 1, 1, 1]

    def test_breakdowns(self, analytics, populated):
        result = analytics.placement_analytics("30d")

        assert result["funnel"] == {"applied": 4, "offered": 2, "accepted": 1}
        assert result["verification_status"] == {"verified": 1, "unverified": 3}
        assert result["by_status"]["Offer Received"] == 2
        assert result["by_status"]["Rejected"] == 0
        assert result["by_department"][0]["department"] == "Computer Engineering"
        assert result["by_department"][0]["count"] == 4
        assert {row["industry"]: row["count"] for row in result["by_industry"]} == {"Technology": 3, "Finance": 1}

    def test_day_trend(self, analytics, populated):
        trend = analytics.placement_analytics("30d")["placement_trend"]
        by_day = {day["date"]: day["count"] for day in trend}

        assert trend[0]["date"] == "2026-03-01"
        assert trend[-1]["date"] == "2026-03-30"
        assert by_day["2026-03-10"] == 2
        assert sum(by_day.values()) == 4

    def test_year_period_includes_older_records(self, analytics, populated):
        assert analytics.placement_analytics("1y")["summary"]["total_placements"] == 5

    def test_monthly_trend(self, analytics, populated):
        trend = analytics.monthly_placement_trend(2026)
        assert len(trend) == 12
        assert trend[2] == {"month": 3, "count": 4, "avg_package": 1250000}
        assert trend[0]["count"] == 0


class TestUserAndTrainingAnalytics:

    def test_user_overview(self, analytics, student_oid):
        overview = analytics.user_overview()
        assert overview["total_users"] == 1
        assert overview["by_role"]["student"] == 1
        assert overview["by_role"]["faculty"] == 0
        assert overview["by_year"] == {"1": 0, "2": 0, "3": 1, "4": 0}
        assert overview["by_department"]["Mechanical Engineering"] == 0

    def test_user_analytics(self, analytics, student_oid):
        result = analytics.user_analytics("7d")
        assert result["new_users"] == 1
        assert result["new_by_role"]["student"] == 1
        assert len(result["registration_trend"]) == 7

    def test_training_analytics(self, analytics, db, student_oid):
        other = ObjectId()
        db.trainings.insert_one({
            "title": "Aptitude Drill",
            "category": "Aptitude",
            "level": "Beginner",
            "status": "In Progress",
            "is_featured": False,
            "capacity": {"max_students": 10, "current_enrolled": 2},
            "enrollments": [
                {"student": student_oid, "status": "Completed", "progress": 100, "enrollment_date": datetime(2026, 3, 20)},
                {"student": other, "status": "Enrolled", "progress": 40, "enrollment_date": datetime(2026, 3, 21)},
                {"student": ObjectId(), "status": "Dropped", "progress": 10, "enrollment_date": datetime(2026, 3, 21)},
            ],
            "feedback": [
                {"student": student_oid, "rating": 5},
                {"student": other, "rating": 4},
            ],
            "created_at": datetime(2026, 3, 15),
        })

        result = analytics.training_analytics("30d")
        assert result["new_programs"] == 1
        assert result["by_category"]["Aptitude"] == 1
        assert result["total_enrollments"] == 3
        assert result["active_enrollments"] == 2
        assert result["completed_enrollments"] == 1
        assert result["average_rating"] == 4.5
        assert result["rating_by_category"] == [{"category": "Aptitude", "avg_rating": 4.5, "feedback_count": 2}]
        assert sum(day["count"] for day in result["enrollment_trend"]) == 3

    def test_empty_training_overview(self, analytics):
        overview = analytics.training_overview()
        assert overview["total_programs"] == 0
        assert overview["total_enrollments"] == 0
        assert overview["average_rating"] == 0
        assert overview["rating_by_category"] == []


class TestAdminRoutes:

    @pytest.fixture
    def pinned_client(self, settings, db):
        app = create_app(settings=settings, database=db, chatbot=Unavailable("disabled in tests"), clock=lambda: NOW)
        return TestClient(app)

    def test_placement_analytics_route(self, pinned_client, make_user, populated):
        _, admin_headers = make_user("admin")
        response = pinned_client.get("/api/admin/analytics/placements", params={"period": "30d"},
                                     headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["period"] == "30d"
        assert data["summary"]["total_placements"] == 4

    def test_placement_analytics_department_filter(self, pinned_client, make_user, populated):
        _, admin_headers = make_user("admin")
        response = pinned_client.get(
            "/api/admin/analytics/placements",
            params={"period": "30d", "department": "Mechanical Engineering"},
            headers=admin_headers,
        )
        assert response.json()["data"]["summary"]["total_placements"] == 0

    def test_dashboard(self, pinned_client, make_user):
        _, admin_headers = make_user("admin")
        response = pinned_client.get("/api/admin/dashboard", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["users"]["by_role"]["admin"] == 1
        assert data["placements"]["total_placements"] == 0
        assert len(data["monthly_trends"]) == 12

    def test_invalid_period(self, pinned_client, make_user):
        _, admin_headers = make_user("admin")
        response = pinned_client.get("/api/admin/analytics/users", params={"period": "2w"}, headers=admin_headers)
        assert response.status_code == 400

    def test_non_admin_forbidden(self, pinned_client, make_user):
        _, headers = make_user("placement_officer")
        assert pinned_client.get("/api/admin/dashboard", headers=headers).status_code == 403

    def test_requires_token(self, pinned_client):
        assert pinned_client.get("/api/admin/analytics/trainings").status_code == 401
