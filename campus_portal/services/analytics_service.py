"""
Analytics Service - read-only aggregations over users, placements and trainings.

Every method answers with fully populated structures: empty collections
produce zero counts, zero package figures and zero-filled bands/trends,
never an error.

Time windows are half-open [start, end) and anchored at the clock passed
to the service (utcnow by default), so tests can pin "now".
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from pymongo.collection import Collection
from pymongo.database import Database

from campus_portal.db.mongodb import COLLECTIONS
from campus_portal.schemas.schemas import (
    ACTIVE_ENROLLMENT_STATUSES, AnalyticsPeriod, Department, PlacementStatus, TrainingCategory,
    TrainingLevel, TrainingStatus, UserRole
)
from campus_portal.services.mongo_service import utcnow

logger = logging.getLogger(__name__)

LAKH = 100_000

# (label, lower bound inclusive, upper bound exclusive) in INR
PACKAGE_BANDS = [
    ("0-5 LPA", 0, 5 * LAKH),
    ("5-10 LPA", 5 * LAKH, 10 * LAKH),
    ("10-20 LPA", 10 * LAKH, 20 * LAKH),
    ("20+ LPA", 20 * LAKH, None),
]

PERIOD_DAYS = {
    AnalyticsPeriod.week.value: 7,
    AnalyticsPeriod.month.value: 30,
    AnalyticsPeriod.quarter.value: 90,
}


def period_window(period: str, now: datetime) -> Tuple[datetime, datetime]:
    """Translate 7d/30d/90d/1y into [start, now)."""
    if period == AnalyticsPeriod.year.value:
        try:
            start = now.replace(year=now.year - 1)
        except ValueError:
            # Feb 29 has no counterpart last year
            start = now.replace(year=now.year - 1, day=28)
        return start, now
    return now - timedelta(days=PERIOD_DAYS[period]), now


def _in_window(start: datetime, end: datetime) -> dict:
    return {"$gte": start, "$lt": end}


def _count_by(collection: Collection, match: dict, key: str, pre: Optional[list] = None) -> Dict[str, int]:
    pipeline = list(pre or []) + [
        {"$match": match},
        {"$group": {"_id": f"${key}", "count": {"$sum": 1}}},
    ]
    return {
        str(row["_id"]): row["count"]
        for row in collection.aggregate(pipeline)
        if row["_id"] is not None
    }


def _zero_filled(counts: Dict[str, int], keys) -> Dict[str, int]:
    out = {key: counts.get(key, 0) for key in keys}
    for key, value in counts.items():
        out.setdefault(key, value)
    return out


def _day_trend(collection: Collection, date_path: str, start: datetime, end: datetime,
               pre: Optional[list] = None, match: Optional[dict] = None) -> List[dict]:
    """Counts per calendar day in [start, end), one entry per day."""
    stage_match = dict(match or {})
    stage_match[date_path] = _in_window(start, end)
    pipeline = list(pre or []) + [
        {"$match": stage_match},
        {"$group": {
            "_id": {
                "year": {"$year": f"${date_path}"},
                "month": {"$month": f"${date_path}"},
                "day": {"$dayOfMonth": f"${date_path}"},
            },
            "count": {"$sum": 1},
        }},
    ]
    counts = {
        date(row["_id"]["year"], row["_id"]["month"], row["_id"]["day"]): row["count"]
        for row in collection.aggregate(pipeline)
    }

    trend = []
    day = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while day <= last:
        trend.append({"date": day.isoformat(), "count": counts.get(day, 0)})
        day += timedelta(days=1)
    return trend


class AnalyticsService:
    """Aggregated views for the admin dashboard, analytics and public stats."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        self.users: Collection = db[COLLECTIONS["users"]]
        self.placements: Collection = db[COLLECTIONS["placements"]]
        self.trainings: Collection = db[COLLECTIONS["trainings"]]
        self.clock = clock

    # ============================================================
    # USERS
    # ============================================================

    def user_overview(self) -> dict:
        total = self.users.count_documents({})
        active = self.users.count_documents({"is_active": True})
        students = {"role": UserRole.student.value}
        return {
            "total_users": total,
            "active_users": active,
            "inactive_users": total - active,
            "verified_users": self.users.count_documents({"is_verified": True}),
            "by_role": self.users_by_role(),
            "by_department": _zero_filled(
                _count_by(self.users, students, "department"), [d.value for d in Department]
            ),
            "by_year": _zero_filled(_count_by(self.users, students, "year"), ["1", "2", "3", "4"]),
        }

    def users_by_role(self, match: Optional[dict] = None) -> Dict[str, int]:
        """Role counts over the users matching a list filter."""
        return _zero_filled(_count_by(self.users, match or {}, "role"), [r.value for r in UserRole])

    def user_analytics(self, period: str) -> dict:
        start, end = period_window(period, self.clock())
        window = {"created_at": _in_window(start, end)}
        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "new_users": self.users.count_documents(window),
            "new_by_role": _zero_filled(_count_by(self.users, window, "role"), [r.value for r in UserRole]),
            "new_students_by_department": _zero_filled(
                _count_by(self.users, dict(window, role=UserRole.student.value), "department"),
                [d.value for d in Department],
            ),
            "registration_trend": _day_trend(self.users, "created_at", start, end),
        }

    # ============================================================
    # PLACEMENTS
    # ============================================================

    def placement_summary(self, match: Optional[dict] = None) -> dict:
        """Funnel counts and package figures over the matching records."""
        pipeline = [
            {"$match": match or {}},
            {"$group": {
                "_id": None,
                "total_placements": {"$sum": 1},
                "total_offers": {"$sum": {"$cond": [
                    {"$eq": ["$status", PlacementStatus.offer_received.value]}, 1, 0
                ]}},
                "total_accepted": {"$sum": {"$cond": [
                    {"$eq": ["$status", PlacementStatus.offer_accepted.value]}, 1, 0
                ]}},
                "verified": {"$sum": {"$cond": [{"$eq": ["$is_verified", True]}, 1, 0]}},
                "avg_package": {"$avg": "$package.ctc"},
                "max_package": {"$max": "$package.ctc"},
                "min_package": {"$min": "$package.ctc"},
            }},
        ]
        rows = list(self.placements.aggregate(pipeline))
        row = rows[0] if rows else {}
        return {
            "total_placements": row.get("total_placements", 0),
            "total_offers": row.get("total_offers", 0),
            "total_accepted": row.get("total_accepted", 0),
            "verified": row.get("verified", 0),
            "avg_package": round(row.get("avg_package") or 0, 2),
            "max_package": row.get("max_package") or 0,
            "min_package": row.get("min_package") or 0,
        }

    def package_distribution(self, match: Optional[dict] = None) -> List[dict]:
        """Histogram of package.ctc over the fixed LPA bands."""
        group = {"_id": None}
        for index, (_, low, high) in enumerate(PACKAGE_BANDS):
            conditions = [{"$gte": ["$package.ctc", low]}]
            if high is not None:
                conditions.append({"$lt": ["$package.ctc", high]})
            group[f"band_{index}"] = {"$sum": {"$cond": [{"$and": conditions}, 1, 0]}}

        rows = list(self.placements.aggregate([{"$match": match or {}}, {"$group": group}]))
        row = rows[0] if rows else {}
        return [
            {"range": label, "count": row.get(f"band_{index}", 0)}
            for index, (label, _, _) in enumerate(PACKAGE_BANDS)
        ]

    def placements_by_department(self, match: Optional[dict] = None) -> List[dict]:
        pipeline = [
            {"$match": match or {}},
            {"$lookup": {
                "from": COLLECTIONS["users"],
                "localField": "student",
                "foreignField": "_id",
                "as": "student_info",
            }},
            {"$unwind": "$student_info"},
            {"$group": {
                "_id": "$student_info.department",
                "count": {"$sum": 1},
                "avg_package": {"$avg": "$package.ctc"},
                "max_package": {"$max": "$package.ctc"},
            }},
            {"$sort": {"count": -1}},
        ]
        return [
            {
                "department": row["_id"],
                "count": row["count"],
                "avg_package": round(row.get("avg_package") or 0, 2),
                "max_package": row.get("max_package") or 0,
            }
            for row in self.placements.aggregate(pipeline)
            if row["_id"] is not None
        ]

    def placements_by_industry(self, match: Optional[dict] = None) -> List[dict]:
        pipeline = [
            {"$match": match or {}},
            {"$group": {
                "_id": "$company.industry",
                "count": {"$sum": 1},
                "avg_package": {"$avg": "$package.ctc"},
            }},
            {"$sort": {"count": -1}},
        ]
        return [
            {"industry": row["_id"], "count": row["count"], "avg_package": round(row.get("avg_package") or 0, 2)}
            for row in self.placements.aggregate(pipeline)
            if row["_id"] is not None
        ]

    def monthly_placement_trend(self, year: int, match: Optional[dict] = None) -> List[dict]:
        """Placements and average package per month of a calendar year."""
        stage_match = dict(match or {})
        stage_match["created_at"] = _in_window(datetime(year, 1, 1), datetime(year + 1, 1, 1))
        pipeline = [
            {"$match": stage_match},
            {"$group": {
                "_id": {"$month": "$created_at"},
                "count": {"$sum": 1},
                "avg_package": {"$avg": "$package.ctc"},
            }},
        ]
        rows = {row["_id"]: row for row in self.placements.aggregate(pipeline)}
        return [
            {
                "month": month,
                "count": rows.get(month, {}).get("count", 0),
                "avg_package": round(rows.get(month, {}).get("avg_package") or 0, 2),
            }
            for month in range(1, 13)
        ]

    def placement_overview(self) -> dict:
        """Public placement statistics."""
        return {
            "overall": self.placement_summary(),
            "by_department": self.placements_by_department(),
            "by_industry": self.placements_by_industry(),
            "monthly_trends": self.monthly_placement_trend(self.clock().year),
        }

    def placement_analytics(self, period: str, filters: Optional[dict] = None) -> dict:
        start, end = period_window(period, self.clock())
        match = dict(filters or {})
        match["created_at"] = _in_window(start, end)
        summary = self.placement_summary(match)
        return {
            "period": period,
            "start_date": start,
            "end_date": end,
            "summary": summary,
            "funnel": {
                "applied": summary["total_placements"],
                "offered": summary["total_offers"],
                "accepted": summary["total_accepted"],
            },
            "by_status": _zero_filled(
                _count_by(self.placements, match, "status"), [s.value for s in PlacementStatus]
            ),
            "by_industry": self.placements_by_industry(match),
            "by_department": self.placements_by_department(match),
            "package_distribution": self.package_distribution(match),
            "verification_status": {
                "verified": summary["verified"],
                "unverified": summary["total_placements"] - summary["verified"],
            },
            "placement_trend": _day_trend(
                self.placements, "created_at", start, end, match=filters
            ),
        }

    # ============================================================
    # TRAININGS
    # ============================================================

    def _enrollment_totals(self, match: Optional[dict] = None) -> dict:
        pipeline = [
            {"$match": match or {}},
            {"$unwind": "$enrollments"},
            {"$group": {
                "_id": None,
                "total": {"$sum": 1},
                "active": {"$sum": {"$cond": [
                    {"$or": [{"$eq": ["$enrollments.status", s]} for s in ACTIVE_ENROLLMENT_STATUSES]}, 1, 0
                ]}},
                "completed": {"$sum": {"$cond": [{"$eq": ["$enrollments.status", "Completed"]}, 1, 0]}},
                "avg_progress": {"$avg": "$enrollments.progress"},
            }},
        ]
        rows = list(self.trainings.aggregate(pipeline))
        row = rows[0] if rows else {}
        return {
            "total_enrollments": row.get("total", 0),
            "active_enrollments": row.get("active", 0),
            "completed_enrollments": row.get("completed", 0),
            "avg_progress": round(row.get("avg_progress") or 0, 1),
        }

    def _rating_by_category(self, match: Optional[dict] = None) -> Tuple[float, List[dict]]:
        pipeline = [
            {"$match": match or {}},
            {"$unwind": "$feedback"},
            {"$group": {
                "_id": "$category",
                "avg_rating": {"$avg": "$feedback.rating"},
                "feedback_count": {"$sum": 1},
            }},
            {"$sort": {"_id": 1}},
        ]
        rows = list(self.trainings.aggregate(pipeline))
        total = sum(row["feedback_count"] for row in rows)
        overall = sum(row["avg_rating"] * row["feedback_count"] for row in rows) / total if total else 0
        return round(overall, 1), [
            {"category": row["_id"], "avg_rating": round(row["avg_rating"], 1), "feedback_count": row["feedback_count"]}
            for row in rows
        ]

    def training_overview(self) -> dict:
        average_rating, ratings = self._rating_by_category()
        overview = {
            "total_programs": self.trainings.count_documents({}),
            "featured_programs": self.trainings.count_documents({"is_featured": True}),
            "by_status": _zero_filled(_count_by(self.trainings, {}, "status"), [s.value for s in TrainingStatus]),
            "average_rating": average_rating,
            "rating_by_category": ratings,
        }
        overview.update(self._enrollment_totals())
        return overview

    def training_analytics(self, period: str) -> dict:
        start, end = period_window(period, self.clock())
        window = {"created_at": _in_window(start, end)}
        average_rating, ratings = self._rating_by_category(window)
        analytics = {
            "period": period,
            "start_date": start,
            "end_date": end,
            "new_programs": self.trainings.count_documents(window),
            "by_category": _zero_filled(
                _count_by(self.trainings, window, "category"), [c.value for c in TrainingCategory]
            ),
            "by_level": _zero_filled(
                _count_by(self.trainings, window, "level"), [lv.value for lv in TrainingLevel]
            ),
            "by_status": _zero_filled(
                _count_by(self.trainings, window, "status"), [s.value for s in TrainingStatus]
            ),
            "average_rating": average_rating,
            "rating_by_category": ratings,
            "creation_trend": _day_trend(self.trainings, "created_at", start, end),
            "enrollment_trend": _day_trend(
                self.trainings, "enrollments.enrollment_date", start, end,
                pre=[{"$unwind": "$enrollments"}],
            ),
        }
        analytics.update(self._enrollment_totals(window))
        return analytics

    # ============================================================
    # DASHBOARD
    # ============================================================

    def dashboard(self) -> dict:
        now = self.clock()
        recent = {"created_at": _in_window(now - timedelta(days=7), now)}
        return {
            "users": self.user_overview(),
            "placements": self.placement_summary(),
            "trainings": self.training_overview(),
            "recent_activity": {
                "new_users": self.users.count_documents(recent),
                "new_placements": self.placements.count_documents(recent),
                "new_trainings": self.trainings.count_documents(recent),
            },
            "department_stats": self.placements_by_department(),
            "monthly_trends": self.monthly_placement_trend(now.year),
        }
