"""
Case statistics for the dashboards.

Every figure is computed over the same filtered set of non-deleted cases, so
the totals and the breakdowns always agree. Breakdowns only list the values
that occur, in their enum order.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from cemse_backend.interface.cases import CasePriority, CaseStatus, ViolenceType
from cemse_backend.interface.metrics import (
    MetricsQuery,
    MonthlyCount,
    PriorityCount,
    SchoolCount,
    StatusCount,
    ViolenceTypeCount,
)
from cemse_backend.model.case import Case
from cemse_backend.model.school import School

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
TIMELINE_MONTHS = 12


def case_filters(params: MetricsQuery, school_id: Optional[str] = None) -> List[Any]:
    criteria = [Case.is_deleted == False]

    if school_id:
        criteria.append(Case.school_id == school_id)

    if params.violence_type is not None:
        criteria.append(Case.violence_type == params.violence_type.value)

    if params.status is not None:
        criteria.append(Case.status == params.status.value)

    if params.priority is not None:
        criteria.append(Case.priority == params.priority.value)

    if params.start_date is not None:
        criteria.append(Case.incident_date >= params.start_date)

    if params.end_date is not None:
        criteria.append(Case.incident_date <= params.end_date)

    return criteria


def month_keys(today: date, months: int = TIMELINE_MONTHS) -> List[str]:
    """``YYYY-MM`` keys of the last ``months`` months, oldest first, ending with today's month."""
    year, month = today.year, today.month
    keys = []
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    return keys


def _grouped(db: Session, column, criteria) -> Dict[str, int]:
    rows = db.query(column, func.count(Case.id)).filter(*criteria).group_by(column).all()
    return {value: count for value, count in rows}


def _timeline(db: Session, criteria, now: datetime) -> List[MonthlyCount]:
    keys = month_keys(now.date())
    counts = dict.fromkeys(keys, 0)

    first_year, first_month = (int(part) for part in keys[0].split("-"))
    since = datetime(first_year, first_month, 1, tzinfo=timezone.utc)

    for (created_at,) in db.query(Case.created_at).filter(*criteria, Case.created_at >= since):
        key = created_at.strftime("%Y-%m")
        if key in counts:
            counts[key] += 1

    return [MonthlyCount(month=key, count=count) for key, count in counts.items()]


def _cases_by_school(db: Session, criteria) -> List[SchoolCount]:
    case_count = func.count(Case.id)
    rows = (
        db.query(School.id, School.name, School.code, case_count)
        .join(Case, Case.school_id == School.id)
        .filter(*criteria)
        .group_by(School.id, School.name, School.code)
        .order_by(case_count.desc(), School.name)
        .all()
    )
    return [
        SchoolCount(school_id=school_id, school_name=name, school_code=code, count=count)
        for school_id, name, code, count in rows
    ]


def case_metrics(
    db: Session,
    params: MetricsQuery,
    school_id: Optional[str] = None,
    include_schools: bool = False,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Totals, per-status counts, breakdowns and a zero-filled monthly timeline
    of case creation. ``school_id`` restricts everything to one school.
    """
    now = now or datetime.now(timezone.utc)
    criteria = case_filters(params, school_id)

    by_status = _grouped(db, Case.status, criteria)
    by_type = _grouped(db, Case.violence_type, criteria)
    by_priority = _grouped(db, Case.priority, criteria)

    recent = (
        db.query(func.count(Case.id))
        .filter(*criteria, Case.created_at >= now - timedelta(days=RECENT_DAYS))
        .scalar()
    )

    metrics = {
        "total_cases": sum(by_status.values()),
        "open_cases": by_status.get(CaseStatus.OPEN.value, 0),
        "in_progress_cases": by_status.get(CaseStatus.IN_PROGRESS.value, 0),
        "resolved_cases": by_status.get(CaseStatus.RESOLVED.value, 0),
        "closed_cases": by_status.get(CaseStatus.CLOSED.value, 0),
        "archived_cases": by_status.get(CaseStatus.ARCHIVED.value, 0),
        "recent_cases": recent or 0,
        "cases_by_violence_type": [
            ViolenceTypeCount(type=value, count=by_type[value.value])
            for value in ViolenceType if value.value in by_type
        ],
        "cases_by_priority": [
            PriorityCount(priority=value, count=by_priority[value.value])
            for value in CasePriority if value.value in by_priority
        ],
        "cases_by_status": [
            StatusCount(status=value, count=by_status[value.value])
            for value in CaseStatus if value.value in by_status
        ],
        "cases_over_time": _timeline(db, criteria, now),
    }

    if include_schools:
        metrics["cases_by_school"] = _cases_by_school(db, criteria)

    logger.debug(f"Computed metrics over {metrics['total_cases']} case(s) for school {school_id or 'all'}")
    return metrics
