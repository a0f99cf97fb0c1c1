from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Literal, Optional

import pandas as pd

from core.aggregations import (
    completion_by_engagement,
    compute_headline_metrics,
    group_courses_by_month,
    recurrence_series,
    registrations_by_month,
    sort_by_rate,
    top_by_field,
    top_courses,
)
from core.charts import bar, grouped_bars, monthly_lines, share_pie
from core.filters import DashboardFilters


def compute_people(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    now: Optional[datetime] = None,
    rate_order: Literal["desc", "asc"] = "desc",
) -> Dict[str, Any]:
    users: pd.DataFrame = ctx.get("filtered_users", pd.DataFrame())
    courses: pd.DataFrame = ctx.get("filtered_courses", pd.DataFrame())

    metrics = compute_headline_metrics(users, courses, now, window_days=filters.active_window_days)
    registrations = registrations_by_month(users, courses)
    enrollments = group_courses_by_month(courses)
    courses_top = top_courses(courses, filters.top_n)
    countries = [{"country": d["name"], "count": d["count"]} for d in top_by_field(users, "country", 8)]
    recurrence = recurrence_series(metrics)
    engagement = completion_by_engagement(courses)

    charts = {
        "registrations_by_month": monthly_lines(
            registrations, ["with_courses", "without_courses", "total"], title="Registrations"
        ),
        "enrollments_by_month": monthly_lines(enrollments, ["started", "completed"], title="Enrollments"),
        "users_by_country": bar(countries, "country", "count", horizontal=True),
        "recurrence": share_pie(recurrence, "name", "value"),
        "completion_by_engagement": bar(engagement, "name", "completion_rate"),
        "top_courses": grouped_bars(courses_top, "name", ["started", "completed"]),
    }

    return {
        "filters": asdict(filters),
        "countries": ctx.get("countries", []),
        "kpis": metrics,
        "registrations_by_month": registrations,
        "enrollments_by_month": enrollments,
        "top_courses": sort_by_rate(courses_top, rate_order),
        "rate_order": rate_order,
        "users_by_country": countries,
        "recurrence": recurrence,
        "completion_by_engagement": engagement,
        "charts": charts,
    }
