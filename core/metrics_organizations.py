from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Literal

import pandas as pd

from core.aggregations import (
    enrollments_by_org_type,
    organization_stats,
    top_organizations,
    users_by_org_type,
    with_total_row,
)
from core.charts import bar, grouped_bars, share_pie
from core.filters import DashboardFilters


def compute_organizations(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    users_order: Literal["desc", "asc"] = "desc",
) -> Dict[str, Any]:
    users: pd.DataFrame = ctx.get("filtered_users", pd.DataFrame())
    courses: pd.DataFrame = ctx.get("filtered_courses", pd.DataFrame())

    by_type_users = users_by_org_type(users)
    by_type_enrollments = enrollments_by_org_type(courses)
    top_orgs = top_organizations(users, courses, filters.top_orgs)

    # Chart shows the 8 largest; the table keeps the full top list.
    charts = {
        "users_by_org_type": share_pie(by_type_users, "type", "count"),
        "enrollments_by_org_type": grouped_bars(by_type_enrollments, "type", ["started", "completed"]),
        "top_organizations": bar(top_orgs[:8], "name", "users", horizontal=True, tooltip_field="full_name"),
    }

    return {
        "filters": asdict(filters),
        "organization_types": ctx.get("organization_types", []),
        "kpis": organization_stats(users),
        "users_by_org_type": by_type_users,
        "enrollments_by_org_type": by_type_enrollments,
        "top_organizations": top_orgs,
        "table": with_total_row(top_orgs, users_order),
        "users_order": users_order,
        "charts": charts,
    }
