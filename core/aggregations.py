"""Aggregations over user and enrollment tables.

Every function here takes DataFrames, never modifies them, and returns plain
lists/dicts ready for JSON. Rows without a value for a grouping column are
either bucketed ("Unknown", "Individual") or dropped, never an error. Ties in
ranked outputs keep the order in which each key first appears in the input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from core.data import completion_rate, flag_values, format_minutes, round_half_up, truncate_label
from core.filters import text_values


UNKNOWN = "Unknown"
INDIVIDUAL = "Individual"
ENGAGEMENT_TIERS = ["1 curso", "2 cursos", "3+ cursos"]
COURSE_NAME_LIMIT = 35
ORG_NAME_LIMIT = 30


def engagement_tier(total: int) -> str:
    if total == 1:
        return ENGAGEMENT_TIERS[0]
    if total == 2:
        return ENGAGEMENT_TIERS[1]
    return ENGAGEMENT_TIERS[2]


def _months(df: pd.DataFrame, date_field: str) -> pd.Series:
    return text_values(df, date_field).str.slice(0, 7)


def _started_completed(frame: pd.DataFrame, key: str) -> pd.DataFrame:
    """started/completed counts per key, keys in first-seen order."""
    return (
        frame.groupby(key, sort=False)["completed"]
        .agg(started="size", completed="sum")
        .reset_index()
    )


# ---------------- Monthly series ----------------
def group_by_month(df: pd.DataFrame, date_field: str) -> List[Dict[str, Any]]:
    counts = _months(df, date_field).dropna().value_counts().sort_index()
    return [{"month": str(month), "count": int(count)} for month, count in counts.items()]


def group_courses_by_month(courses: pd.DataFrame) -> List[Dict[str, Any]]:
    frame = pd.DataFrame(
        {"month": _months(courses, "started_on"), "completed": flag_values(courses, "is_completed")}
    ).dropna(subset=["month"])
    if frame.empty:
        return []
    grouped = _started_completed(frame, "month").sort_values("month")
    return [
        {"month": str(r.month), "started": int(r.started), "completed": int(r.completed)}
        for r in grouped.itertuples(index=False)
    ]


def registrations_by_month(users: pd.DataFrame, courses: pd.DataFrame) -> List[Dict[str, Any]]:
    """Registrations per month split by whether the user has any enrollment."""
    enrolled = set(text_values(courses, "email").dropna().tolist())
    has_courses = text_values(users, "email").isin(enrolled).fillna(False).astype(bool)
    frame = pd.DataFrame({"month": _months(users, "registered_date"), "with_courses": has_courses}).dropna(
        subset=["month"]
    )
    if frame.empty:
        return []
    grouped = (
        frame.groupby("month", sort=True)["with_courses"]
        .agg(with_courses="sum", total="size")
        .reset_index()
    )
    rows = []
    for r in grouped.itertuples(index=False):
        with_courses = int(r.with_courses)
        total = int(r.total)
        rows.append(
            {
                "month": str(r.month),
                "with_courses": with_courses,
                "without_courses": total - with_courses,
                "total": total,
            }
        )
    return rows


# ---------------- Rankings ----------------
def top_by_field(df: pd.DataFrame, field: str, limit: int = 10) -> List[Dict[str, Any]]:
    values = text_values(df, field).fillna(UNKNOWN)
    counts = values.groupby(values, sort=False).size().sort_values(ascending=False, kind="stable")
    return [{"name": str(name), "count": int(count)} for name, count in counts.head(limit).items()]


def top_courses(courses: pd.DataFrame, limit: int = 10) -> List[Dict[str, Any]]:
    titles = text_values(courses, "course_title").str.strip().replace("", pd.NA)
    frame = pd.DataFrame({"title": titles, "completed": flag_values(courses, "is_completed")}).dropna(subset=["title"])
    if frame.empty:
        return []
    grouped = _started_completed(frame, "title").sort_values("started", ascending=False, kind="stable").head(limit)
    rows = []
    for r in grouped.itertuples(index=False):
        title = str(r.title)
        started, completed = int(r.started), int(r.completed)
        rows.append(
            {
                "name": truncate_label(title, COURSE_NAME_LIMIT),
                "full_name": title,
                "started": started,
                "completed": completed,
                "rate": completion_rate(completed, started),
            }
        )
    return rows


def sort_by_rate(rows: List[Dict[str, Any]], order: str = "desc") -> List[Dict[str, Any]]:
    return sorted(rows, key=lambda r: r["rate"], reverse=(order == "desc"))


# ---------------- Engagement ----------------
def _per_user(courses: pd.DataFrame) -> pd.DataFrame:
    frame = pd.DataFrame(
        {"email": text_values(courses, "email"), "completed": flag_values(courses, "is_completed")}
    ).dropna(subset=["email"])
    return frame.groupby("email", sort=False)["completed"].agg(total="size", completed="sum")


def completion_by_engagement(courses: pd.DataFrame) -> List[Dict[str, Any]]:
    per_user = _per_user(courses)
    columns = ["users", "total_courses", "completed_courses"]
    if per_user.empty:
        tiers = pd.DataFrame(0, index=ENGAGEMENT_TIERS, columns=columns)
    else:
        per_user = per_user.assign(tier=per_user["total"].map(engagement_tier))
        tiers = (
            per_user.groupby("tier")
            .agg(users=("total", "size"), total_courses=("total", "sum"), completed_courses=("completed", "sum"))
            .reindex(ENGAGEMENT_TIERS, fill_value=0)
        )
    rows = []
    for name, r in tiers.iterrows():
        total, completed = int(r["total_courses"]), int(r["completed_courses"])
        rows.append(
            {
                "name": name,
                "users": int(r["users"]),
                "total_courses": total,
                "completed_courses": completed,
                "completion_rate": completion_rate(completed, total),
            }
        )
    return rows


# ---------------- Organizations ----------------
def organization_stats(users: pd.DataFrame) -> Dict[str, int]:
    orgs = text_values(users, "organization")
    with_org = int(orgs.notna().sum())
    return {
        "total_orgs": int(orgs.nunique()),
        "total_org_types": int(text_values(users, "organization_type").nunique()),
        "users_with_org": with_org,
        "users_without_org": int(len(users)) - with_org,
    }


def users_by_org_type(users: pd.DataFrame) -> List[Dict[str, Any]]:
    types = text_values(users, "organization_type").fillna(INDIVIDUAL)
    counts = types.groupby(types, sort=False).size().sort_values(ascending=False, kind="stable")
    return [{"type": str(t), "count": int(c)} for t, c in counts.items()]


def enrollments_by_org_type(courses: pd.DataFrame) -> List[Dict[str, Any]]:
    frame = pd.DataFrame(
        {
            "type": text_values(courses, "organization_type").fillna(INDIVIDUAL),
            "completed": flag_values(courses, "is_completed"),
        }
    )
    if frame.empty:
        return []
    grouped = _started_completed(frame, "type").sort_values("started", ascending=False, kind="stable")
    return [
        {
            "type": str(r.type),
            "started": int(r.started),
            "completed": int(r.completed),
            "rate": completion_rate(int(r.completed), int(r.started)),
        }
        for r in grouped.itertuples(index=False)
    ]


def _headcount_frame(users: pd.DataFrame) -> pd.DataFrame:
    frame = pd.DataFrame(
        {"organization": text_values(users, "organization"), "type": text_values(users, "organization_type")}
    ).dropna(subset=["organization"])
    if frame.empty:
        return pd.DataFrame(columns=["organization", "users", "type"])
    counts = frame.groupby("organization", sort=False).size().rename("users").reset_index()
    # type of the first member listed, even when that member has none
    first_member = frame.drop_duplicates(subset=["organization"])[["organization", "type"]]
    grouped = counts.merge(first_member, on="organization", how="left")
    grouped["type"] = grouped["type"].astype("string").fillna(UNKNOWN)
    return grouped


def _enrollment_frame(users: pd.DataFrame, courses: pd.DataFrame) -> pd.DataFrame:
    # email -> organization index; an email listed under several organizations counts for each.
    membership = (
        pd.DataFrame({"email": text_values(users, "email"), "organization": text_values(users, "organization")})
        .dropna()
        .drop_duplicates()
    )
    enrolls = pd.DataFrame(
        {"email": text_values(courses, "email"), "completed": flag_values(courses, "is_completed")}
    ).dropna(subset=["email"])
    joined = enrolls.merge(membership, on="email", how="inner")
    if joined.empty:
        return pd.DataFrame(columns=["organization", "enrollments", "completed"])
    return (
        joined.groupby("organization", sort=False)["completed"]
        .agg(enrollments="size", completed="sum")
        .reset_index()
    )


def organization_headcounts(users: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {"organization": str(r.organization), "users": int(r.users), "type": str(r.type)}
        for r in _headcount_frame(users).itertuples(index=False)
    ]


def organization_enrollments(users: pd.DataFrame, courses: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {
            "organization": str(r.organization),
            "enrollments": int(r.enrollments),
            "completed": int(r.completed),
            "rate": completion_rate(int(r.completed), int(r.enrollments)),
        }
        for r in _enrollment_frame(users, courses).itertuples(index=False)
    ]


def top_organizations(users: pd.DataFrame, courses: pd.DataFrame, limit: int = 15) -> List[Dict[str, Any]]:
    heads = _headcount_frame(users)
    if heads.empty:
        return []
    rollup = _enrollment_frame(users, courses)
    if rollup.empty:
        merged = heads.assign(enrollments=0, completed=0)
    else:
        merged = heads.merge(rollup, on="organization", how="left")
    merged = merged.sort_values("users", ascending=False, kind="stable").head(limit)
    rows = []
    for r in merged.itertuples(index=False):
        name = str(r.organization)
        enrollments = 0 if pd.isna(r.enrollments) else int(r.enrollments)
        completed = 0 if pd.isna(r.completed) else int(r.completed)
        rows.append(
            {
                "name": truncate_label(name, ORG_NAME_LIMIT),
                "full_name": name,
                "users": int(r.users),
                "type": str(r.type),
                "enrollments": enrollments,
                "completed": completed,
                "rate": completion_rate(completed, enrollments),
            }
        )
    return rows


def with_total_row(rows: List[Dict[str, Any]], order: str = "desc") -> List[Dict[str, Any]]:
    ordered = sorted(rows, key=lambda r: r["users"], reverse=(order == "desc"))
    enrollments = sum(r["enrollments"] for r in rows)
    completed = sum(r["completed"] for r in rows)
    total = {
        "name": "TOTAL",
        "full_name": "TOTAL",
        "type": "-",
        "users": sum(r["users"] for r in rows),
        "enrollments": enrollments,
        "completed": completed,
        "rate": completion_rate(completed, enrollments),
        "is_total": True,
    }
    return [{**r, "is_total": False} for r in ordered] + [total]


# ---------------- Headline metrics ----------------
def _reference_time(now: Optional[datetime]) -> pd.Timestamp:
    ts = pd.Timestamp(now if now is not None else datetime.now())
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def compute_headline_metrics(
    users: pd.DataFrame,
    courses: pd.DataFrame,
    now: Optional[datetime] = None,
    *,
    window_days: int = 30,
) -> Dict[str, Any]:
    """KPIs for the people page.

    `now` anchors the active-user window `[now - window_days, now]`; pass it
    explicitly for reproducible results.
    """
    total_users = int(len(users))
    total_enrollments = int(len(courses))
    completed = flag_values(courses, "is_completed")
    completed_courses = int(completed.sum())
    emails = text_values(courses, "email")

    reference = _reference_time(now)
    started = pd.to_datetime(text_values(courses, "started_on").str.slice(0, 10), format="%Y-%m-%d", errors="coerce")
    in_window = (started >= reference - pd.Timedelta(days=window_days)) & (started <= reference)
    active_users = int(emails[in_window.to_numpy()].dropna().nunique())

    per_user = emails.dropna().value_counts()
    unique_users = int(len(per_user))
    avg_courses = round_half_up(int(per_user.sum()) / unique_users, 1) if unique_users else 0.0

    minutes = pd.Series(dtype=float)
    if "time_minutes" in courses.columns:
        minutes = pd.to_numeric(courses["time_minutes"], errors="coerce").dropna()
    avg_minutes = int(round_half_up(minutes.mean()) or 0) if len(minutes) else 0
    total_hours = int(round_half_up(minutes.sum() / 60) or 0) if len(minutes) else 0

    return {
        "total_users": total_users,
        "total_enrollments": total_enrollments,
        "completed_courses": completed_courses,
        "completion_rate": completion_rate(completed_courses, total_enrollments, 1),
        "active_users": active_users,
        "users_with_completed_courses": int(emails[completed.to_numpy()].dropna().nunique()),
        "unique_users_with_courses": unique_users,
        "avg_courses_per_user": avg_courses,
        "recurrence_distribution": {
            "one_course": int((per_user == 1).sum()),
            "two_courses": int((per_user == 2).sum()),
            "three_plus": int((per_user >= 3).sum()),
        },
        "avg_time_minutes": avg_minutes,
        "avg_time_on_course": format_minutes(avg_minutes),
        "total_time_hours": total_hours,
    }


def recurrence_series(metrics: Dict[str, Any]) -> List[Dict[str, Any]]:
    dist = metrics.get("recurrence_distribution") or {}
    keys = ["one_course", "two_courses", "three_plus"]
    return [{"name": name, "value": int(dist.get(key, 0) or 0)} for name, key in zip(ENGAGEMENT_TIERS, keys)]
