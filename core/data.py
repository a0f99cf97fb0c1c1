from __future__ import annotations

import logging
import os
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from core.filters import DashboardFilters, apply_filters, distinct_values, normalize_filters


logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("ACADEMY_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")
USERS_FILE = "users.json"
COURSES_FILE = "courses.json"

USER_COLUMNS = ["email", "country", "organization", "organization_type", "registered_date"]
COURSE_COLUMNS = [
    "email",
    "course_title",
    "country",
    "organization_type",
    "started_on",
    "is_completed",
    "time_minutes",
]
USER_TEXT_COLUMNS = USER_COLUMNS
COURSE_TEXT_COLUMNS = ["email", "course_title", "country", "organization_type", "started_on"]


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    return [base / name for name in (USERS_FILE, COURSES_FILE) if (base / name).exists()]


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def ensure_columns(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col not in df.columns:
            df[col] = pd.NA
    return df


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col]
            if isinstance(series, pd.DataFrame):
                series = series.iloc[:, 0]
            series = series.astype("string").str.strip()
            series = series.replace({"nan": pd.NA, "None": pd.NA, "": pd.NA})
            df[col] = series
    return df


def numericize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def truthy(value: object) -> bool:
    if value is None:
        return False
    try:
        if pd.isna(value):
            return False
    except (TypeError, ValueError):
        pass
    return bool(value)


def flag_values(df: pd.DataFrame, col: str) -> pd.Series:
    """Boolean view of a flag column; absent column or null means False."""
    if col not in df.columns:
        return pd.Series(False, index=df.index, dtype=bool)
    return df[col].map(truthy).astype(bool)


def booleanize(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            df[col] = flag_values(df, col)
    return df


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def completion_rate(completed: float, total: float, ndigits: int = 0):
    """Percentage of completed over total, rounded half-up; 0 when total is 0."""
    if not total:
        return 0 if ndigits == 0 else 0.0
    value = round_half_up(completed / total * 100, ndigits) or 0.0
    return int(value) if ndigits == 0 else value


def truncate_label(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def format_minutes(minutes: int) -> str:
    if minutes >= 60:
        return f"{minutes // 60}h {minutes % 60}m"
    return f"{minutes}m"


# ---------------- Loaders ----------------
def _read_records(path: Path, columns: List[str]) -> pd.DataFrame:
    if not path.exists():
        logger.warning("data file %s not found; using an empty table", path)
        return pd.DataFrame(columns=columns)
    df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
    logger.info("loaded %d records from %s", len(df), path.name)
    return ensure_columns(df, columns)


def load_users(data_dir: Path) -> pd.DataFrame:
    users = _read_records(data_dir / USERS_FILE, USER_COLUMNS)
    return coerce_str_safe(users, USER_TEXT_COLUMNS)


def load_courses(data_dir: Path) -> pd.DataFrame:
    courses = _read_records(data_dir / COURSES_FILE, COURSE_COLUMNS)
    courses = coerce_str_safe(courses, COURSE_TEXT_COLUMNS)
    courses = booleanize(courses, ["is_completed"])
    return numericize(courses, ["time_minutes"])


# ---------------- Public API ----------------
@lru_cache(maxsize=4)
def _load_dashboard_data_cached(data_dir: str, files_sig: Tuple[Tuple[str, float], ...]) -> Dict[str, object]:
    base = Path(data_dir)
    users = load_users(base)
    courses = load_courses(base)
    return {
        "files": [name for name, _ in files_sig],
        "users": users,
        "courses": courses,
        "countries": distinct_values(users, "country"),
        "organization_types": distinct_values(users, "organization_type"),
    }


def load_dashboard_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    base = Path(data_dir) if data_dir is not None else DATA_DIR
    files = get_source_files(base)
    if not files:
        logger.warning("no data files found under %s", base)
    return _load_dashboard_data_cached(str(base), file_signature(files))


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    users: pd.DataFrame = data_ctx.get("users", pd.DataFrame(columns=USER_COLUMNS))
    courses: pd.DataFrame = data_ctx.get("courses", pd.DataFrame(columns=COURSE_COLUMNS))
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)

    return {
        "filters": filt,
        "users": users,
        "courses": courses,
        "filtered_users": apply_filters(users, filt),
        "filtered_courses": apply_filters(courses, filt),
        "countries": data_ctx.get("countries") or distinct_values(users, "country"),
        "organization_types": data_ctx.get("organization_types") or distinct_values(users, "organization_type"),
    }
