from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import pandas as pd


ALL = "all"


@dataclass(frozen=True)
class DashboardFilters:
    country: str = ALL
    organization_type: str = ALL
    top_n: int = 10
    top_orgs: int = 15
    active_window_days: int = 30


def _clamped_int(value: object, default: int, low: int, high: int) -> int:
    try:
        out = int(value)
    except Exception:
        out = default
    return max(low, min(high, out))


def _dimension(value: object) -> str:
    if value is None:
        return ALL
    s = str(value)
    return s if s else ALL


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}
    return DashboardFilters(
        country=_dimension(raw.get("country")),
        organization_type=_dimension(raw.get("organization_type")),
        top_n=_clamped_int(raw.get("top_n", 10), 10, 1, 200),
        top_orgs=_clamped_int(raw.get("top_orgs", 15), 15, 1, 200),
        active_window_days=_clamped_int(raw.get("active_window_days", 30), 30, 1, 365),
    )


def text_values(df: pd.DataFrame, col: str) -> pd.Series:
    """Column as a nullable string series; absent column, null and "" all become <NA>."""
    if col not in df.columns:
        return pd.Series(pd.NA, index=df.index, dtype="string")
    series = df[col]
    if isinstance(series, pd.DataFrame):
        series = series.iloc[:, 0]
    return series.astype("string").replace("", pd.NA)


def filter_records(df: pd.DataFrame, field: str, value: Optional[str]) -> pd.DataFrame:
    if value is None or value == "" or value == ALL:
        return df
    if field not in df.columns:
        return df.iloc[0:0]
    mask = text_values(df, field).eq(value).fillna(False).astype(bool)
    return df[mask]


def apply_filters(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    out = filter_records(df, "country", filters.country)
    return filter_records(out, "organization_type", filters.organization_type)


def distinct_values(df: pd.DataFrame, field: str) -> List[str]:
    values = text_values(df, field).dropna().unique().tolist()
    return [ALL] + sorted(str(v) for v in values)
