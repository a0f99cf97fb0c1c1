from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def monthly_lines(rows: List[Dict[str, Any]], series: List[str], *, title: str = "Count") -> Optional[Dict[str, Any]]:
    """One line per column in `series` over the `month` axis."""
    if not rows:
        return None
    long_df = pd.DataFrame(rows).melt(id_vars="month", value_vars=series, var_name="series", value_name="value")
    chart = (
        alt.Chart(long_df)
        .mark_line(point=True)
        .encode(
            x=alt.X("month:O", title="Month"),
            y=alt.Y("value:Q", title=title),
            color=alt.Color("series:N", title=None),
            tooltip=["month", "series", alt.Tooltip("value:Q", format=",")],
        )
        .properties(height=260)
    )
    return to_vega_spec(chart)


def bar(
    rows: List[Dict[str, Any]],
    category: str,
    value: str,
    *,
    horizontal: bool = False,
    tooltip_field: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    df = pd.DataFrame(rows)
    cat_enc = f"{category}:N"
    val_enc = f"{value}:Q"
    tooltip = [tooltip_field or category, alt.Tooltip(val_enc, format=",")]
    if horizontal:
        encoding = {"y": alt.Y(cat_enc, sort="-x", title=None), "x": alt.X(val_enc, title=value.replace("_", " ").title())}
    else:
        encoding = {"x": alt.X(cat_enc, sort="-y", title=None), "y": alt.Y(val_enc, title=value.replace("_", " ").title())}
    chart = alt.Chart(df).mark_bar().encode(tooltip=tooltip, **encoding).properties(height=280)
    return to_vega_spec(chart)


def grouped_bars(rows: List[Dict[str, Any]], category: str, series: List[str]) -> Optional[Dict[str, Any]]:
    """Side-by-side bars (e.g. started vs completed) per category."""
    if not rows:
        return None
    long_df = pd.DataFrame(rows).melt(id_vars=category, value_vars=series, var_name="series", value_name="value")
    chart = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X(f"{category}:N", title=None),
            xOffset="series:N",
            y=alt.Y("value:Q", title="Enrollments"),
            color=alt.Color("series:N", title=None),
            tooltip=[category, "series", alt.Tooltip("value:Q", format=",")],
        )
        .properties(height=280)
    )
    return to_vega_spec(chart)


def share_pie(rows: List[Dict[str, Any]], category: str, value: str) -> Optional[Dict[str, Any]]:
    if not rows:
        return None
    chart = (
        alt.Chart(pd.DataFrame(rows))
        .mark_arc()
        .encode(
            theta=alt.Theta(f"{value}:Q"),
            color=alt.Color(f"{category}:N", title=None),
            tooltip=[category, alt.Tooltip(f"{value}:Q", format=",")],
        )
        .properties(height=280)
    )
    return to_vega_spec(chart)
