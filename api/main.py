from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
import logging
import math
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import DashboardFiltersModel, MetaListResponse
from core.data import load_dashboard_data, prepare_context
from core.filters import DashboardFilters, normalize_filters
from core.metrics_organizations import compute_organizations
from core.metrics_people import compute_people


app = FastAPI(title="Academy Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/countries")
def meta_countries():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=data_ctx.get("countries", ["all"])).model_dump())
    except Exception as exc:
        logger.exception("meta_countries failed")
        return _error(exc)


@app.get("/meta/organization-types")
def meta_organization_types():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaListResponse(values=data_ctx.get("organization_types", ["all"])).model_dump())
    except Exception as exc:
        logger.exception("meta_organization_types failed")
        return _error(exc)


@app.post("/people")
def people(
    filters: DashboardFiltersModel,
    now: Optional[datetime] = Query(default=None),
    rate_order: Literal["desc", "asc"] = Query(default="desc"),
):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_people(f, ctx, now=now, rate_order=rate_order))
    except Exception as exc:
        logger.exception("people failed")
        return _error(exc)


@app.post("/organizations")
def organizations(
    filters: DashboardFiltersModel,
    users_order: Literal["desc", "asc"] = Query(default="desc"),
):
    try:
        data_ctx = load_dashboard_data()
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
        return _json(compute_organizations(f, ctx, users_order=users_order))
    except Exception as exc:
        logger.exception("organizations failed")
        return _error(exc)


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    data_ctx = load_dashboard_data()
    f = _filters_from_model(filters)
    ctx = prepare_context(f, data_ctx)
    logger.info("export %s with filters %s", page, asdict(f))

    export_df = None
    filename = f"{page}.csv"
    if page == "users":
        export_df = ctx.get("filtered_users")
    elif page in {"courses", "enrollments"}:
        export_df = ctx.get("filtered_courses")
        filename = "courses.csv"
    else:
        export_df = pd.DataFrame()

    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
