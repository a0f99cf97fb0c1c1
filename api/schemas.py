from __future__ import annotations

from typing import List

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    country: str = "all"
    organization_type: str = "all"
    top_n: int = 10
    top_orgs: int = 15
    active_window_days: int = 30


class MetaListResponse(BaseModel):
    values: List[str]
