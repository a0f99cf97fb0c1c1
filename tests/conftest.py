from __future__ import annotations

import pandas as pd
import pytest


@pytest.fixture
def users() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"email": "ana@x.org", "country": "US", "organization": "Helping Hands", "organization_type": "Nonprofit", "registered_date": "2025-01-10"},
            {"email": "ben@x.org", "country": "US", "organization": "Helping Hands", "organization_type": "Nonprofit", "registered_date": "2025-01-22"},
            {"email": "cam@x.org", "country": "CA", "organization": "Food Bank North", "organization_type": "Charity", "registered_date": "2025-02-03"},
            {"email": "dee@x.org", "country": "CA", "organization": None, "organization_type": None, "registered_date": "2025-02-14"},
            {"email": "eli@x.org", "country": None, "organization": "", "organization_type": None, "registered_date": None},
        ]
    )


@pytest.fixture
def courses() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"email": "ana@x.org", "course_title": "Intro to Grants", "country": "US", "organization_type": "Nonprofit", "started_on": "2025-01-12", "is_completed": True, "time_minutes": 30},
            {"email": "ana@x.org", "course_title": "Budgeting Basics", "country": "US", "organization_type": "Nonprofit", "started_on": "2025-02-01", "is_completed": False, "time_minutes": 90},
            {"email": "ana@x.org", "course_title": "Volunteer Management", "country": "US", "organization_type": "Nonprofit", "started_on": "2025-03-05", "is_completed": True, "time_minutes": None},
            {"email": "ben@x.org", "course_title": "Intro to Grants", "country": "US", "organization_type": "Nonprofit", "started_on": "2025-01-25", "is_completed": False, "time_minutes": 45},
            {"email": "cam@x.org", "course_title": "Intro to Grants", "country": "CA", "organization_type": "Charity", "started_on": "2025-02-10", "is_completed": True, "time_minutes": 120},
            {"email": "cam@x.org", "course_title": "Budgeting Basics", "country": "CA", "organization_type": "Charity", "started_on": "2025-03-01", "is_completed": True, "time_minutes": 15},
            {"email": "zed@x.org", "course_title": "   ", "country": "MX", "organization_type": None, "started_on": None, "is_completed": False, "time_minutes": None},
        ]
    )


@pytest.fixture
def data_ctx(users, courses):
    from core.filters import distinct_values

    return {
        "files": [],
        "users": users,
        "courses": courses,
        "countries": distinct_values(users, "country"),
        "organization_types": distinct_values(users, "organization_type"),
    }
