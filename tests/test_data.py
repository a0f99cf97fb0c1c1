"""Tests for dataset loading, context preparation and numeric helpers."""

from __future__ import annotations

import json

import pytest

from core.data import (
    COURSE_COLUMNS,
    USER_COLUMNS,
    completion_rate,
    format_minutes,
    load_dashboard_data,
    prepare_context,
    round_half_up,
    truncate_label,
)
from core.filters import DashboardFilters


def _write(path, records):
    path.write_text(json.dumps(records), encoding="utf-8")


@pytest.fixture
def data_dir(tmp_path):
    _write(
        tmp_path / "users.json",
        [
            {"email": "ana@x.org", "country": " US ", "organization": "Helping Hands", "organization_type": "Nonprofit", "registered_date": "2025-01-10"},
            {"email": "ben@x.org", "country": "CA", "registered_date": ""},
        ],
    )
    _write(
        tmp_path / "courses.json",
        [
            {"email": "ana@x.org", "course_title": "Intro", "country": "US", "started_on": "2025-01-12", "is_completed": True, "time_minutes": 30},
            {"email": "ben@x.org", "course_title": "Intro", "country": "CA", "started_on": "2025-01-13", "is_completed": None},
        ],
    )
    return tmp_path


# ── Helpers ──────────────────────────────────────────────────────────────────

class TestHelpers:

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1.0
        assert round_half_up(2.5) == 3.0
        assert round_half_up(1.25, 1) == 1.3
        assert round_half_up(None) is None

    def test_completion_rate(self):
        assert completion_rate(1, 2) == 50
        assert completion_rate(2, 3) == 67
        assert completion_rate(0, 0) == 0
        assert completion_rate(1, 8, 1) == 12.5
        assert completion_rate(3, 0, 1) == 0.0

    def test_format_minutes(self):
        assert format_minutes(0) == "0m"
        assert format_minutes(59) == "59m"
        assert format_minutes(60) == "1h 0m"
        assert format_minutes(125) == "2h 5m"

    def test_truncate_label(self):
        assert truncate_label("short", 10) == "short"
        assert truncate_label("x" * 10, 10) == "x" * 10
        assert truncate_label("x" * 11, 10) == "x" * 10 + "..."


# ── Loading ──────────────────────────────────────────────────────────────────

class TestLoadDashboardData:

    def test_schema_columns_present(self, data_dir):
        ctx = load_dashboard_data(data_dir)
        assert set(USER_COLUMNS) <= set(ctx["users"].columns)
        assert set(COURSE_COLUMNS) <= set(ctx["courses"].columns)
        assert len(ctx["files"]) == 2

    def test_text_cleaned(self, data_dir):
        users = load_dashboard_data(data_dir)["users"]
        assert users["country"].tolist() == ["US", "CA"]
        assert users["registered_date"].isna().tolist() == [False, True]
        assert users["organization"].isna().tolist() == [False, True]

    def test_flags_and_numbers(self, data_dir):
        courses = load_dashboard_data(data_dir)["courses"]
        assert courses["is_completed"].tolist() == [True, False]
        assert courses["time_minutes"].iloc[0] == 30
        assert courses["time_minutes"].isna().iloc[1]

    def test_option_lists(self, data_dir):
        ctx = load_dashboard_data(data_dir)
        assert ctx["countries"] == ["all", "CA", "US"]
        assert ctx["organization_types"] == ["all", "Nonprofit"]

    def test_cached_until_files_change(self, data_dir):
        assert load_dashboard_data(data_dir) is load_dashboard_data(data_dir)

    def test_missing_files_give_empty_tables(self, tmp_path):
        ctx = load_dashboard_data(tmp_path / "nothing-here")
        assert ctx["users"].empty
        assert ctx["courses"].empty
        assert list(ctx["users"].columns) == USER_COLUMNS
        assert ctx["countries"] == ["all"]


# ── prepare_context ──────────────────────────────────────────────────────────

class TestPrepareContext:

    def test_accepts_raw_dict(self, data_ctx):
        ctx = prepare_context({"country": "US"}, data_ctx)
        assert ctx["filters"] == DashboardFilters(country="US")
        assert ctx["filtered_users"]["email"].tolist() == ["ana@x.org", "ben@x.org"]
        assert len(ctx["filtered_courses"]) == 4

    def test_all_keeps_source_tables(self, data_ctx):
        ctx = prepare_context(DashboardFilters(), data_ctx)
        assert ctx["filtered_users"] is data_ctx["users"]
        assert ctx["filtered_courses"] is data_ctx["courses"]

    def test_source_tables_untouched(self, data_ctx):
        before = len(data_ctx["users"])
        prepare_context({"country": "CA", "organization_type": "Charity"}, data_ctx)
        assert len(data_ctx["users"]) == before
