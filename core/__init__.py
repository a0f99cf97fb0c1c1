"""Core (UI-agnostic) academy dashboard logic.

This package contains:
- data loading (JSON -> pandas)
- filter normalization
- aggregations over users and enrollments
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
