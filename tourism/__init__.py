"""Core (UI-agnostic) tourism explorer logic.

This package contains:
- data loading (CSV/GeoJSON -> pandas)
- interaction state and its normalization
- aggregation of tourism, bed and weather series
- range (brush) summaries
- chart helpers (Altair -> Vega-Lite spec dict)
"""
