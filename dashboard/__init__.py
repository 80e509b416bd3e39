"""Dashboard package exposing app utilities."""

from .app import FLEET_DASHBOARD_TABS, render_fleet_dashboard

__all__ = ["FLEET_DASHBOARD_TABS", "render_fleet_dashboard"]
