"""Streamlit entrypoint for the fleet tracking dashboard.

Run with ``streamlit run streamlit_fleet_dashboard.py``. The database path
comes from ``FLEETGPS_DB`` (default ``fleet.db``).
"""
from __future__ import annotations

import logging

import streamlit as st

from dashboard.app import render_fleet_dashboard


def main() -> None:
    """Configure the Streamlit page and render the dashboard."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    st.set_page_config(
        page_title="Fleet GPS tracking",
        layout="wide",
    )
    render_fleet_dashboard()


if __name__ == "__main__":
    main()
