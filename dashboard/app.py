"""Streamlit dashboard for the housekeeping shift scheduler."""

from __future__ import annotations

import datetime
import os
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
API_BASE_URL = os.getenv("HK_API_BASE_URL", "http://127.0.0.1:8000")

st.set_page_config(
    page_title="Housekeeping Scheduler",
    page_icon="🧹",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _headers() -> Dict[str, str]:
    token = st.session_state.get("access_token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def login(token: str) -> Optional[Dict[str, Any]]:
    try:
        response = requests.post(f"{API_BASE_URL}/login", json={"token": token}, timeout=5)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Login failed: {e}")
        return None


def fetch_shifts(target_date: str, shift_type: str) -> List[Dict[str, Any]]:
    try:
        response = requests.get(
            f"{API_BASE_URL}/shifts",
            params={"date": target_date, "shift": shift_type},
            headers=_headers(),
            timeout=5,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Failed to load shifts: {e}")
        return []


def run_auto_assignment(
    target_date: str,
    shift_type: str,
    max_per_staff: Optional[int],
) -> Optional[Dict[str, Any]]:
    try:
        response = requests.post(
            f"{API_BASE_URL}/auto_assign",
            json={
                "date": target_date,
                "shift_type": shift_type,
                "max_assignments_per_staff": max_per_staff,
            },
            headers=_headers(),
            timeout=30,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Auto-assignment request failed: {e}")
        return None


def fetch_rooms() -> List[Dict[str, Any]]:
    try:
        response = requests.get(f"{API_BASE_URL}/rooms", timeout=5)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Failed to load rooms: {e}")
        return []


def import_rooms(csv_text: str) -> Optional[List[Dict[str, Any]]]:
    try:
        response = requests.post(
            f"{API_BASE_URL}/rooms/import",
            json={"csv": csv_text},
            headers=_headers(),
            timeout=10,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Room import failed: {e}")
        return None


def fetch_shift_types() -> List[str]:
    try:
        response = requests.get(f"{API_BASE_URL}/config", timeout=5)
        response.raise_for_status()
        return response.json()["shift_types"]
    except requests.exceptions.RequestException as e:
        st.error(f"Failed to load shift types: {e}")
        return []


# ==========================================
# UI Page Functions
# ==========================================
def _shift_frame(shifts: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = [
        {
            "Staff": item["staff_name"],
            "Rooms": ", ".join(item["rooms"]),
            "Room count": len(item["rooms"]),
            "Notes": item["notes"],
            "Created": item["created_at"],
        }
        for item in shifts
    ]
    return pd.DataFrame(rows)


def render_shifts_page() -> None:
    st.header("📋 Shifts")

    col1, col2 = st.columns(2)
    with col1:
        target_date = st.date_input("Date", datetime.date.today())
    with col2:
        shift_type = st.selectbox("Shift", fetch_shift_types())
    if shift_type is None:
        return

    shifts = fetch_shifts(str(target_date), shift_type)
    if shifts:
        st.dataframe(_shift_frame(shifts), use_container_width=True)
    else:
        st.info("No shifts recorded for this date and shift.")


def render_auto_assign_page() -> None:
    st.header("⚖️ Auto-Assign Rooms")
    st.markdown("Spread rooms that need housekeeping across available staff, lowest workload first.")

    col1, col2, col3 = st.columns(3)
    with col1:
        target_date = st.date_input("Assignment Date", datetime.date.today())
    with col2:
        shift_type = st.selectbox("Assignment Shift", fetch_shift_types())
    with col3:
        max_per_staff = st.number_input(
            "Max rooms per staff (0 = fair share)", min_value=0, max_value=100, value=0
        )
    if shift_type is None:
        return

    if st.button("Run Auto-Assignment", type="primary"):
        with st.spinner("Assigning rooms..."):
            result = run_auto_assignment(str(target_date), shift_type, int(max_per_staff) or None)

        if result:
            metric_col1, metric_col2 = st.columns(2)
            metric_col1.metric("Shifts created", result.get("success_count", 0))
            metric_col2.metric("Failed writes", result.get("failure_count", 0))

            if result.get("success"):
                st.success("All assignments saved.")
            for message in result.get("errors", []):
                st.error(message)

            assignments = result.get("assignments", [])
            if assignments:
                st.write("### Assignments")
                st.dataframe(
                    pd.DataFrame(
                        [
                            {
                                "Staff": item["staff_name"],
                                "Rooms": ", ".join(item["rooms"]),
                                "Room count": len(item["rooms"]),
                            }
                            for item in assignments
                        ]
                    ),
                    use_container_width=True,
                )

            if result.get("refresh_required"):
                st.write("### Updated shift list")
                st.dataframe(
                    _shift_frame(fetch_shifts(str(target_date), shift_type)),
                    use_container_width=True,
                )


def render_rooms_page() -> None:
    st.header("🛏️ Rooms")

    rooms = fetch_rooms()
    if rooms:
        st.dataframe(pd.DataFrame(rooms), use_container_width=True)

    st.write("### Bulk import")
    st.caption("CSV with a header row: Number, Type, Status. Only Number is required.")
    csv_text = st.text_area("CSV data", "Number,Type,Status\nRoom 401,Standard,Available")
    if st.button("Import Rooms"):
        created = import_rooms(csv_text)
        if created is not None:
            st.success(f"Imported {len(created)} room(s).")


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Housekeeping Scheduler")
    st.sidebar.markdown("---")

    token = st.sidebar.text_input("Login token", type="password")
    if st.sidebar.button("Login") and token:
        session = login(token)
        if session:
            st.session_state["access_token"] = session["access_token"]
            st.sidebar.success(f"Signed in as {session['role']}")

    st.sidebar.markdown("---")
    page = st.sidebar.radio("Navigation", ["Shifts", "Auto-Assign", "Rooms"])

    if page == "Shifts":
        render_shifts_page()
    elif page == "Auto-Assign":
        render_auto_assign_page()
    elif page == "Rooms":
        render_rooms_page()


if __name__ == "__main__":
    main()
