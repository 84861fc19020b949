"""Streamlit operator console for the table allocation API."""

from __future__ import annotations

import datetime
from typing import Any, Dict, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
# Point this to your local FastAPI server
API_BASE_URL = "http://127.0.0.1:3000/woki"
DEFAULT_RESTAURANT_ID = "R1"
DEFAULT_SECTOR_ID = "S1"

st.set_page_config(
    page_title="Seatplan Console",
    page_icon="🍽️",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def _error_detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    return f"{body.get('error', 'error')}: {body.get('detail', '')}"


def fetch_candidates(
    restaurant_id: str,
    sector_id: str,
    target_date: str,
    party_size: int,
    window: Optional[tuple[str, str]],
    limit: int,
) -> Optional[Dict[str, Any]]:
    """Calls GET /discover."""
    params: Dict[str, Any] = {
        "restaurantId": restaurant_id,
        "sectorId": sector_id,
        "date": target_date,
        "partySize": party_size,
        "limit": limit,
    }
    if window is not None:
        params["windowStart"], params["windowEnd"] = window
    try:
        response = requests.get(f"{API_BASE_URL}/discover", params=params, timeout=5)
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None
    if response.status_code == 409:
        st.warning(_error_detail(response))
        return None
    if not response.ok:
        st.error(_error_detail(response))
        return None
    return response.json()


def create_booking(
    restaurant_id: str,
    sector_id: str,
    target_date: str,
    party_size: int,
    window: Optional[tuple[str, str]],
    idempotency_key: str,
) -> Optional[Dict[str, Any]]:
    """Calls POST /bookings."""
    payload: Dict[str, Any] = {
        "restaurantId": restaurant_id,
        "sectorId": sector_id,
        "date": target_date,
        "partySize": party_size,
    }
    if window is not None:
        payload["windowStart"], payload["windowEnd"] = window
    headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
    try:
        response = requests.post(
            f"{API_BASE_URL}/bookings",
            json=payload,
            headers=headers,
            timeout=10,
        )
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None
    if response.status_code == 409:
        st.warning(_error_detail(response))
        return None
    if not response.ok:
        st.error(_error_detail(response))
        return None
    if response.status_code == 200:
        st.info("Idempotency key already used: showing the original booking.")
    return response.json()


def fetch_day(restaurant_id: str, sector_id: str, target_date: str) -> Optional[Dict[str, Any]]:
    """Calls GET /bookings/day."""
    try:
        response = requests.get(
            f"{API_BASE_URL}/bookings/day",
            params={"restaurantId": restaurant_id, "sectorId": sector_id, "date": target_date},
            timeout=5,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Listing failed: {e}")
        return None


def cancel_booking(booking_id: str) -> bool:
    """Calls DELETE /bookings/{id}."""
    try:
        response = requests.delete(f"{API_BASE_URL}/bookings/{booking_id}", timeout=5)
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return False
    if response.status_code == 404:
        st.error(f"Booking {booking_id} not found")
        return False
    return response.status_code == 204


def _scope_inputs(prefix: str) -> tuple[str, str, str]:
    col1, col2, col3 = st.columns(3)
    with col1:
        restaurant_id = st.text_input("Restaurant ID", DEFAULT_RESTAURANT_ID, key=f"{prefix}_restaurant")
    with col2:
        sector_id = st.text_input("Sector ID", DEFAULT_SECTOR_ID, key=f"{prefix}_sector")
    with col3:
        target_date = st.date_input("Date", datetime.date(2025, 10, 22), key=f"{prefix}_date")
    return restaurant_id, sector_id, str(target_date)


def _window_inputs(prefix: str) -> Optional[tuple[str, str]]:
    use_window = st.checkbox("Restrict to a time window", key=f"{prefix}_use_window")
    if not use_window:
        return None
    col1, col2 = st.columns(2)
    with col1:
        start = st.time_input("Window start", datetime.time(20, 0), step=900, key=f"{prefix}_start")
    with col2:
        end = st.time_input("Window end", datetime.time(23, 45), step=900, key=f"{prefix}_end")
    return start.strftime("%H:%M"), end.strftime("%H:%M")


# ==========================================
# UI Page Functions
# ==========================================
def render_discovery_page() -> None:
    st.header("🔎 Discover Seating")
    st.markdown("Ranked single-table and combo options for a party. Nothing is reserved.")

    restaurant_id, sector_id, target_date = _scope_inputs("discover")
    party_size = st.number_input("Party size", min_value=1, max_value=30, value=2, key="discover_party")
    window = _window_inputs("discover")
    limit = st.slider("Max candidates", 1, 50, 10)

    if st.button("Find Candidates", type="primary"):
        result = fetch_candidates(restaurant_id, sector_id, target_date, int(party_size), window, limit)
        if result:
            metric_col1, metric_col2 = st.columns(2)
            metric_col1.metric("Duration (min)", result.get("durationMinutes", 0))
            metric_col2.metric("Slot step (min)", result.get("slotMinutes", 0))
            frame = pd.DataFrame(result.get("candidates", []))
            if not frame.empty:
                frame["tableIds"] = frame["tableIds"].apply(", ".join)
            st.dataframe(frame, use_container_width=True)


def render_booking_page() -> None:
    st.header("📝 Create Booking")
    st.markdown("Commits the best candidate. Reuse an idempotency key to safely retry.")

    restaurant_id, sector_id, target_date = _scope_inputs("book")
    party_size = st.number_input("Party size", min_value=1, max_value=30, value=2, key="book_party")
    window = _window_inputs("book")
    idempotency_key = st.text_input("Idempotency key (optional)", "")

    if st.button("Book", type="primary"):
        booking = create_booking(
            restaurant_id,
            sector_id,
            target_date,
            int(party_size),
            window,
            idempotency_key.strip(),
        )
        if booking:
            st.success(f"Booking {booking['id']} on {', '.join(booking['tableIds'])}")
            st.json(booking)


def render_day_page() -> None:
    st.header("📅 Day Sheet")
    st.markdown("Active bookings for a sector. Cancelled bookings are kept but hidden.")

    restaurant_id, sector_id, target_date = _scope_inputs("day")
    result = fetch_day(restaurant_id, sector_id, target_date)
    if result is not None:
        items = result.get("items", [])
        if items:
            frame = pd.DataFrame(items)
            frame["tableIds"] = frame["tableIds"].apply(", ".join)
            st.dataframe(
                frame[["id", "tableIds", "partySize", "start", "end", "status"]],
                use_container_width=True,
            )
        else:
            st.info("No active bookings for this day.")

    st.write("### Cancel a booking")
    booking_id = st.text_input("Booking ID")
    if st.button("Cancel Booking") and booking_id.strip():
        if cancel_booking(booking_id.strip()):
            st.success(f"Booking {booking_id} cancelled")


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Seatplan Console")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigation Module",
        ["Discover", "Book", "Day Sheet"],
    )

    st.sidebar.markdown("---")
    st.sidebar.caption(f"API: {API_BASE_URL}")

    if page == "Discover":
        render_discovery_page()
    elif page == "Book":
        render_booking_page()
    elif page == "Day Sheet":
        render_day_page()


if __name__ == "__main__":
    main()
