"""
Unit tests for the per-session availability tracker.
"""

import asyncio
from datetime import date
from unittest.mock import AsyncMock

import pytest

from models.appointment import Appointment
from scheduling.session import AvailabilityTracker
from utils.exceptions import StoreError

MONDAY = date(2026, 1, 5)
TUESDAY = date(2026, 1, 6)
SLOTS = ["08:00", "08:10", "08:20"]


@pytest.fixture
def tracker(fake_store):
    fake_store.add_appointment(doctor_id="doctor-1", appointment_date=MONDAY, appointment_time="08:10")
    return AvailabilityTracker(fake_store, slots=SLOTS)


def test_default_slots_follow_settings(fake_store, mock_settings):
    """Test the default slot range comes from configuration."""
    mock_settings.day_start = "09:00"
    mock_settings.day_end = "09:30"

    assert AvailabilityTracker(fake_store).slots == ["09:00", "09:10", "09:20"]


@pytest.mark.asyncio
async def test_refresh_builds_map(tracker):
    """Test a refresh derives the map from a fresh fetch."""
    tracker.select("doctor-1", MONDAY)

    assert await tracker.refresh() is True
    assert tracker.availability == {"08:00": True, "08:10": False, "08:20": True}
    assert tracker.is_available("08:10") is False
    assert tracker.is_available("12:00") is None


@pytest.mark.asyncio
async def test_refresh_without_selection(tracker, fake_store):
    """Test nothing is fetched until a doctor and date are chosen."""
    tracker.select("doctor-1", None)

    assert await tracker.refresh() is False
    assert tracker.availability == {}
    assert fake_store.calls == []


@pytest.mark.asyncio
async def test_select_drops_map(tracker):
    """Test switching date clears the previous map."""
    tracker.select("doctor-1", MONDAY)
    await tracker.refresh()
    token = tracker.token

    assert tracker.select("doctor-1", TUESDAY) > token
    assert tracker.availability == {}


@pytest.mark.asyncio
async def test_stale_response_discarded(tracker, fake_store):
    """Test a fetch finishing after a newer selection is ignored."""
    release = asyncio.Event()
    original = fake_store.list_appointments

    async def slow_list(**kwargs):
        await release.wait()
        return await original(**kwargs)

    fake_store.list_appointments = slow_list
    tracker.select("doctor-1", MONDAY)
    pending = asyncio.create_task(tracker.refresh())
    await asyncio.sleep(0)

    tracker.select("doctor-1", TUESDAY)
    release.set()

    assert await pending is False
    assert tracker.availability == {}


@pytest.mark.asyncio
async def test_close_discards_in_flight(tracker, fake_store):
    """Test an abandoned form ignores late responses."""
    release = asyncio.Event()
    original = fake_store.list_appointments

    async def slow_list(**kwargs):
        await release.wait()
        return await original(**kwargs)

    fake_store.list_appointments = slow_list
    tracker.select("doctor-1", MONDAY)
    pending = asyncio.create_task(tracker.refresh())
    await asyncio.sleep(0)

    tracker.close()
    release.set()

    assert await pending is False
    assert tracker.availability == {}
    assert await tracker.refresh() is False


@pytest.mark.asyncio
async def test_fetch_failure_keeps_map(tracker, fake_store):
    """Test a failed refresh leaves the last good map."""
    tracker.select("doctor-1", MONDAY)
    await tracker.refresh()
    fake_store.list_appointments = AsyncMock(side_effect=StoreError("timeout"))

    assert await tracker.refresh() is False
    assert tracker.availability["08:10"] is False


@pytest.mark.asyncio
async def test_record_booking(tracker, fake_store):
    """Test an own booking shows as taken and the map is re-derived."""
    tracker.select("doctor-1", MONDAY)
    await tracker.refresh()
    booked = fake_store.add_appointment(
        doctor_id="doctor-1", appointment_date=MONDAY, appointment_time="08:20"
    )

    assert await tracker.record_booking(booked) is True
    assert tracker.availability == {"08:00": True, "08:10": False, "08:20": False}


def test_mark_booked(tracker):
    """Test marking a time taken without a fetch."""
    tracker.mark_booked("08:00")

    assert tracker.is_available("08:00") is False


@pytest.mark.asyncio
async def test_edit_session_shows_own_time_free(fake_store):
    """Test an appointment being edited does not block its own slot."""
    existing = fake_store.add_appointment(
        doctor_id="doctor-1", appointment_date=MONDAY, appointment_time="08:00"
    )
    tracker = AvailabilityTracker(fake_store, slots=SLOTS, exclude_id=existing.id)
    tracker.select("doctor-1", MONDAY)

    await tracker.refresh()

    assert tracker.is_available("08:00") is True


@pytest.mark.asyncio
async def test_record_booking_for_other_date(tracker):
    """Test a booking elsewhere does not touch this map."""
    tracker.select("doctor-1", MONDAY)
    await tracker.refresh()
    elsewhere = Appointment(
        id="appt-x",
        patient_id="patient-1",
        doctor_id="doctor-1",
        appointment_date=TUESDAY,
        appointment_time="08:00",
    )

    await tracker.record_booking(elsewhere)

    assert tracker.is_available("08:00") is True
