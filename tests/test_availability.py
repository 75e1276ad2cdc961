"""
Tests for the availability resolver against an in-memory booked-times source.
"""

from datetime import date
from uuid import uuid4

import pytest

from clinic.modules.scheduling.availability import AvailabilityResolver
from clinic.modules.scheduling.slots import TimeSlot, generate_slots

from tests.conftest import SATURDAY, THURSDAY, FixedClock


class FakeStore:
    def __init__(self, booked=None):
        self.booked = booked or {}

    async def booked_times(self, doctor_id, day):
        return self.booked.get((doctor_id, day), [])


@pytest.fixture
def doctor_id():
    return uuid4()


class TestAvailabilityResolver:
    """Free slots are the generated day minus live bookings."""

    @pytest.mark.asyncio
    async def test_empty_day_returns_all_slots(self, doctor_id):
        resolver = AvailabilityResolver(FakeStore(), FixedClock())
        assert await resolver.get_available_slots(doctor_id, THURSDAY) == generate_slots()

    @pytest.mark.asyncio
    async def test_booked_slots_removed(self, doctor_id):
        booked = [TimeSlot.parse("09:00"), TimeSlot.parse("14:30")]
        resolver = AvailabilityResolver(FakeStore({(doctor_id, THURSDAY): booked}), FixedClock())

        free = await resolver.get_available_slots(doctor_id, THURSDAY)

        assert len(free) == 16
        assert set(free) == set(generate_slots()) - set(booked)
        assert free == sorted(free)

    @pytest.mark.asyncio
    async def test_other_doctor_bookings_ignored(self, doctor_id):
        store = FakeStore({(uuid4(), THURSDAY): [TimeSlot.parse("09:00")]})
        resolver = AvailabilityResolver(store, FixedClock())
        assert len(await resolver.get_available_slots(doctor_id, THURSDAY)) == 18

    @pytest.mark.asyncio
    async def test_weekend_is_empty(self, doctor_id):
        resolver = AvailabilityResolver(FakeStore(), FixedClock())
        assert await resolver.get_available_slots(doctor_id, SATURDAY) == []

    @pytest.mark.asyncio
    async def test_past_day_is_empty(self, doctor_id):
        resolver = AvailabilityResolver(FakeStore(), FixedClock())
        assert await resolver.get_available_slots(doctor_id, date(2024, 10, 14)) == []

    @pytest.mark.asyncio
    async def test_fully_booked_day(self, doctor_id):
        store = FakeStore({(doctor_id, THURSDAY): generate_slots()})
        resolver = AvailabilityResolver(store, FixedClock())
        assert await resolver.get_available_slots(doctor_id, THURSDAY) == []

    @pytest.mark.asyncio
    async def test_is_slot_available(self, doctor_id):
        store = FakeStore({(doctor_id, THURSDAY): [TimeSlot.parse("10:00")]})
        resolver = AvailabilityResolver(store, FixedClock())
        assert not await resolver.is_slot_available(doctor_id, THURSDAY, TimeSlot.parse("10:00"))
        assert await resolver.is_slot_available(doctor_id, THURSDAY, TimeSlot.parse("10:30"))
