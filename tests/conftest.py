"""
Shared fixtures: a Monday-start week, one or two stores and a shift factory.
"""
from datetime import date, timedelta
from itertools import count

import pytest

from communication.message_bus import MessageBus
from config import ValidationAdminSettings
from models.employee import Employee
from models.schedule import ScheduleSnapshot
from models.shift import Shift
from models.store import Store


WEEK_START = date(2024, 12, 9)  # Monday


@pytest.fixture
def week_start():
    return WEEK_START


@pytest.fixture
def settings():
    return ValidationAdminSettings()


@pytest.fixture
def bus():
    return MessageBus(verbose=False)


@pytest.fixture
def stores():
    return [Store(id="S1", name="Central"), Store(id="S2", name="Harbour")]


@pytest.fixture
def make_shift():
    """Factory for shifts; ``day`` is the offset from the week start."""
    ids = count(1)

    def _make(employee_id, day=0, start="09:00", end="17:00", store_id="S1", **kwargs):
        kwargs.setdefault("id", f"sh{next(ids)}")
        return Shift(
            employee_id=employee_id,
            store_id=store_id,
            date=WEEK_START + timedelta(days=day),
            start_time=start,
            end_time=end,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_employee():
    def _make(employee_id, contract_hours=40.0, store_id="S1", **kwargs):
        return Employee(
            id=employee_id,
            first_name=employee_id,
            last_name="Test",
            contract_hours=contract_hours,
            store_id=store_id,
            **kwargs,
        )

    return _make


@pytest.fixture
def snapshot_factory(stores):
    def _make(employees, shifts, store_list=None):
        return ScheduleSnapshot(
            employees=employees,
            stores=stores if store_list is None else store_list,
            shifts=shifts,
        )

    return _make
