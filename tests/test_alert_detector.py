"""
Tests for workload alert detection.
"""
from datetime import datetime

import pytest

from communication.message import MessageType
from config import ValidationAdminSettings
from engines.alert_detector import AlertDetector
from models.alerts import AlertSeverity, AlertType


@pytest.fixture
def detector():
    return AlertDetector(verbose=False)


def _long_days(make_shift, employee_id, days):
    """10h shifts (08:00-18:00) on the given day offsets."""
    return [make_shift(employee_id, day=d, start="08:00", end="18:00") for d in days]


def test_uneven_week_raises_overload_and_equity_alerts(detector, make_shift, make_employee,
                                                       stores, week_start):
    """Hours [60, 40, 20] with a 40h cap."""
    employees = [make_employee("A"), make_employee("B"), make_employee("C")]
    shifts = (
        _long_days(make_shift, "A", range(6))
        + [make_shift("B", day=d) for d in range(5)]
        + _long_days(make_shift, "C", range(2))
    )

    alerts = detector.detect(employees, shifts, stores[:1], week_start)
    by_id = {a.id: a for a in alerts}

    critical = by_id["overload-critical-A"]
    assert critical.type == AlertType.OVERLOADED
    assert critical.severity == AlertSeverity.CRITICAL
    assert critical.current_value == 60
    assert critical.threshold_value == 40
    assert critical.action_required

    # 40h is not above the cap but above 80% of it
    assert by_id["overload-warning-B"].severity == AlertSeverity.HIGH
    assert "overload-critical-B" not in by_id

    equity = by_id["equity-critical"]
    assert equity.severity == AlertSeverity.HIGH
    assert equity.current_value == pytest.approx(59.2)

    assert not any(a.employee_id == "C" for a in alerts)
    assert alerts[0].severity == AlertSeverity.CRITICAL


def test_equal_hours_raise_no_equity_alert(detector, make_shift, make_employee, stores,
                                           week_start):
    employees = [make_employee(e) for e in "ABC"]
    shifts = [make_shift(e, day=d) for e in "ABC" for d in range(5)]

    alerts = detector.detect(employees, shifts, stores[:1], week_start)

    assert not detector.alerts_by_type(alerts, AlertType.EQUITY_CRITICAL)


def test_zero_hours_is_not_underloaded(detector, make_shift, make_employee, stores,
                                       week_start):
    employees = [make_employee(e) for e in "ABCD"]
    shifts = [make_shift(e, day=d) for e in "ABC" for d in range(5)]

    alerts = detector.detect(employees, shifts, stores[:1], week_start)

    assert not [a for a in alerts if a.employee_id == "D"]


@pytest.mark.parametrize(
    "start, end, severity",
    [
        ("09:00", "15:00", AlertSeverity.MEDIUM),   # 6h
        ("09:00", "12:00", AlertSeverity.HIGH),     # 3h
    ],
)
def test_underload_severity(detector, make_shift, make_employee, stores, week_start,
                            start, end, severity):
    employees = [make_employee("A")]
    alerts = detector.detect(employees, [make_shift("A", start=start, end=end)],
                             stores[:1], week_start)

    assert [a.id for a in alerts] == ["underload-A"]
    assert alerts[0].severity == severity
    assert alerts[0].threshold_value == 8


def test_break_minutes_are_subtracted(detector, make_shift, make_employee, stores,
                                      week_start):
    """Five 9h spans with a 1h break are 40h: not above the cap."""
    employees = [make_employee("A")]
    shifts = [make_shift("A", day=d, start="08:00", end="17:00", break_duration=60)
              for d in range(5)]

    alerts = detector.detect(employees, shifts, stores[:1], week_start)

    assert [a.id for a in alerts] == ["overload-warning-A"]
    assert alerts[0].current_value == 40


def test_custom_cap(detector, make_shift, make_employee, stores, week_start):
    employees = [make_employee("A")]
    shifts = [make_shift("A", day=d) for d in range(4)]  # 32h

    alerts = detector.detect(employees, shifts, stores[:1], week_start,
                             ValidationAdminSettings(max_hours_variation=30))

    assert alerts[0].id == "overload-critical-A"


def test_understaffed_store_ignores_inactive_stores(detector, make_shift, make_employee,
                                                    week_start):
    from models.store import Store

    stores = [Store("S1", "Central"), Store("S2", "Harbour"),
              Store("S3", "Closed", is_active=False)]
    employees = [make_employee("A", store_id="S1"), make_employee("B", store_id="S2")]
    shifts = ([make_shift("A", day=d, store_id="S1") for d in range(5)]
              + [make_shift("B", day=0, start="08:00", end="18:00", store_id="S2")])

    alerts = detector.detect(employees, shifts, stores, week_start)
    store_alerts = detector.alerts_by_type(alerts, AlertType.STORE_IMBALANCE)

    # S2 has 10h against an average of 25h (60% below)
    assert [a.id for a in store_alerts] == ["store-understaffed-S2"]
    assert store_alerts[0].severity == AlertSeverity.HIGH
    assert store_alerts[0].threshold_value == 25


def test_single_open_store_skips_store_check(detector, make_shift, make_employee,
                                             week_start):
    from models.store import Store

    stores = [Store("S1", "Central"), Store("S3", "Closed", is_active=False)]
    shifts = [make_shift("A", day=0, store_id="S1")]

    alerts = detector.detect([make_employee("A")], shifts, stores, week_start)

    assert detector.alerts_by_type(alerts, AlertType.STORE_IMBALANCE) == []


def test_nothing_to_evaluate(detector, make_employee, make_shift, stores, week_start):
    assert detector.detect([make_employee("A")], [], stores, week_start) == []
    inactive = make_employee("A", is_active=False)
    assert detector.detect([inactive], [make_shift("A")], stores, week_start) == []


def test_sort_and_summary(detector, make_shift, make_employee, stores, week_start):
    now = datetime(2024, 12, 9, 12, 0)
    employees = [make_employee("A"), make_employee("B")]
    shifts = (_long_days(make_shift, "A", range(5))
              + [make_shift("B", start="09:00", end="12:00")])

    alerts = detector.detect(employees, shifts, stores[:1], week_start, now=now)
    summary = detector.summarize(alerts)

    assert [a.severity for a in alerts] == [AlertSeverity.CRITICAL, AlertSeverity.HIGH]
    assert summary.total == 2
    assert summary.critical == 1 and summary.high == 1
    assert summary.to_dict()["by_type"]["underloaded"] == 1
    assert detector.critical_alerts(alerts) == alerts[:1]


def test_alerts_are_published(bus, make_shift, make_employee, stores, week_start):
    detector = AlertDetector(bus, verbose=False)
    detector.detect([make_employee("A")], [make_shift("A", start="09:00", end="12:00")],
                    stores[:1], week_start)

    events = bus.get_history(msg_type=MessageType.ALERTS_RAISED)
    assert len(events) == 1
    assert events[0].content["total"] == 1
    assert events[0].content["week_start"] == week_start.isoformat()
