"""
Unit tests for amount helpers, DateRange and the production domain records.

Verifies:
- Decimal-only amount conversion (float prohibition)
- ROUND_HALF_UP rounding to cents
- Inclusive DateRange semantics
- Construction-time validation of domain records
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from costing_kernel.domain.clock import DeterministicClock
from costing_kernel.domain.production import (
    AttendanceStatus,
    PausePeriod,
    ProductionStatus,
    SubTask,
    WorkerAssignment,
    WorkerAttendance,
    WorkOrderItem,
)
from costing_kernel.domain.values import (
    DateRange,
    amounts_equal,
    as_date,
    round_amount,
    sum_amounts,
    to_decimal,
)


class TestToDecimal:
    """Tests for to_decimal."""

    def test_string(self):
        assert to_decimal("100.50") == Decimal("100.50")

    def test_int(self):
        assert to_decimal(7) == Decimal("7")

    def test_decimal_passthrough(self):
        value = Decimal("1.005")
        assert to_decimal(value) is value

    def test_float_rejected(self):
        with pytest.raises(ValueError, match="float"):
            to_decimal(0.1)

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            to_decimal(True)

    def test_garbage_rejected(self):
        with pytest.raises(ValueError, match="Invalid amount"):
            to_decimal("ten")


class TestRounding:
    """ROUND_HALF_UP to currency precision."""

    @pytest.mark.parametrize("raw,expected", [
        ("1.005", "1.01"),
        ("1.004", "1.00"),
        ("-1.005", "-1.01"),
        ("2", "2.00"),
        ("33.333333", "33.33"),
    ])
    def test_round_amount(self, raw, expected):
        assert round_amount(raw) == Decimal(expected)

    def test_sum_amounts_rounds_once(self):
        assert sum_amounts(["0.004", "0.004", "0.004"]) == Decimal("0.01")

    def test_sum_of_nothing_is_zero(self):
        assert sum_amounts([]) == Decimal("0.00")

    def test_amounts_equal_within_tolerance(self):
        assert amounts_equal(Decimal("100.00"), Decimal("100.01"))
        assert not amounts_equal(Decimal("100.00"), Decimal("100.02"))


class TestDateRange:
    """Inclusive date ranges."""

    def test_days_inclusive(self):
        assert DateRange(date(2024, 1, 1), date(2024, 1, 7)).days == 7

    def test_single_day(self):
        rng = DateRange(date(2024, 1, 1), date(2024, 1, 1))
        assert list(rng) == [date(2024, 1, 1)]

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            DateRange(date(2024, 1, 2), date(2024, 1, 1))

    def test_contains(self):
        rng = DateRange(date(2024, 1, 1), date(2024, 1, 7))
        assert date(2024, 1, 7) in rng
        assert date(2024, 1, 8) not in rng
        assert "2024-01-03" not in rng

    def test_covering(self):
        rng = DateRange.covering([date(2024, 1, 5), date(2024, 1, 2), date(2024, 1, 9)])
        assert rng == DateRange(date(2024, 1, 2), date(2024, 1, 9))
        assert DateRange.covering([]) is None

    def test_str(self):
        assert str(DateRange(date(2024, 1, 1), date(2024, 1, 2))) == "2024-01-01..2024-01-02"

    def test_as_date_of_timestamp(self):
        assert as_date(datetime(2024, 1, 3, 23, 59, tzinfo=UTC)) == date(2024, 1, 3)


class TestDomainRecords:
    """Construction-time validation and derived properties."""

    def test_subtask_quantity_must_be_positive(self):
        with pytest.raises(ValueError, match="quantity"):
            SubTask(id="s1", item_id="i1", quantity=0)

    def test_item_quantity_must_be_positive(self):
        with pytest.raises(ValueError, match="quantity"):
            WorkOrderItem(
                id="i1", work_order_id="wo", organization_id="org",
                product_id="p", product_name="Table", quantity=-1,
            )

    def test_pause_cannot_end_before_start(self):
        with pytest.raises(ValueError, match="before it starts"):
            PausePeriod(
                started_at=datetime(2024, 1, 5, tzinfo=UTC),
                ended_at=datetime(2024, 1, 4, tzinfo=UTC),
            )

    def test_open_pause_covers_through_as_of(self):
        pause = PausePeriod(started_at=datetime(2024, 1, 5, tzinfo=UTC))
        assert pause.is_open
        assert pause.covers(date(2024, 1, 9), as_of=date(2024, 1, 10))
        assert not pause.covers(date(2024, 1, 11), as_of=date(2024, 1, 10))

    def test_participants_primary_first(self):
        subtask = SubTask(
            id="s1", item_id="i1", quantity=1, status=ProductionStatus.IN_PROGRESS,
            worker_id="w1", worker_name="Amir",
            helpers=(WorkerAssignment("w2", "Lejla"),),
        )
        assert [p.worker_id for p in subtask.participants] == ["w1", "w2"]

    def test_item_worker_ids(self):
        item = WorkOrderItem(
            id="i1", work_order_id="wo", organization_id="org",
            product_id="p", product_name="Table", quantity=2,
            assigned_workers=(WorkerAssignment("w3"),),
            subtasks=(SubTask(id="s1", item_id="i1", quantity=1, worker_id="w1"),),
        )
        assert item.worker_ids == frozenset({"w1", "w3"})

    @pytest.mark.parametrize("status,billable", [
        (AttendanceStatus.PRESENT, True),
        (AttendanceStatus.FIELD, True),
        (AttendanceStatus.ABSENT, False),
        (AttendanceStatus.SICK, False),
        (AttendanceStatus.LEAVE, False),
    ])
    def test_attendance_billable(self, status, billable):
        record = WorkerAttendance("org", "w1", date(2024, 1, 2), status)
        assert record.is_billable is billable


class TestDeterministicClock:
    """The test clock never moves on its own."""

    def test_repeatable(self):
        clock = DeterministicClock()
        assert clock.now() == clock.now()
        assert clock.today() == date(2024, 1, 1)

    def test_advance_days(self):
        clock = DeterministicClock()
        clock.advance_days(9)
        assert clock.today() == date(2024, 1, 10)

    def test_explicit_as_of_wins(self):
        clock = DeterministicClock()
        assert clock.resolve_as_of(date(2023, 12, 31)) == date(2023, 12, 31)
        assert clock.resolve_as_of(None) == date(2024, 1, 1)
