"""
Tests for AttendanceService.

Attendance is required for costing in these tests (bundled defaults), so
every charged day must be backed by a Prisutan or Teren record.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from costing_kernel.domain.production import (
    AttendanceEntry,
    AttendanceStatus,
    WorkerAttendance,
    WorkOrderStatus,
)
from costing_kernel.domain.values import DateRange
from costing_services.attendance_service import worker_covers_day
from tests.services.conftest import ORG_ID


def _entry(worker_id, day, status=AttendanceStatus.PRESENT):
    return AttendanceEntry(worker_id, date(2024, 1, day), status)


def _cost(store, work_order_id):
    return store.load_items_and_subtasks(ORG_ID, work_order_id)[0].actual_labor_cost


def _status(store, worker_id, day):
    records = store.load_attendance(
        ORG_ID, [worker_id], DateRange(date(2024, 1, day), date(2024, 1, day)),
    )
    return records[0].status if records else None


class TestMarkAttendanceAndRecalculate:
    """Single-entry repair."""

    def test_recomputes_covering_work_order(self, attendance_service, store):
        result = attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w1", 2))

        assert result.written == 1
        assert result.affected_work_orders == ("wo-1",)
        assert [r.work_order_id for r in result.recalculated] == ["wo-1"]
        assert _cost(store, "wo-1") == Decimal("50.00")
        assert _cost(store, "wo-2") == Decimal("0.00")

    def test_item_without_subtasks_covered(self, attendance_service, store):
        result = attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w1", 9))
        assert result.affected_work_orders == ("wo-2",)
        assert _cost(store, "wo-2") == Decimal("50.00")

    def test_non_billable_status_clears_charge(self, attendance_service, store):
        attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w1", 2))
        attendance_service.mark_attendance_and_recalculate(
            ORG_ID, _entry("w1", 2, AttendanceStatus.SICK),
        )
        assert _status(store, "w1", 2) is AttendanceStatus.SICK
        assert _cost(store, "wo-1") == Decimal("0.00")

    def test_skip_recalculation_only_writes(self, attendance_service, store):
        result = attendance_service.mark_attendance_and_recalculate(
            ORG_ID, _entry("w1", 2), skip_recalculation=True,
        )
        assert result.written == 1
        assert result.recalculated == ()
        assert _status(store, "w1", 2) is AttendanceStatus.PRESENT
        assert store.load_work_order(ORG_ID, "wo-1").version == 0

    def test_day_outside_any_window(self, attendance_service, store):
        result = attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w1", 20))
        assert result.affected_work_orders == ()
        assert result.recalculated == ()

    def test_inactive_work_order_not_recomputed(self, attendance_service, store):
        work_order = store.load_work_order(ORG_ID, "wo-2")
        items = store.load_items_and_subtasks(ORG_ID, "wo-2")
        store.add_work_order(replace(work_order, status=WorkOrderStatus.COMPLETED), items)

        result = attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w1", 9))
        assert result.affected_work_orders == ()

    def test_logged(self, attendance_service, captured_logs):
        attendance_service.mark_attendance_and_recalculate(ORG_ID, _entry("w2", 9))
        marked = [r for r in captured_logs() if r["message"] == "attendance_marked"]
        assert marked[0]["worker_id"] == "w2"
        assert marked[0]["status"] == "Prisutan"


class TestMarkAttendanceBatch:
    """Batch repair: write everything, then one recompute per work order."""

    ENTRIES = [
        _entry("w1", 2, AttendanceStatus.ABSENT),
        _entry("w1", 2),
        _entry("w1", 3, AttendanceStatus.FIELD),
        _entry("w2", 9),
        _entry("w1", 9),
    ]

    def test_last_entry_wins(self, attendance_service, store):
        result = attendance_service.mark_attendance_batch(ORG_ID, self.ENTRIES)
        assert result.duplicates_dropped == 1
        assert result.written == 4
        assert _status(store, "w1", 2) is AttendanceStatus.PRESENT

    def test_one_recompute_per_work_order(self, attendance_service, store):
        result = attendance_service.mark_attendance_batch(ORG_ID, self.ENTRIES)

        assert result.affected_work_orders == ("wo-1", "wo-2")
        assert [r.work_order_id for r in result.recalculated] == ["wo-1", "wo-2"]
        assert store.load_work_order(ORG_ID, "wo-1").version == 1
        assert store.load_work_order(ORG_ID, "wo-2").version == 1
        assert _cost(store, "wo-1") == Decimal("200.00")
        assert _cost(store, "wo-2") == Decimal("50.00")

    def test_explicit_work_order(self, attendance_service, store):
        result = attendance_service.mark_attendance_batch(
            ORG_ID, self.ENTRIES, work_order_id="wo-2",
        )
        assert result.affected_work_orders == ("wo-2",)
        assert store.load_work_order(ORG_ID, "wo-1").version == 0
        assert _cost(store, "wo-2") == Decimal("50.00")
        # attendance for wo-1 is still written
        assert _status(store, "w2", 9) is AttendanceStatus.PRESENT

    def test_failed_recompute_reported(self, attendance_service, store):
        result = attendance_service.mark_attendance_batch(
            ORG_ID, [_entry("w1", 2)], work_order_id="missing",
        )
        assert result.written == 1
        assert result.failures[0].error_code == "WORK_ORDER_NOT_FOUND"
        assert _status(store, "w1", 2) is AttendanceStatus.PRESENT

    def test_empty_batch(self, attendance_service):
        result = attendance_service.mark_attendance_batch(ORG_ID, [])
        assert result.written == 0
        assert result.recalculated == ()


class TestCheckMissingAttendance:
    """Read-only scan of active work orders."""

    def test_everything_missing(self, attendance_service):
        report = attendance_service.check_missing_attendance_for_active_orders(ORG_ID)

        assert report.has_missing
        assert report.work_orders_scanned == 2
        assert len(report.warnings) == 10
        assert report.by_worker() == {
            "w1": tuple(date(2024, 1, d) for d in (2, 3, 4, 5, 8, 9, 10)),
            "w2": tuple(date(2024, 1, d) for d in (8, 9, 10)),
        }

    def test_recorded_days_not_reported(self, attendance_service):
        attendance_service.mark_attendance_batch(ORG_ID, [
            _entry("w1", d, AttendanceStatus.LEAVE) for d in (2, 3, 4, 5, 8, 9, 10)
        ] + [_entry("w2", d) for d in (8, 9, 10)])

        report = attendance_service.check_missing_attendance_for_active_orders(ORG_ID)
        assert not report.has_missing

    def test_read_only(self, attendance_service, store):
        attendance_service.check_missing_attendance_for_active_orders(ORG_ID)
        assert store.load_work_order(ORG_ID, "wo-1").version == 0
        assert store.load_attendance(ORG_ID, ["w1", "w2"], None) == ()

    def test_warning_fields(self, attendance_service):
        report = attendance_service.check_missing_attendance_for_active_orders(ORG_ID)
        first = report.warnings[0]
        assert first.work_order_number == "RN-001"
        assert first.item_name == "Trpezarijski sto"
        assert first.subtask_id == "s1"
        assert first.missing_date == date(2024, 1, 2)

    def test_other_organization_empty(self, attendance_service):
        report = attendance_service.check_missing_attendance_for_active_orders("org-2")
        assert report.warnings == ()
        assert report.work_orders_scanned == 0


class TestWorkerCoversDay:
    """Participation windows used to find affected work orders."""

    @pytest.mark.parametrize("worker_id,day,expected", [
        ("w1", 2, True),
        ("w1", 8, False),
        ("w2", 8, True),
        ("w2", 12, False),
        ("w9", 2, False),
    ])
    def test_subtask_windows(self, store, worker_id, day, expected):
        item = store.load_items_and_subtasks(ORG_ID, "wo-1")[0]
        assert worker_covers_day(item, worker_id, date(2024, 1, day), date(2024, 1, 10)) is expected


class TestUpsertValidation:
    """Attendance writes are scoped to one organization."""

    def test_foreign_organization_rejected(self, store):
        with pytest.raises(ValueError, match="organization"):
            store.upsert_attendance(ORG_ID, [
                WorkerAttendance("org-2", "w1", date(2024, 1, 2), AttendanceStatus.PRESENT),
            ])
