"""
Tests for SyncReportService -- the read-only labor sync dashboard.
"""

from datetime import date
from decimal import Decimal

from costing_engines.reconciliation import FlagCategory, Severity
from costing_kernel.domain.production import (
    AttendanceStatus,
    WorkerAttendance,
    WorkOrderStatus,
)
from costing_kernel.domain.values import DateRange
from costing_services.recalculation_orchestrator import participant_date_range
from tests.services.conftest import ORG_ID


def _attend_everything(store):
    store.upsert_attendance(ORG_ID, [
        WorkerAttendance(ORG_ID, "w1", date(2024, 1, d), AttendanceStatus.PRESENT)
        for d in (2, 3, 4, 5, 8, 9, 10)
    ] + [
        WorkerAttendance(ORG_ID, "w2", date(2024, 1, d), AttendanceStatus.FIELD)
        for d in (8, 9, 10)
    ])


class TestReportBeforeRecompute:
    """Freshly seeded data: no work logs, no costs, no attendance."""

    def test_category_counts(self, sync_report_service):
        report = sync_report_service.build_report(ORG_ID)

        assert report.work_orders_checked == 3
        counts = report.categories
        assert counts[FlagCategory.LABOR_COST_SYNC].checked == 3
        assert counts[FlagCategory.LABOR_COST_SYNC].flagged == 0
        assert counts[FlagCategory.MISSING_WORK_LOGS].flagged == 2
        assert counts[FlagCategory.MISSING_WORK_LOGS].passed == 1
        assert counts[FlagCategory.MISSING_ATTENDANCE].flagged == 2
        assert counts[FlagCategory.WORKER_EARNINGS].checked == 0

    def test_working_day_mismatches(self, sync_report_service):
        report = sync_report_service.build_report(ORG_ID)
        mismatches = {c.subtask_id: (c.stored_days, c.computed_days)
                      for c in report.working_day_mismatches}
        assert mismatches == {"s1": (0, 4), "s2": (0, 3)}

    def test_not_clean(self, sync_report_service):
        report = sync_report_service.build_report(ORG_ID)
        assert not report.is_clean
        assert report.issues_by_severity()[Severity.MEDIUM] == 4

    def test_status_filter(self, sync_report_service):
        report = sync_report_service.build_report(ORG_ID, statuses=[WorkOrderStatus.DRAFT])
        assert report.work_orders_checked == 1
        assert report.issues == ()

    def test_read_only(self, sync_report_service, store):
        sync_report_service.build_report(ORG_ID)
        assert store.load_work_order(ORG_ID, "wo-1").version == 0
        assert store.load_work_logs(ORG_ID, ["i1", "i2"]) == ()


class TestReportAfterRecompute:
    """After a recompute the hard invariants hold."""

    def test_costs_in_sync(self, sync_report_service, orchestrator):
        orchestrator.recalculate_many(ORG_ID, ["wo-1", "wo-2"])
        report = sync_report_service.build_report(ORG_ID)

        for category in (
            FlagCategory.LABOR_COST_SYNC,
            FlagCategory.SUBTASK_DISTRIBUTION,
            FlagCategory.MISSING_WORK_LOGS,
            FlagCategory.MISSING_LABOR_COST,
        ):
            assert report.categories[category].flagged == 0
        assert report.working_day_mismatches == ()

    def test_earnings_without_attendance_are_info(self, sync_report_service, orchestrator):
        orchestrator.recalculate_many(ORG_ID, ["wo-1", "wo-2"])
        report = sync_report_service.build_report(ORG_ID)

        earnings = {c.worker_id: c for c in report.worker_earnings}
        assert earnings["w1"].logged_earnings == Decimal("350.00")
        assert earnings["w1"].expected_earnings == Decimal("0.00")
        assert earnings["w2"].logged_earnings == Decimal("300.00")
        flags = [f for f in report.issues if f.category is FlagCategory.WORKER_EARNINGS]
        assert len(flags) == 2
        assert all(f.severity is Severity.INFO for f in flags)

    def test_clean_with_full_attendance(self, sync_report_service, orchestrator, store):
        _attend_everything(store)
        orchestrator.recalculate_many(ORG_ID, ["wo-1", "wo-2"])

        report = sync_report_service.build_report(ORG_ID)

        assert report.is_clean
        assert report.issues == ()
        assert all(c.matches for c in report.worker_earnings)

    def test_stale_working_days_after_time_passes(self, sync_report_service, orchestrator, clock):
        orchestrator.recalculate_work_order(ORG_ID, "wo-1")
        clock.advance_days(1)

        report = sync_report_service.build_report(ORG_ID)
        mismatches = {c.subtask_id: (c.stored_days, c.computed_days)
                      for c in report.working_day_mismatches}
        assert mismatches == {"s2": (3, 4)}

    def test_report_logged(self, sync_report_service, captured_logs):
        sync_report_service.build_report(ORG_ID)
        assert any(r["message"] == "sync_report_built" for r in captured_logs())


class TestAttendanceWindow:
    """Attendance is read over the same window the recompute uses."""

    def test_window_matches_recompute(self, sync_report_service, store, clock, monkeypatch):
        windows = []
        load_attendance = store.load_attendance

        def recording(organization_id, worker_ids, window):
            windows.append(window)
            return load_attendance(organization_id, worker_ids, window)

        monkeypatch.setattr(store, "load_attendance", recording)
        sync_report_service.build_report(ORG_ID)

        as_of = clock.today()
        expected = participant_date_range(store.load_items_and_subtasks(ORG_ID, "wo-1"), as_of)
        assert expected == DateRange(date(2024, 1, 1), as_of)
        assert expected in windows
