"""
LaborReconciliationChecker -- Pure engine for labor data-quality checks.

Compares stored item and sub-task labor costs against work logs, finds
working days lacking attendance, and cross-checks worker earnings.

Architecture: costing_engines -- pure calculation, zero I/O, zero DB access.
All inputs are frozen dataclasses populated by the service layer.

Checks:
    Labor-cost sync         item cost vs. sum of its work log rates (hard
                            invariant after recompute)
    SubTask distribution    item cost vs. sum of sub-task costs (hard
                            invariant after recompute)
    Missing work logs       started item with no work logs
    Missing labor cost      completed item with workers but zero cost
    Missing attendance      working day implied by active work, no record
    Worker earnings         attendance days x rate vs. logged (advisory)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal

from costing_engines.calendar import working_dates
from costing_engines.tracer import traced_engine
from costing_kernel.domain.production import (
    BILLABLE_ATTENDANCE,
    AttendanceStatus,
    Holiday,
    ProductionStatus,
    Worker,
    WorkerAttendance,
    WorkLog,
    WorkOrder,
    WorkOrderItem,
)
from costing_kernel.domain.values import as_date, round_amount, sum_amounts
from costing_kernel.invariants import HARD_INVARIANTS, CostingInvariant
from costing_kernel.logging_config import get_logger

from costing_engines.reconciliation.types import (
    CheckOutcome,
    DataQualityFlag,
    FlagCategory,
    MissingAttendanceEntry,
    SeverityBands,
    Severity,
    WorkerEarningsCheck,
)

logger = get_logger("engines.reconciliation.checker")

_DEFAULT_BANDS = SeverityBands()


def classify_severity(
    difference: Decimal,
    bands: SeverityBands = _DEFAULT_BANDS,
) -> Severity | None:
    """Severity of an absolute amount difference; None when within tolerance."""
    difference = abs(difference)
    if difference <= bands.tolerance:
        return None
    if difference > bands.high:
        return Severity.HIGH
    if difference > bands.medium:
        return Severity.MEDIUM
    return Severity.LOW


class LaborReconciliationChecker:
    """Pure engine for labor reconciliation.

    Usage:
        checker = LaborReconciliationChecker(SeverityBands())
        outcome = checker.check_labor_cost_sync(item, work_logs)
    """

    def __init__(self, bands: SeverityBands = _DEFAULT_BANDS):
        self._bands = bands

    @property
    def bands(self) -> SeverityBands:
        return self._bands

    # -----------------------------------------------------------------
    # Amount checks
    # -----------------------------------------------------------------

    def _compare(
        self,
        category: FlagCategory,
        item: WorkOrderItem,
        expected: Decimal,
        source: str,
    ) -> CheckOutcome:
        actual = round_amount(item.actual_labor_cost)
        severity = classify_severity(actual - expected, self._bands)
        if severity is None:
            return CheckOutcome.consistent(category)
        return CheckOutcome.flagged(DataQualityFlag(
            category=category,
            severity=severity,
            reason=(
                f"Item labor cost {actual} differs from {source} {expected} "
                f"by {abs(actual - expected)}"
            ),
            work_order_id=item.work_order_id,
            item_id=item.id,
            item_name=item.product_name,
            expected=expected,
            actual=actual,
        ))

    @traced_engine("labor_reconciliation", "1.0", fingerprint_fields=("item",))
    def check_labor_cost_sync(
        self,
        item: WorkOrderItem,
        work_logs: Iterable[WorkLog],
    ) -> CheckOutcome:
        """Item labor cost vs. the sum of work log daily rates for the item."""
        logged = sum_amounts(
            w.daily_rate for w in work_logs if w.work_order_item_id == item.id
        )
        return self._compare(FlagCategory.LABOR_COST_SYNC, item, logged, "work log total")

    @traced_engine("labor_reconciliation", "1.0", fingerprint_fields=("item",))
    def check_subtask_distribution(self, item: WorkOrderItem) -> CheckOutcome:
        """Item labor cost vs. the sum of its sub-task costs.

        Items without sub-tasks are consistent by definition.
        """
        if not item.subtasks:
            return CheckOutcome.consistent(FlagCategory.SUBTASK_DISTRIBUTION)
        distributed = sum_amounts(s.actual_labor_cost for s in item.subtasks)
        return self._compare(
            FlagCategory.SUBTASK_DISTRIBUTION, item, distributed, "sub-task total",
        )

    # -----------------------------------------------------------------
    # Presence checks
    # -----------------------------------------------------------------

    def check_missing_work_logs(
        self,
        item: WorkOrderItem,
        work_logs: Iterable[WorkLog],
    ) -> CheckOutcome:
        """A started, non-pending item should have at least one work log."""
        category = FlagCategory.MISSING_WORK_LOGS
        if item.started_at is None or item.status is ProductionStatus.PENDING:
            return CheckOutcome.consistent(category)
        if any(w.work_order_item_id == item.id for w in work_logs):
            return CheckOutcome.consistent(category)
        return CheckOutcome.flagged(DataQualityFlag(
            category=category,
            severity=Severity.MEDIUM,
            reason=f"Item started on {as_date(item.started_at)} has no work logs",
            work_order_id=item.work_order_id,
            item_id=item.id,
            item_name=item.product_name,
        ))

    def check_missing_labor_cost(self, item: WorkOrderItem) -> CheckOutcome:
        """A completed item with assigned workers should carry labor cost."""
        category = FlagCategory.MISSING_LABOR_COST
        if (
            item.status is not ProductionStatus.COMPLETED
            or item.actual_labor_cost != 0
            or not item.worker_ids
        ):
            return CheckOutcome.consistent(category)
        return CheckOutcome.flagged(DataQualityFlag(
            category=category,
            severity=Severity.LOW,
            reason="Completed item with assigned workers has zero labor cost",
            work_order_id=item.work_order_id,
            item_id=item.id,
            item_name=item.product_name,
            details={"worker_ids": sorted(item.worker_ids)},
        ))

    # -----------------------------------------------------------------
    # Missing attendance
    # -----------------------------------------------------------------

    @traced_engine("labor_reconciliation", "1.0", fingerprint_fields=("item", "as_of"))
    def find_missing_attendance(
        self,
        work_order: WorkOrder,
        item: WorkOrderItem,
        attendance: Mapping[tuple[str, date], AttendanceStatus],
        holidays: Iterable[Holiday | date],
        as_of: date,
    ) -> tuple[MissingAttendanceEntry, ...]:
        """Every (worker, working day) of started work lacking an attendance record.

        Covers started sub-tasks, or the item itself when it has none.  Any
        attendance status counts as a record; only absence of a record is
        reported.  Entries are unique per (worker, day, sub-task) and sorted
        by day, worker, then sub-task.
        """
        holidays = tuple(holidays)
        scopes: list[tuple] = []
        if item.subtasks:
            for subtask in item.subtasks:
                if subtask.status is ProductionStatus.PENDING or subtask.started_at is None:
                    continue
                scopes.append((
                    subtask.id, subtask.participants, subtask.started_at,
                    subtask.ended_at, item.pause_periods + subtask.pause_periods,
                ))
        elif item.status is not ProductionStatus.PENDING and item.started_at is not None:
            scopes.append((
                None, item.assigned_workers, item.started_at,
                item.completed_at, item.pause_periods,
            ))

        found: dict[tuple[date, str, str], MissingAttendanceEntry] = {}
        for subtask_id, participants, started_at, ended_at, pauses in scopes:
            scope_start = as_date(started_at)
            scope_end = min(as_date(ended_at) if ended_at else as_of, as_of)
            for assignment in participants:
                start = max(as_date(assignment.started_at), scope_start) if assignment.started_at else scope_start
                end = min(as_date(assignment.ended_at), scope_end) if assignment.ended_at else scope_end
                for day in working_dates(start, end, holidays, pauses, as_of):
                    if (assignment.worker_id, day) in attendance:
                        continue
                    key = (day, assignment.worker_id, subtask_id or "")
                    found.setdefault(key, MissingAttendanceEntry(
                        worker_id=assignment.worker_id,
                        worker_name=assignment.worker_name,
                        work_order_id=work_order.id,
                        work_order_number=work_order.number,
                        item_id=item.id,
                        item_name=item.product_name,
                        missing_date=day,
                        subtask_id=subtask_id,
                    ))

        entries = tuple(found[k] for k in sorted(found))
        if entries:
            logger.info("missing_attendance_found", extra={
                "work_order_id": work_order.id,
                "item_id": item.id,
                "missing_count": len(entries),
            })
        return entries

    # -----------------------------------------------------------------
    # Worker earnings (advisory)
    # -----------------------------------------------------------------

    def check_worker_earnings(
        self,
        worker: Worker,
        attendance: Sequence[WorkerAttendance],
        work_logs: Iterable[WorkLog],
        billable_statuses: frozenset[AttendanceStatus] = BILLABLE_ATTENDANCE,
    ) -> WorkerEarningsCheck:
        """Attendance days x daily rate vs. the worker's logged earnings."""
        days = len({
            a.attendance_date for a in attendance
            if a.worker_id == worker.id and a.status in billable_statuses
        })
        rate = round_amount(worker.daily_rate)
        logged = sum_amounts(w.daily_rate for w in work_logs if w.worker_id == worker.id)
        return WorkerEarningsCheck(
            worker_id=worker.id,
            worker_name=worker.name,
            attendance_days=days,
            daily_rate=rate,
            expected_earnings=round_amount(rate * days),
            logged_earnings=logged,
            tolerance=self._bands.tolerance,
        )

    @staticmethod
    def earnings_flag(check: WorkerEarningsCheck) -> DataQualityFlag | None:
        """INFO flag for an earnings mismatch, for visibility only."""
        if check.matches:
            return None
        return DataQualityFlag(
            category=FlagCategory.WORKER_EARNINGS,
            severity=Severity.INFO,
            reason=(
                f"Worker {check.worker_name or check.worker_id}: "
                f"{check.attendance_days} attendance days imply "
                f"{check.expected_earnings}, work logs total {check.logged_earnings}"
            ),
            work_order_id="",
            worker_id=check.worker_id,
            expected=check.expected_earnings,
            actual=check.logged_earnings,
        )


def item_consistency_violations(
    checker: LaborReconciliationChecker,
    item: WorkOrderItem,
    work_logs: Iterable[WorkLog],
) -> tuple[str, ...]:
    """Hard-invariant failures for a freshly recomputed item, as messages.

    Each message starts with the violated CostingInvariant value.  Checks
    run in declaration order over HARD_INVARIANTS.
    """
    work_logs = tuple(work_logs)
    checks = {
        CostingInvariant.LABOR_COST_SYNC: lambda: checker.check_labor_cost_sync(item, work_logs),
        CostingInvariant.SUBTASK_DISTRIBUTION: lambda: checker.check_subtask_distribution(item),
    }
    violations: list[str] = []
    for invariant in CostingInvariant:
        if invariant not in HARD_INVARIANTS:
            continue
        outcome = checks[invariant]()
        if not outcome.is_consistent and outcome.flag is not None:
            violations.append(f"{invariant.value}: item {item.id}: {outcome.flag.reason}")
    return tuple(violations)
