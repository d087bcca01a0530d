"""
costing_services.sync_report_service -- Read-only labor sync report.

Runs every reconciliation check over stored production data for an
organization and groups the results for a data-quality dashboard.
Nothing is written; fixing what the report shows is the job of
RecalculationOrchestrator and AttendanceService.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from costing_config.bridges import billable_statuses
from costing_engines.calendar import count_working_days
from costing_engines.reconciliation import (
    CheckOutcome,
    DataQualityFlag,
    FlagCategory,
    LaborReconciliationChecker,
    Severity,
    WorkerEarningsCheck,
)
from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.domain.production import (
    Holiday,
    SubTask,
    WorkOrderItem,
    WorkOrderStatus,
)
from costing_kernel.domain.values import DateRange, as_date
from costing_kernel.logging_config import get_logger
from costing_services.recalculation_orchestrator import (
    RecalculationOrchestrator,
    participant_date_range,
)
from costing_services.store import ProductionStore

logger = get_logger("services.sync_report")


@dataclass(frozen=True)
class WorkingDaysCheck:
    """Stored vs. calendar-derived working days of one sub-task."""

    work_order_id: str
    item_id: str
    subtask_id: str
    stored_days: int
    computed_days: int

    @property
    def matches(self) -> bool:
        return self.stored_days == self.computed_days


@dataclass(frozen=True)
class CategoryCount:
    """How many checks of one category ran and how many flagged."""

    category: FlagCategory
    checked: int = 0
    flagged: int = 0

    @property
    def passed(self) -> int:
        return self.checked - self.flagged


@dataclass(frozen=True)
class SyncReport:
    """Everything the labor sync dashboard shows for one organization."""

    organization_id: str
    as_of: date
    issues: tuple[DataQualityFlag, ...]
    worker_earnings: tuple[WorkerEarningsCheck, ...]
    working_days: tuple[WorkingDaysCheck, ...]
    categories: dict[FlagCategory, CategoryCount] = field(default_factory=dict)
    work_orders_checked: int = 0

    @property
    def is_clean(self) -> bool:
        return not any(f.severity is not Severity.INFO for f in self.issues)

    def issues_by_severity(self) -> dict[Severity, int]:
        counts = Counter(f.severity for f in self.issues)
        return {severity: counts.get(severity, 0) for severity in Severity}

    @property
    def working_day_mismatches(self) -> tuple[WorkingDaysCheck, ...]:
        return tuple(c for c in self.working_days if not c.matches)


def subtask_working_days(
    item: WorkOrderItem,
    subtask: SubTask,
    holidays: Sequence[Holiday | date],
    as_of: date,
) -> int:
    """Calendar working days of a sub-task window, clipped at ``as_of``."""
    if subtask.started_at is None:
        return 0
    start = as_date(subtask.started_at)
    end = as_date(subtask.ended_at) if subtask.ended_at is not None else as_of
    end = min(end, as_of)
    if end < start:
        return 0
    return count_working_days(
        start, end, holidays, item.pause_periods + subtask.pause_periods, as_of,
    ).total


class _Tally:
    def __init__(self) -> None:
        self.checked: Counter[FlagCategory] = Counter()
        self.flagged: Counter[FlagCategory] = Counter()
        self.issues: list[DataQualityFlag] = []

    def record(self, outcome: CheckOutcome) -> None:
        self.checked[outcome.category] += 1
        if outcome.flag is not None:
            self.flagged[outcome.category] += 1
            self.issues.append(outcome.flag)

    def record_flag(self, category: FlagCategory, flag: DataQualityFlag | None) -> None:
        self.checked[category] += 1
        if flag is not None:
            self.flagged[category] += 1
            self.issues.append(flag)

    def counts(self) -> dict[FlagCategory, CategoryCount]:
        return {
            category: CategoryCount(category, self.checked[category], self.flagged[category])
            for category in FlagCategory
        }


class SyncReportService:
    """Builds SyncReport instances from a ProductionStore."""

    def __init__(
        self,
        store: ProductionStore,
        orchestrator: RecalculationOrchestrator,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._checker: LaborReconciliationChecker = orchestrator.checker
        self._billable = billable_statuses(orchestrator.config)
        self._clock = clock or SystemClock()

    def build_report(
        self,
        organization_id: str,
        statuses: Iterable[WorkOrderStatus] | None = None,
        as_of: date | None = None,
    ) -> SyncReport:
        """Run every check over the organization's work orders.

        ``statuses`` limits which work orders are inspected; None means all.
        """
        as_of = self._clock.resolve_as_of(as_of)
        store = self._store
        checker = self._checker
        holidays = store.load_holidays()
        work_orders = store.list_work_orders(organization_id, statuses)

        tally = _Tally()
        working_days: list[WorkingDaysCheck] = []
        all_logs = []
        worker_ids: set[str] = set()
        first_day: date | None = None

        for work_order in work_orders:
            items = store.load_items_and_subtasks(organization_id, work_order.id)
            logs = store.load_work_logs(organization_id, [i.id for i in items])
            all_logs.extend(logs)
            worker_ids.update(w for item in items for w in item.worker_ids)
            worker_ids.update(log.worker_id for log in logs)
            for log in logs:
                if first_day is None or log.work_date < first_day:
                    first_day = log.work_date

            item_workers = sorted({w for item in items for w in item.worker_ids})
            attendance_window = participant_date_range(items, as_of)
            lookup = {}
            if item_workers and attendance_window is not None:
                lookup = {
                    (a.worker_id, a.attendance_date): a.status
                    for a in store.load_attendance(organization_id, item_workers, attendance_window)
                }

            for item in items:
                tally.record(checker.check_labor_cost_sync(item, logs))
                tally.record(checker.check_subtask_distribution(item))
                tally.record(checker.check_missing_work_logs(item, logs))
                tally.record(checker.check_missing_labor_cost(item))

                missing = checker.find_missing_attendance(work_order, item, lookup, holidays, as_of)
                tally.checked[FlagCategory.MISSING_ATTENDANCE] += 1
                if missing:
                    tally.flagged[FlagCategory.MISSING_ATTENDANCE] += 1
                    tally.issues.append(DataQualityFlag(
                        category=FlagCategory.MISSING_ATTENDANCE,
                        severity=Severity.MEDIUM,
                        reason=f"{len(missing)} working day(s) without attendance",
                        work_order_id=work_order.id,
                        item_id=item.id,
                        item_name=item.product_name,
                        details={
                            "missing": [
                                {"worker_id": m.worker_id, "date": m.missing_date.isoformat()}
                                for m in missing
                            ],
                        },
                    ))

                for subtask in item.subtasks:
                    if subtask.started_at is None:
                        continue
                    working_days.append(WorkingDaysCheck(
                        work_order_id=work_order.id,
                        item_id=item.id,
                        subtask_id=subtask.id,
                        stored_days=subtask.working_days,
                        computed_days=subtask_working_days(item, subtask, holidays, as_of),
                    ))

        earnings = self._worker_earnings(
            organization_id, sorted(worker_ids), all_logs, first_day, as_of,
        )
        for check in earnings:
            tally.record_flag(FlagCategory.WORKER_EARNINGS, checker.earnings_flag(check))

        report = SyncReport(
            organization_id=organization_id,
            as_of=as_of,
            issues=tuple(tally.issues),
            worker_earnings=earnings,
            working_days=tuple(working_days),
            categories=tally.counts(),
            work_orders_checked=len(work_orders),
        )
        logger.info("sync_report_built", extra={
            "organization_id": organization_id,
            "work_orders_checked": len(work_orders),
            "issue_count": len(report.issues),
            "working_day_mismatches": len(report.working_day_mismatches),
        })
        return report

    def _worker_earnings(
        self,
        organization_id: str,
        worker_ids: Sequence[str],
        work_logs: Sequence,
        first_day: date | None,
        as_of: date,
    ) -> tuple[WorkerEarningsCheck, ...]:
        if not worker_ids or first_day is None:
            return ()
        workers = self._store.load_workers(organization_id, worker_ids)
        attendance = self._store.load_attendance(
            organization_id, worker_ids, DateRange(first_day, max(first_day, as_of)),
        )
        return tuple(
            self._checker.check_worker_earnings(
                workers[worker_id], attendance, work_logs, self._billable,
            )
            for worker_id in worker_ids
            if worker_id in workers
        )
