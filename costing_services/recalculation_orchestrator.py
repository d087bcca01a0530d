"""
costing_services.recalculation_orchestrator -- Work order labor recompute.

Responsibility:
    The cascade entry point invoked after any attendance edit or item state
    change: load a work order, flag pre-existing data-quality problems,
    recompute sub-task working days and costs, regenerate work logs, roll
    costs up to items, verify the hard invariants and persist atomically.

Architecture position:
    Services -- stateful orchestration over engines + store.
    Composes LaborCostCalculator, LaborReconciliationChecker and
    summarize_work_order with an injected ProductionStore, Clock and
    CostingConfig.

Invariants enforced:
    - Labor-cost sync and sub-task distribution hold for every item of a
      recompute before anything is written.
    - Single writer per work order: an in-process lock serializes
      recomputes of the same work order; the store's optimistic version
      check rejects a recompute whose inputs went stale.
    - Idempotence: unchanged inputs yield identical work logs and costs.
    - The as-of date comes from the injected Clock unless given explicitly.

Failure modes:
    - WorkOrderNotFoundError / WorkerNotFoundError for unknown ids.
    - MalformedStateError when an item's status implies missing data.
    - ConsistencyViolationError (fatal, nothing persisted) when a hard
      invariant fails right after the recompute.
    - StaleRecalculationError when the work order changed concurrently.
    - recalculate_many records any CostingError per work order and
      continues with the rest.
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from costing_config import get_active_config
from costing_config.bridges import billable_statuses, severity_bands
from costing_config.schema import CostingConfig
from costing_engines.cost_model import (
    LaborCostCalculator,
    WorkOrderSummary,
    item_profit,
    summarize_work_order,
    validate_item,
)
from costing_engines.reconciliation import (
    DataQualityFlag,
    LaborReconciliationChecker,
    item_consistency_violations,
)
from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.domain.production import (
    AttendanceStatus,
    SubTask,
    WorkLog,
    WorkOrderItem,
)
from costing_kernel.domain.values import DateRange, as_date
from costing_kernel.exceptions import (
    ConsistencyViolationError,
    CostingError,
    StaleRecalculationError,
    WorkerNotFoundError,
)
from costing_kernel.logging_config import LogContext, get_logger
from costing_services.store import ProductionStore

logger = get_logger("services.recalculation")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one committed work order recompute."""

    work_order_id: str
    version: int
    as_of: date
    updated_items: tuple[WorkOrderItem, ...]
    updated_subtasks: tuple[SubTask, ...]
    work_logs: tuple[WorkLog, ...]
    issues: tuple[DataQualityFlag, ...]
    summary: WorkOrderSummary
    item_profits: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class RecalcFailure:
    """A work order whose recompute failed inside a batch."""

    work_order_id: str
    error_code: str
    message: str


@dataclass(frozen=True)
class BatchRecalcReport:
    """Results of recalculate_many: successes and recorded failures."""

    results: tuple[RecalcResult, ...] = ()
    failures: tuple[RecalcFailure, ...] = ()

    @property
    def succeeded(self) -> tuple[str, ...]:
        return tuple(r.work_order_id for r in self.results)

    @property
    def failed(self) -> tuple[str, ...]:
        return tuple(f.work_order_id for f in self.failures)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures


class _WorkOrderLock:
    """threading.Lock wrapper that a WeakValueDictionary can hold."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> _WorkOrderLock:
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self._lock.release()


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class RecalculationOrchestrator:
    """
    Recomputes and persists labor costs for work orders.

    Contract:
        Receives the store, clock and configuration via constructor
        injection.  All engine calls are pure; the only mutation is
        ``ProductionStore.save_recomputed_state``.
    Guarantees:
        - A successful call has persisted items, sub-tasks and work logs
          that satisfy both hard invariants.
        - A failed call has persisted nothing.
    Non-goals:
        - Does not retry persistence failures; recompute is idempotent so
          callers may retry safely.
    """

    def __init__(
        self,
        store: ProductionStore,
        clock: Clock | None = None,
        config: CostingConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()
        self._checker = LaborReconciliationChecker(severity_bands(self._config))
        self._billable = billable_statuses(self._config)
        self._locks: weakref.WeakValueDictionary[tuple[str, str], _WorkOrderLock] = (
            weakref.WeakValueDictionary()
        )
        self._locks_guard = threading.Lock()

    @property
    def config(self) -> CostingConfig:
        return self._config

    @property
    def checker(self) -> LaborReconciliationChecker:
        return self._checker

    def _lock_for(self, organization_id: str, work_order_id: str) -> _WorkOrderLock:
        """Lock shared by every caller currently working on the work order.

        Entries live only while some caller holds a reference, so idle work
        orders do not accumulate locks.
        """
        key = (organization_id, work_order_id)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _WorkOrderLock()
                self._locks[key] = lock
            return lock

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    def _load_rates(
        self, organization_id: str, worker_ids: Sequence[str],
    ) -> dict[str, Decimal]:
        workers = self._store.load_workers(organization_id, worker_ids)
        missing = [w for w in worker_ids if w not in workers]
        if missing:
            raise WorkerNotFoundError(organization_id, missing[0])
        return {worker_id: worker.daily_rate for worker_id, worker in workers.items()}

    def _load_attendance(
        self,
        organization_id: str,
        items: Sequence[WorkOrderItem],
        worker_ids: Sequence[str],
        as_of: date,
    ) -> dict[tuple[str, date], AttendanceStatus] | None:
        if not self._config.attendance.require_attendance:
            return None
        date_range = participant_date_range(items, as_of)
        if not worker_ids or date_range is None:
            return {}
        records = self._store.load_attendance(organization_id, worker_ids, date_range)
        return {(r.worker_id, r.attendance_date): r.status for r in records}

    def _pre_existing_issues(
        self,
        items: Sequence[WorkOrderItem],
        work_logs: Sequence[WorkLog],
    ) -> tuple[DataQualityFlag, ...]:
        flags: list[DataQualityFlag] = []
        for item in items:
            for outcome in (
                self._checker.check_labor_cost_sync(item, work_logs),
                self._checker.check_subtask_distribution(item),
            ):
                if outcome.flag is not None:
                    flags.append(outcome.flag)
        return tuple(flags)

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def recalculate_work_order(
        self,
        organization_id: str,
        work_order_id: str,
        as_of: date | None = None,
    ) -> RecalcResult:
        """Recompute labor for one work order and persist it atomically.

        Raises:
            WorkOrderNotFoundError, WorkerNotFoundError, MalformedStateError,
            ConsistencyViolationError, StaleRecalculationError.
        """
        as_of = self._clock.resolve_as_of(as_of)
        with LogContext.bind(organization_id=organization_id, work_order_id=work_order_id):
            with self._lock_for(organization_id, work_order_id):
                return self._recalculate(organization_id, work_order_id, as_of)

    def _recalculate(
        self,
        organization_id: str,
        work_order_id: str,
        as_of: date,
    ) -> RecalcResult:
        store = self._store
        work_order = store.load_work_order(organization_id, work_order_id)
        items = store.load_items_and_subtasks(organization_id, work_order_id)
        logger.info("recalculation_started", extra={
            "work_order_number": work_order.number,
            "version": work_order.version,
            "item_count": len(items),
            "as_of": as_of,
        })

        for item in items:
            validate_item(item)

        existing_logs = store.load_work_logs(organization_id, [i.id for i in items])
        holidays = store.load_holidays()
        worker_ids = sorted({w for item in items for w in item.worker_ids})
        rates = self._load_rates(organization_id, worker_ids)
        attendance = self._load_attendance(organization_id, items, worker_ids, as_of)

        issues = self._pre_existing_issues(items, existing_logs)
        if issues:
            logger.warning("recalculation_pre_existing_issues", extra={
                "issue_count": len(issues),
                "categories": sorted({f.category.value for f in issues}),
            })

        calculator = LaborCostCalculator(
            holidays, as_of, attendance, self._billable, organization_id=organization_id,
        )
        updated_items: list[WorkOrderItem] = []
        work_logs: list[WorkLog] = []
        violations: list[str] = []
        for item in items:
            labor = calculator.item_labor(item, rates)
            subtasks = tuple(
                replace(
                    subtask,
                    working_days=labor.subtask(subtask.id).working_days,
                    actual_labor_cost=labor.subtask(subtask.id).labor_cost,
                )
                for subtask in item.subtasks
            )
            updated = replace(item, subtasks=subtasks, actual_labor_cost=labor.labor_cost)
            violations.extend(item_consistency_violations(self._checker, updated, labor.work_logs))
            updated_items.append(updated)
            work_logs.extend(labor.work_logs)

        if violations:
            logger.critical("recalculation_consistency_violation", extra={
                "violations": violations,
            })
            raise ConsistencyViolationError(work_order_id, tuple(violations))

        try:
            version = store.save_recomputed_state(
                organization_id, work_order_id, updated_items, work_logs, work_order.version,
            )
        except StaleRecalculationError as exc:
            logger.warning("recalculation_stale", extra={
                "expected_version": exc.expected_version,
                "actual_version": exc.actual_version,
            })
            raise

        summary = summarize_work_order(work_order, updated_items)
        logger.info("recalculation_completed", extra={
            "version": version,
            "work_log_count": len(work_logs),
            "actual_labor_cost": summary.actual_labor_cost,
            "profit": summary.profit,
        })
        return RecalcResult(
            work_order_id=work_order_id,
            version=version,
            as_of=as_of,
            updated_items=tuple(updated_items),
            updated_subtasks=tuple(s for item in updated_items for s in item.subtasks),
            work_logs=tuple(work_logs),
            issues=issues,
            summary=summary,
            item_profits={item.id: item_profit(item) for item in updated_items},
        )

    def recalculate_many(
        self,
        organization_id: str,
        work_order_ids: Iterable[str],
        as_of: date | None = None,
    ) -> BatchRecalcReport:
        """Recompute several work orders; a failure in one does not stop the rest."""
        as_of = self._clock.resolve_as_of(as_of)
        results: list[RecalcResult] = []
        failures: list[RecalcFailure] = []
        for work_order_id in work_order_ids:
            try:
                results.append(self.recalculate_work_order(organization_id, work_order_id, as_of))
            except CostingError as exc:
                logger.error("recalculation_failed", extra={
                    "work_order_id": work_order_id,
                    "error_code": exc.code,
                    "error": str(exc),
                })
                failures.append(RecalcFailure(work_order_id, exc.code, str(exc)))

        logger.info("batch_recalculation_completed", extra={
            "organization_id": organization_id,
            "succeeded": len(results),
            "failed": len(failures),
        })
        return BatchRecalcReport(results=tuple(results), failures=tuple(failures))


def participant_date_range(
    items: Sequence[WorkOrderItem],
    as_of: date,
) -> DateRange | None:
    """Dates from the earliest recorded start through ``as_of``; None if nothing started."""
    starts = []
    for item in items:
        if item.started_at is not None:
            starts.append(as_date(item.started_at))
        starts.extend(as_date(a.started_at) for a in item.assigned_workers if a.started_at)
        for subtask in item.subtasks:
            if subtask.started_at is not None:
                starts.append(as_date(subtask.started_at))
            starts.extend(as_date(h.started_at) for h in subtask.helpers if h.started_at)
    starts = [d for d in starts if d <= as_of]
    if not starts:
        return None
    return DateRange(min(starts), as_of)
