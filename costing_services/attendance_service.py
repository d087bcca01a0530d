"""
costing_services.attendance_service -- Attendance repair workflow.

Responsibility:
    Write worker attendance and trigger recomputation of the work orders
    whose labor depends on it; scan active work orders for working days
    that lack an attendance record.

Architecture position:
    Services -- imperative shell over LaborReconciliationChecker and
    RecalculationOrchestrator.  Reads and writes only through the injected
    ProductionStore.

Invariants enforced:
    - One attendance record per (organization, worker, date); later
      entries in a batch win over earlier ones for the same key.
    - A batch is written in full before any recompute runs, and each
      affected work order is recomputed exactly once per batch.
    - The missing-attendance scan is read-only.

Failure modes:
    - Store errors from upsert_attendance propagate; nothing is recomputed.
    - Recompute failures are recorded per work order in the result and do
      not undo the attendance already written.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from costing_config.bridges import active_work_order_statuses
from costing_engines.reconciliation import MissingAttendanceEntry
from costing_kernel.domain.clock import Clock, SystemClock
from costing_kernel.domain.production import (
    AttendanceEntry,
    WorkerAttendance,
    WorkOrderItem,
)
from costing_kernel.domain.values import as_date
from costing_kernel.logging_config import LogContext, get_logger
from costing_services.recalculation_orchestrator import (
    RecalcFailure,
    RecalcResult,
    RecalculationOrchestrator,
    participant_date_range,
)
from costing_services.store import ProductionStore

logger = get_logger("services.attendance")


@dataclass(frozen=True)
class AttendanceUpdateResult:
    """What an attendance write changed."""

    written: int
    duplicates_dropped: int = 0
    affected_work_orders: tuple[str, ...] = ()
    recalculated: tuple[RecalcResult, ...] = ()
    failures: tuple[RecalcFailure, ...] = ()


@dataclass(frozen=True)
class MissingAttendanceReport:
    """Read-only scan result used for badges and to pre-fill the repair flow."""

    organization_id: str
    as_of: date
    warnings: tuple[MissingAttendanceEntry, ...]
    work_orders_scanned: int = 0

    @property
    def has_missing(self) -> bool:
        return bool(self.warnings)

    def by_worker(self) -> dict[str, tuple[date, ...]]:
        """Distinct missing dates per worker, sorted."""
        grouped: dict[str, set[date]] = {}
        for entry in self.warnings:
            grouped.setdefault(entry.worker_id, set()).add(entry.missing_date)
        return {worker: tuple(sorted(days)) for worker, days in sorted(grouped.items())}


def worker_covers_day(item: WorkOrderItem, worker_id: str, day: date, as_of: date) -> bool:
    """True when ``worker_id`` participates in ``item`` on ``day``."""
    if item.subtasks:
        scopes = [
            (s.participants, s.started_at, s.ended_at) for s in item.subtasks
        ]
    else:
        scopes = [(item.assigned_workers, item.started_at, item.completed_at)]
    for participants, started_at, ended_at in scopes:
        if started_at is None:
            continue
        scope_end = as_date(ended_at) if ended_at is not None else as_of
        for assignment in participants:
            if assignment.worker_id != worker_id:
                continue
            start = as_date(assignment.started_at or started_at)
            end = as_date(assignment.ended_at) if assignment.ended_at else scope_end
            if max(start, as_date(started_at)) <= day <= min(end, scope_end):
                return True
    return False


class AttendanceService:
    """
    Attendance repair and missing-attendance detection.

    Contract:
        Receives the store and the orchestrator via constructor injection;
        the orchestrator's configuration decides which work orders are
        active.
    """

    def __init__(
        self,
        store: ProductionStore,
        orchestrator: RecalculationOrchestrator,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._clock = clock or SystemClock()
        self._active_statuses = active_work_order_statuses(orchestrator.config)

    # ------------------------------------------------------------------
    # Affected work orders
    # ------------------------------------------------------------------

    def affected_work_orders(
        self,
        organization_id: str,
        worker_days: Iterable[tuple[str, date]],
        as_of: date | None = None,
    ) -> tuple[str, ...]:
        """Active work orders in which any (worker, day) participates."""
        as_of = self._clock.resolve_as_of(as_of)
        worker_days = tuple(worker_days)
        affected: list[str] = []
        for work_order in self._store.list_work_orders(organization_id, self._active_statuses):
            items = self._store.load_items_and_subtasks(organization_id, work_order.id)
            if any(
                worker_covers_day(item, worker_id, day, as_of)
                for item in items
                for worker_id, day in worker_days
            ):
                affected.append(work_order.id)
        return tuple(affected)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def mark_attendance_and_recalculate(
        self,
        organization_id: str,
        entry: AttendanceEntry,
        skip_recalculation: bool = False,
        as_of: date | None = None,
    ) -> AttendanceUpdateResult:
        """Upsert one attendance record, then recompute affected work orders.

        With ``skip_recalculation=True`` only the record is written; the
        caller is expected to trigger one recompute after a batch.
        """
        record = WorkerAttendance(
            organization_id=organization_id,
            worker_id=entry.worker_id,
            attendance_date=entry.attendance_date,
            status=entry.status,
            worker_name=entry.worker_name,
        )
        written = self._store.upsert_attendance(organization_id, [record])
        logger.info("attendance_marked", extra={
            "organization_id": organization_id,
            "worker_id": entry.worker_id,
            "attendance_date": entry.attendance_date,
            "status": entry.status.value,
            "skip_recalculation": skip_recalculation,
        })
        if skip_recalculation:
            return AttendanceUpdateResult(written=written)

        affected = self.affected_work_orders(
            organization_id, [(entry.worker_id, entry.attendance_date)], as_of,
        )
        report = self._orchestrator.recalculate_many(organization_id, affected, as_of)
        return AttendanceUpdateResult(
            written=written,
            affected_work_orders=affected,
            recalculated=report.results,
            failures=report.failures,
        )

    def mark_attendance_batch(
        self,
        organization_id: str,
        entries: Sequence[AttendanceEntry],
        work_order_id: str | None = None,
        as_of: date | None = None,
    ) -> AttendanceUpdateResult:
        """Write a batch of attendance entries, then recompute once per work order.

        Entries are de-duplicated on (worker, date), last one wins.  When
        ``work_order_id`` is given only that work order is recomputed;
        otherwise every active work order covering any entry is.
        """
        unique: dict[tuple[str, date], AttendanceEntry] = {}
        for entry in entries:
            unique[(entry.worker_id, entry.attendance_date)] = entry
        dropped = len(entries) - len(unique)

        with LogContext.bind(organization_id=organization_id):
            written = 0
            for entry in unique.values():
                written += self.mark_attendance_and_recalculate(
                    organization_id, entry, skip_recalculation=True,
                ).written

            if work_order_id is not None:
                affected: tuple[str, ...] = (work_order_id,)
            else:
                affected = self.affected_work_orders(organization_id, unique.keys(), as_of)

            report = self._orchestrator.recalculate_many(organization_id, affected, as_of)
            logger.info("attendance_batch_applied", extra={
                "written": written,
                "duplicates_dropped": dropped,
                "affected_work_orders": list(affected),
                "failed": len(report.failures),
            })
        return AttendanceUpdateResult(
            written=written,
            duplicates_dropped=dropped,
            affected_work_orders=affected,
            recalculated=report.results,
            failures=report.failures,
        )

    # ------------------------------------------------------------------
    # Read-only scan
    # ------------------------------------------------------------------

    def check_missing_attendance_for_active_orders(
        self,
        organization_id: str,
        as_of: date | None = None,
    ) -> MissingAttendanceReport:
        """Every working day of started work in active orders lacking attendance."""
        as_of = self._clock.resolve_as_of(as_of)
        checker = self._orchestrator.checker
        holidays = self._store.load_holidays()
        work_orders = self._store.list_work_orders(organization_id, self._active_statuses)

        warnings: list[MissingAttendanceEntry] = []
        for work_order in work_orders:
            items = self._store.load_items_and_subtasks(organization_id, work_order.id)
            worker_ids = sorted({w for item in items for w in item.worker_ids})
            date_range = participant_date_range(items, as_of)
            if not worker_ids or date_range is None:
                continue
            records = self._store.load_attendance(organization_id, worker_ids, date_range)
            lookup = {(r.worker_id, r.attendance_date): r.status for r in records}
            for item in items:
                warnings.extend(
                    checker.find_missing_attendance(work_order, item, lookup, holidays, as_of)
                )

        logger.info("missing_attendance_scan_completed", extra={
            "organization_id": organization_id,
            "work_orders_scanned": len(work_orders),
            "missing_count": len(warnings),
        })
        return MissingAttendanceReport(
            organization_id=organization_id,
            as_of=as_of,
            warnings=tuple(warnings),
            work_orders_scanned=len(work_orders),
        )
