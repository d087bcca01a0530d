"""
costing_services.store -- Production store interface and in-memory adapter.

Responsibility:
    Define the ``ProductionStore`` protocol through which the recalculation
    orchestrator and the attendance services read production data and
    write recomputed state, and provide a thread-safe in-memory adapter.

Architecture position:
    Services -- persistence boundary.  The engines never see a store; the
    services load frozen domain records through it and hand them to the
    engines.  ``SqlProductionStore`` (costing_services.sql_store) is the
    relational adapter.

Invariants enforced:
    - Every call except ``load_holidays`` is scoped by an explicit
      ``organization_id``; records of other organizations are invisible.
    - ``save_recomputed_state`` is atomic per work order: items, sub-tasks,
      the replaced work logs and the version bump are applied together or
      not at all.
    - Optimistic concurrency: ``save_recomputed_state`` raises
      ``StaleRecalculationError`` when the stored version differs from
      ``expected_version``; nothing is written.
    - Attendance is unique per (organization, worker, date); upserts
      replace the existing status.

Failure modes:
    - WorkOrderNotFoundError / WorkerNotFoundError for unknown ids.
    - StaleRecalculationError on a version mismatch.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date
from typing import Protocol

from costing_kernel.domain.production import (
    Holiday,
    Worker,
    WorkerAttendance,
    WorkLog,
    WorkOrder,
    WorkOrderItem,
    WorkOrderStatus,
)
from costing_kernel.domain.values import DateRange
from costing_kernel.exceptions import (
    StaleRecalculationError,
    WorkerNotFoundError,
    WorkOrderNotFoundError,
)
from costing_kernel.logging_config import get_logger

logger = get_logger("services.store")


class ProductionStore(Protocol):
    """Repository interface consumed by the costing services."""

    def load_work_order(self, organization_id: str, work_order_id: str) -> WorkOrder: ...

    def list_work_orders(
        self,
        organization_id: str,
        statuses: Iterable[WorkOrderStatus] | None = None,
    ) -> tuple[WorkOrder, ...]: ...

    def load_items_and_subtasks(
        self, organization_id: str, work_order_id: str,
    ) -> tuple[WorkOrderItem, ...]: ...

    def load_work_logs(
        self, organization_id: str, item_ids: Iterable[str],
    ) -> tuple[WorkLog, ...]: ...

    def load_attendance(
        self,
        organization_id: str,
        worker_ids: Iterable[str],
        date_range: DateRange | None,
    ) -> tuple[WorkerAttendance, ...]: ...

    def load_holidays(self) -> tuple[Holiday, ...]: ...

    def load_worker(self, organization_id: str, worker_id: str) -> Worker: ...

    def load_workers(
        self, organization_id: str, worker_ids: Iterable[str],
    ) -> dict[str, Worker]: ...

    def save_recomputed_state(
        self,
        organization_id: str,
        work_order_id: str,
        items: Sequence[WorkOrderItem],
        work_logs: Sequence[WorkLog],
        expected_version: int,
    ) -> int: ...

    def upsert_attendance(
        self, organization_id: str, entries: Sequence[WorkerAttendance],
    ) -> int: ...


class InMemoryProductionStore:
    """
    Thread-safe in-memory ProductionStore.

    Contract:
        Holds frozen domain records in dictionaries guarded by one lock.
        Used by tests and by hosts that embed the engine without a database.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._work_orders: dict[str, WorkOrder] = {}
        self._items: dict[str, list[WorkOrderItem]] = {}
        self._work_logs: dict[str, WorkLog] = {}
        self._attendance: dict[tuple[str, str, date], WorkerAttendance] = {}
        self._holidays: dict[date, Holiday] = {}
        self._workers: dict[str, Worker] = {}

    # ------------------------------------------------------------------
    # Seeding (host application side)
    # ------------------------------------------------------------------

    def add_work_order(self, work_order: WorkOrder, items: Sequence[WorkOrderItem] = ()) -> None:
        with self._lock:
            self._work_orders[work_order.id] = work_order
            self._items[work_order.id] = list(items)

    def add_worker(self, worker: Worker) -> None:
        with self._lock:
            self._workers[worker.id] = worker

    def add_holiday(self, holiday: Holiday) -> None:
        with self._lock:
            self._holidays[holiday.holiday_date] = holiday

    def add_work_logs(self, work_logs: Iterable[WorkLog]) -> None:
        with self._lock:
            for log in work_logs:
                self._work_logs[log.id] = log

    def bump_version(self, organization_id: str, work_order_id: str) -> int:
        """Simulate a concurrent committed write to a work order."""
        with self._lock:
            current = self.load_work_order(organization_id, work_order_id)
            self._work_orders[work_order_id] = replace(current, version=current.version + 1)
            return current.version + 1

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_work_order(self, organization_id: str, work_order_id: str) -> WorkOrder:
        with self._lock:
            work_order = self._work_orders.get(work_order_id)
        if work_order is None or work_order.organization_id != organization_id:
            raise WorkOrderNotFoundError(organization_id, work_order_id)
        return work_order

    def list_work_orders(
        self,
        organization_id: str,
        statuses: Iterable[WorkOrderStatus] | None = None,
    ) -> tuple[WorkOrder, ...]:
        wanted = frozenset(statuses) if statuses is not None else None
        with self._lock:
            orders = [
                wo for wo in self._work_orders.values()
                if wo.organization_id == organization_id
                and (wanted is None or wo.status in wanted)
            ]
        return tuple(sorted(orders, key=lambda wo: (wo.number, wo.id)))

    def load_items_and_subtasks(
        self, organization_id: str, work_order_id: str,
    ) -> tuple[WorkOrderItem, ...]:
        self.load_work_order(organization_id, work_order_id)
        with self._lock:
            return tuple(self._items.get(work_order_id, ()))

    def load_work_logs(
        self, organization_id: str, item_ids: Iterable[str],
    ) -> tuple[WorkLog, ...]:
        wanted = frozenset(item_ids)
        with self._lock:
            logs = [
                log for log in self._work_logs.values()
                if log.organization_id == organization_id and log.work_order_item_id in wanted
            ]
        return tuple(sorted(logs, key=lambda w: (w.work_order_item_id, w.work_date, w.worker_id)))

    def load_attendance(
        self,
        organization_id: str,
        worker_ids: Iterable[str],
        date_range: DateRange | None,
    ) -> tuple[WorkerAttendance, ...]:
        wanted = frozenset(worker_ids)
        with self._lock:
            records = [
                a for (org, worker_id, day), a in self._attendance.items()
                if org == organization_id
                and worker_id in wanted
                and (date_range is None or day in date_range)
            ]
        return tuple(sorted(records, key=lambda a: (a.attendance_date, a.worker_id)))

    def load_holidays(self) -> tuple[Holiday, ...]:
        with self._lock:
            return tuple(sorted(self._holidays.values(), key=lambda h: h.holiday_date))

    def load_worker(self, organization_id: str, worker_id: str) -> Worker:
        with self._lock:
            worker = self._workers.get(worker_id)
        if worker is None or worker.organization_id != organization_id:
            raise WorkerNotFoundError(organization_id, worker_id)
        return worker

    def load_workers(
        self, organization_id: str, worker_ids: Iterable[str],
    ) -> dict[str, Worker]:
        with self._lock:
            return {
                worker_id: self._workers[worker_id]
                for worker_id in sorted(set(worker_ids))
                if worker_id in self._workers
                and self._workers[worker_id].organization_id == organization_id
            }

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_recomputed_state(
        self,
        organization_id: str,
        work_order_id: str,
        items: Sequence[WorkOrderItem],
        work_logs: Sequence[WorkLog],
        expected_version: int,
    ) -> int:
        with self._lock:
            work_order = self.load_work_order(organization_id, work_order_id)
            if work_order.version != expected_version:
                raise StaleRecalculationError(work_order_id, expected_version, work_order.version)

            updated = {item.id: item for item in items}
            self._items[work_order_id] = [
                updated.get(item.id, item) for item in self._items.get(work_order_id, [])
            ]
            self._work_logs = {
                log_id: log for log_id, log in self._work_logs.items()
                if log.work_order_item_id not in updated
            }
            for log in work_logs:
                self._work_logs[log.id] = log

            new_version = expected_version + 1
            self._work_orders[work_order_id] = replace(work_order, version=new_version)

        logger.debug("recomputed_state_saved", extra={
            "work_order_id": work_order_id,
            "item_count": len(items),
            "work_log_count": len(work_logs),
            "version": new_version,
        })
        return new_version

    def upsert_attendance(
        self, organization_id: str, entries: Sequence[WorkerAttendance],
    ) -> int:
        for entry in entries:
            if entry.organization_id != organization_id:
                raise ValueError(
                    f"Attendance for organization {entry.organization_id} "
                    f"submitted under {organization_id}"
                )
        with self._lock:
            for entry in entries:
                key = (organization_id, entry.worker_id, entry.attendance_date)
                self._attendance[key] = entry
        return len(entries)
