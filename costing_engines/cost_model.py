"""
Labor Cost Model (``costing_engines.cost_model``).

Responsibility
--------------
Pure rollups from calendar presence to money:

* SubTask working days and labor cost (primary worker plus helpers, each
  over their own window and at their own daily rate).
* Item labor cost, either as the sum of its SubTasks or, for items without
  SubTasks, directly from the item's own dates and assigned workers.
* Shared attendance pools: a worker charged on the same day by several
  SubTasks of one item is billed once; the daily rate is apportioned across
  those SubTasks by quantity.
* One ``WorkLog`` per (worker, day, item) with a deterministic id.
* Item profit and margin, work order summaries and status validation.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
The as-of date and the attendance lookup are explicit inputs.

Invariants enforced
-------------------
* Sum of an item's WorkLog daily rates == item labor cost == sum of its
  SubTask labor costs, exactly (apportionment is exact to the cent).
* Same inputs produce identical WorkLogs in identical order.
* Profit is never clamped; margin is 0 when product value is not positive.

Failure modes
-------------
* ``MalformedStateError`` from ``validate_item`` when status implies dates
  that are missing, or dates/quantities are inconsistent.
* ``WorkerNotFoundError`` when a charged worker has no daily rate.
* ``InvalidWeightsError`` propagated from the apportioner.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from costing_engines.apportionment import apportion
from costing_engines.calendar import count_working_days, working_dates
from costing_kernel.domain.production import (
    BILLABLE_ATTENDANCE,
    AttendanceStatus,
    Holiday,
    PausePeriod,
    ProductionStatus,
    SubTask,
    WorkerAssignment,
    WorkLog,
    WorkOrder,
    WorkOrderItem,
    WorkOrderStatus,
)
from costing_kernel.domain.values import ZERO, as_date, round_amount, sum_amounts
from costing_kernel.exceptions import MalformedStateError, WorkerNotFoundError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.cost_model")

WORK_LOG_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "urn:production-costing:work-log")

AttendanceLookup = Mapping[tuple[str, date], AttendanceStatus]


def work_log_id(item_id: str, worker_id: str, work_date: date) -> str:
    """Deterministic WorkLog id for one (item, worker, day)."""
    return str(uuid.uuid5(WORK_LOG_NAMESPACE, f"{item_id}:{worker_id}:{work_date.isoformat()}"))


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LaborCharge:
    """One worker-day charged (in full or in part) to a SubTask or item."""

    worker_id: str
    worker_name: str
    work_date: date
    amount: Decimal


@dataclass(frozen=True)
class SubTaskLabor:
    """Recomputed working days and labor cost for one SubTask."""

    subtask_id: str
    working_days: int
    labor_cost: Decimal
    charges: tuple[LaborCharge, ...] = ()


@dataclass(frozen=True)
class ItemLabor:
    """Recomputed labor for one item: per-SubTask results and fresh WorkLogs."""

    item_id: str
    labor_cost: Decimal
    working_days: int
    subtasks: tuple[SubTaskLabor, ...]
    work_logs: tuple[WorkLog, ...]

    def subtask(self, subtask_id: str) -> SubTaskLabor:
        for result in self.subtasks:
            if result.subtask_id == subtask_id:
                return result
        raise KeyError(subtask_id)


@dataclass(frozen=True)
class WorkOrderSummary:
    """Money and schedule rollup for one work order."""

    work_order_id: str
    status: WorkOrderStatus
    item_count: int
    total_value: Decimal
    material_cost: Decimal
    transport_cost: Decimal
    services_cost: Decimal
    planned_labor_cost: Decimal
    actual_labor_cost: Decimal
    profit: Decimal
    profit_margin: Decimal
    labor_cost_variance: Decimal
    started_at: datetime | None
    completed_at: datetime | None


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class LaborCostCalculator:
    """
    Computes SubTask and item labor from calendar presence.

    Contract:
        Pure given its constructor inputs.  When ``attendance`` is given,
        a calendar working day is charged to a worker only if the worker's
        attendance status for that day is in ``billable_statuses``; when it
        is None every calendar working day is charged.

    Guarantees:
        - Windows end at the earlier of the recorded end and ``as_of``.
        - Helpers are charged over their own window, clipped to the
          SubTask's window, at their own rate.
    """

    def __init__(
        self,
        holidays: Iterable[Holiday | date],
        as_of: date,
        attendance: AttendanceLookup | None = None,
        billable_statuses: frozenset[AttendanceStatus] = BILLABLE_ATTENDANCE,
        organization_id: str = "",
    ):
        self._holidays = tuple(holidays)
        self._as_of = as_of
        self._attendance = attendance
        self._billable = billable_statuses
        self._organization_id = organization_id

    # -- windows ------------------------------------------------------------

    def _window(
        self,
        started_at: datetime | date | None,
        ended_at: datetime | date | None,
    ) -> tuple[date, date] | None:
        if started_at is None:
            return None
        start = as_date(started_at)
        end = as_date(ended_at) if ended_at is not None else self._as_of
        end = min(end, self._as_of)
        if end < start:
            return None
        return start, end

    def _participant_window(
        self,
        assignment: WorkerAssignment,
        parent: tuple[date, date],
    ) -> tuple[date, date] | None:
        start = as_date(assignment.started_at) if assignment.started_at else parent[0]
        end = as_date(assignment.ended_at) if assignment.ended_at else parent[1]
        start, end = max(start, parent[0]), min(end, parent[1])
        if end < start:
            return None
        return start, end

    def _billable_dates(
        self,
        worker_id: str,
        window: tuple[date, date],
        pauses: Sequence[PausePeriod],
    ) -> list[date]:
        dates = working_dates(window[0], window[1], self._holidays, pauses, self._as_of)
        if self._attendance is None:
            return list(dates)
        return [
            d for d in dates
            if self._attendance.get((worker_id, d)) in self._billable
        ]

    def _rate(self, rates: Mapping[str, Decimal], worker_id: str) -> Decimal:
        if worker_id not in rates:
            raise WorkerNotFoundError(self._organization_id, worker_id)
        return round_amount(rates[worker_id])

    def _working_days(
        self,
        window: tuple[date, date] | None,
        pauses: Sequence[PausePeriod],
    ) -> int:
        if window is None:
            return 0
        return count_working_days(
            window[0], window[1], self._holidays, pauses, self._as_of
        ).total

    def _participant_dates(
        self,
        participants: Iterable[WorkerAssignment],
        window: tuple[date, date] | None,
        pauses: Sequence[PausePeriod],
    ) -> dict[str, tuple[str, list[date]]]:
        """worker_id -> (name, billable dates); repeated workers are merged."""
        result: dict[str, tuple[str, list[date]]] = {}
        if window is None:
            return result
        for assignment in participants:
            participant_window = self._participant_window(assignment, window)
            if participant_window is None:
                continue
            dates = self._billable_dates(assignment.worker_id, participant_window, pauses)
            name, known = result.get(assignment.worker_id, (assignment.worker_name, []))
            merged = sorted(set(known) | set(dates))
            result[assignment.worker_id] = (name or assignment.worker_name, merged)
        return result

    # -- public -------------------------------------------------------------

    def subtask_labor(
        self,
        subtask: SubTask,
        rates: Mapping[str, Decimal],
        item_pause_periods: Sequence[PausePeriod] = (),
    ) -> SubTaskLabor:
        """Labor for a single SubTask costed on its own (no shared pools)."""
        pauses = tuple(item_pause_periods) + subtask.pause_periods
        window = self._window(subtask.started_at, subtask.ended_at)
        charges: list[LaborCharge] = []
        for worker_id, (name, dates) in self._participant_dates(
            subtask.participants, window, pauses
        ).items():
            rate = self._rate(rates, worker_id)
            charges.extend(LaborCharge(worker_id, name, d, rate) for d in dates)
        charges.sort(key=lambda c: (c.work_date, c.worker_id))
        return SubTaskLabor(
            subtask_id=subtask.id,
            working_days=self._working_days(window, pauses),
            labor_cost=sum_amounts(c.amount for c in charges),
            charges=tuple(charges),
        )

    def item_labor(self, item: WorkOrderItem, rates: Mapping[str, Decimal]) -> ItemLabor:
        """Recompute every SubTask of an item and the item's WorkLogs."""
        if not item.subtasks:
            return self._direct_item_labor(item, rates)

        # (worker_id, day) -> indices of SubTasks charging that worker-day
        pools: dict[tuple[str, date], list[int]] = defaultdict(list)
        names: dict[str, str] = {}
        working_days: list[int] = []
        for index, subtask in enumerate(item.subtasks):
            pauses = item.pause_periods + subtask.pause_periods
            window = self._window(subtask.started_at, subtask.ended_at)
            working_days.append(self._working_days(window, pauses))
            for worker_id, (name, dates) in self._participant_dates(
                subtask.participants, window, pauses
            ).items():
                names.setdefault(worker_id, name)
                for d in dates:
                    pools[(worker_id, d)].append(index)

        charges: list[list[LaborCharge]] = [[] for _ in item.subtasks]
        work_logs: list[WorkLog] = []
        for (worker_id, day) in sorted(pools, key=lambda k: (k[1], k[0])):
            indices = pools[(worker_id, day)]
            rate = self._rate(rates, worker_id)
            if len(indices) == 1:
                shares: tuple[Decimal, ...] = (rate,)
            else:
                shares = apportion(rate, [item.subtasks[i].quantity for i in indices])
            for i, share in zip(indices, shares):
                charges[i].append(LaborCharge(worker_id, names[worker_id], day, share))
            work_logs.append(self._work_log(item, worker_id, names[worker_id], day, rate))

        results = tuple(
            SubTaskLabor(
                subtask_id=subtask.id,
                working_days=working_days[i],
                labor_cost=sum_amounts(c.amount for c in charges[i]),
                charges=tuple(charges[i]),
            )
            for i, subtask in enumerate(item.subtasks)
        )
        labor_cost = sum_amounts(r.labor_cost for r in results)
        logger.debug("item_labor_computed", extra={
            "item_id": item.id,
            "subtask_count": len(results),
            "work_log_count": len(work_logs),
            "labor_cost": str(labor_cost),
            "shared_pools": sum(1 for v in pools.values() if len(v) > 1),
        })
        return ItemLabor(
            item_id=item.id,
            labor_cost=labor_cost,
            working_days=max(working_days, default=0),
            subtasks=results,
            work_logs=tuple(work_logs),
        )

    def _direct_item_labor(
        self,
        item: WorkOrderItem,
        rates: Mapping[str, Decimal],
    ) -> ItemLabor:
        window = self._window(item.started_at, item.completed_at)
        work_logs: list[WorkLog] = []
        for worker_id, (name, dates) in self._participant_dates(
            item.assigned_workers, window, item.pause_periods
        ).items():
            rate = self._rate(rates, worker_id)
            work_logs.extend(self._work_log(item, worker_id, name, d, rate) for d in dates)
        work_logs.sort(key=lambda w: (w.work_date, w.worker_id))
        return ItemLabor(
            item_id=item.id,
            labor_cost=sum_amounts(w.daily_rate for w in work_logs),
            working_days=self._working_days(window, item.pause_periods),
            subtasks=(),
            work_logs=tuple(work_logs),
        )

    @staticmethod
    def _work_log(
        item: WorkOrderItem,
        worker_id: str,
        worker_name: str,
        day: date,
        rate: Decimal,
    ) -> WorkLog:
        return WorkLog(
            id=work_log_id(item.id, worker_id, day),
            organization_id=item.organization_id,
            work_order_id=item.work_order_id,
            work_order_item_id=item.id,
            worker_id=worker_id,
            worker_name=worker_name,
            work_date=day,
            daily_rate=rate,
        )


# ---------------------------------------------------------------------------
# Pure rollups
# ---------------------------------------------------------------------------


def subtask_labor_cost(
    subtask: SubTask,
    rates: Mapping[str, Decimal],
    holidays: Iterable[Holiday | date],
    as_of: date,
    attendance: AttendanceLookup | None = None,
    item_pause_periods: Sequence[PausePeriod] = (),
    billable_statuses: frozenset[AttendanceStatus] = BILLABLE_ATTENDANCE,
) -> SubTaskLabor:
    """Working days and labor cost of one SubTask."""
    calculator = LaborCostCalculator(holidays, as_of, attendance, billable_statuses)
    return calculator.subtask_labor(subtask, rates, item_pause_periods)


def item_labor_cost(item: WorkOrderItem) -> Decimal:
    """Sum of SubTask labor costs, or the item's own cost when it has none."""
    if not item.subtasks:
        return round_amount(item.actual_labor_cost)
    return sum_amounts(s.actual_labor_cost for s in item.subtasks)


def item_profit(item: WorkOrderItem) -> Decimal:
    """Value minus material, transport, services and labor. Never clamped."""
    return round_amount(
        item.product_value
        - item.material_cost
        - item.transport_share
        - item.services_total
        - item.actual_labor_cost
    )


def _margin(profit: Decimal, value: Decimal) -> Decimal:
    if value <= 0:
        return ZERO
    return round_amount(profit / value * 100)


def profit_margin(item: WorkOrderItem) -> Decimal:
    """Profit as a percentage of product value; 0 when value is not positive."""
    return _margin(item_profit(item), item.product_value)


def _derived_status(work_order: WorkOrder, items: Sequence[WorkOrderItem]) -> WorkOrderStatus:
    if work_order.status is WorkOrderStatus.CANCELLED or not items:
        return work_order.status
    if all(i.status is ProductionStatus.COMPLETED for i in items):
        return WorkOrderStatus.COMPLETED
    if any(i.status is ProductionStatus.IN_PROGRESS for i in items):
        return WorkOrderStatus.IN_PROGRESS
    return work_order.status


def summarize_work_order(
    work_order: WorkOrder,
    items: Sequence[WorkOrderItem],
) -> WorkOrderSummary:
    """Roll item money fields and dates up to the work order."""
    total_value = sum_amounts(i.product_value for i in items)
    actual_labor = sum_amounts(i.actual_labor_cost for i in items)
    planned_labor = sum_amounts(i.planned_labor_cost for i in items)
    profit = sum_amounts(item_profit(i) for i in items)
    starts = [i.started_at for i in items if i.started_at is not None]
    ends = [i.completed_at for i in items if i.completed_at is not None]
    return WorkOrderSummary(
        work_order_id=work_order.id,
        status=_derived_status(work_order, items),
        item_count=len(items),
        total_value=total_value,
        material_cost=sum_amounts(i.material_cost for i in items),
        transport_cost=sum_amounts(i.transport_share for i in items),
        services_cost=sum_amounts(i.services_total for i in items),
        planned_labor_cost=planned_labor,
        actual_labor_cost=actual_labor,
        profit=profit,
        profit_margin=_margin(profit, total_value),
        labor_cost_variance=round_amount(planned_labor - actual_labor),
        started_at=min(starts) if starts else None,
        completed_at=max(ends) if ends else None,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


_STARTED_STATUSES = (ProductionStatus.IN_PROGRESS, ProductionStatus.COMPLETED)


def _check_dates(
    entity_type: str,
    entity_id: str,
    status: ProductionStatus,
    started_at: datetime | None,
    ended_at: datetime | None,
) -> None:
    if status in _STARTED_STATUSES and started_at is None:
        raise MalformedStateError(entity_type, entity_id, f"status {status.value} without start date")
    if status is ProductionStatus.COMPLETED and ended_at is None:
        raise MalformedStateError(entity_type, entity_id, "status completed without end date")
    if started_at is not None and ended_at is not None and as_date(ended_at) < as_date(started_at):
        raise MalformedStateError(entity_type, entity_id, "ends before it starts")


def validate_item(item: WorkOrderItem) -> None:
    """Raise MalformedStateError when the item's status and data disagree."""
    _check_dates("WorkOrderItem", item.id, item.status, item.started_at, item.completed_at)
    for subtask in item.subtasks:
        if subtask.quantity > item.quantity:
            raise MalformedStateError(
                "SubTask", subtask.id,
                f"quantity {subtask.quantity} exceeds item quantity {item.quantity}",
            )
        _check_dates("SubTask", subtask.id, subtask.status, subtask.started_at, subtask.ended_at)
