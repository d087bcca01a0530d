"""
Production Domain Records (``costing_kernel.domain.production``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of production costing: work
orders, work order items, sub-tasks, pause periods, worker assignments,
workers, work logs, attendance records and holidays.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Produced by
store adapters at the repository boundary, consumed by the engines, and
returned (updated via ``dataclasses.replace``) by the orchestrator.

Invariants enforced
-------------------
* All records are ``frozen=True`` (immutable after construction).
* All monetary fields are ``Decimal`` -- NEVER ``float``.
* Quantities are positive.

Failure modes
-------------
* Construction with a non-positive quantity or a pause period that ends
  before it starts raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from costing_kernel.domain.values import ZERO, as_date


class WorkOrderStatus(str, Enum):
    """Work order lifecycle states."""

    DRAFT = "draft"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ProductionStatus(str, Enum):
    """Status shared by work order items and sub-tasks."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AttendanceStatus(str, Enum):
    """Daily attendance states, stored with their shop-floor names."""

    PRESENT = "Prisutan"
    FIELD = "Teren"
    ABSENT = "Odsutan"
    SICK = "Bolovanje"
    LEAVE = "Odmor"


BILLABLE_ATTENDANCE: frozenset[AttendanceStatus] = frozenset({
    AttendanceStatus.PRESENT,
    AttendanceStatus.FIELD,
})


@dataclass(frozen=True)
class PausePeriod:
    """An interval in which an item or sub-task accrues no working days.

    ``ended_at=None`` means the entity is still paused as of today.
    """

    started_at: datetime
    ended_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.ended_at is not None and as_date(self.ended_at) < as_date(self.started_at):
            raise ValueError(
                f"Pause period ends ({self.ended_at}) before it starts ({self.started_at})"
            )

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    def covers(self, day: date, as_of: date) -> bool:
        """True when ``day`` falls inside the pause (open pauses run to as_of)."""
        end = as_date(self.ended_at) if self.ended_at is not None else as_of
        return as_date(self.started_at) <= day <= end


@dataclass(frozen=True)
class WorkerAssignment:
    """A worker participating in an item or sub-task.

    ``started_at``/``ended_at`` narrow the participation window; when unset
    the window of the owning item or sub-task applies.
    """

    worker_id: str
    worker_name: str = ""
    started_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass(frozen=True)
class SubTask:
    """A worker-assignable slice of an item's production quantity."""

    id: str
    item_id: str
    quantity: int
    status: ProductionStatus = ProductionStatus.PENDING
    worker_id: str | None = None
    worker_name: str = ""
    helpers: tuple[WorkerAssignment, ...] = ()
    started_at: datetime | None = None
    ended_at: datetime | None = None
    is_paused: bool = False
    pause_periods: tuple[PausePeriod, ...] = ()
    working_days: int = 0
    actual_labor_cost: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"SubTask {self.id} quantity must be positive, got {self.quantity}")

    @property
    def participants(self) -> tuple[WorkerAssignment, ...]:
        """Primary worker (if any) followed by helpers, in recorded order."""
        primary: tuple[WorkerAssignment, ...] = ()
        if self.worker_id:
            primary = (WorkerAssignment(self.worker_id, self.worker_name),)
        return primary + self.helpers


@dataclass(frozen=True)
class WorkOrderItem:
    """One produced product line within a work order."""

    id: str
    work_order_id: str
    organization_id: str
    product_id: str
    product_name: str
    quantity: int
    status: ProductionStatus = ProductionStatus.PENDING
    started_at: datetime | None = None
    completed_at: datetime | None = None
    is_paused: bool = False
    pause_periods: tuple[PausePeriod, ...] = ()
    subtasks: tuple[SubTask, ...] = ()
    assigned_workers: tuple[WorkerAssignment, ...] = ()
    product_value: Decimal = ZERO
    material_cost: Decimal = ZERO
    transport_share: Decimal = ZERO
    services_total: Decimal = ZERO
    planned_labor_cost: Decimal = ZERO
    actual_labor_cost: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError(f"Item {self.id} quantity must be positive, got {self.quantity}")

    @property
    def worker_ids(self) -> frozenset[str]:
        """Every worker charged on this item, via sub-tasks or direct assignment."""
        ids = {a.worker_id for a in self.assigned_workers}
        for subtask in self.subtasks:
            ids.update(p.worker_id for p in subtask.participants)
        return frozenset(ids)


@dataclass(frozen=True)
class WorkOrder:
    """A production batch grouping items under a due date and status."""

    id: str
    organization_id: str
    number: str
    status: WorkOrderStatus = WorkOrderStatus.DRAFT
    created_date: date | None = None
    due_date: date | None = None
    production_steps: tuple[str, ...] = ()
    version: int = 0


@dataclass(frozen=True)
class Worker:
    """A worker and the daily rate charged for one billable day."""

    id: str
    organization_id: str
    name: str
    daily_rate: Decimal = ZERO
    is_active: bool = True


@dataclass(frozen=True)
class WorkLog:
    """One billed labor day: one worker, one date, one rate, one item."""

    id: str
    organization_id: str
    work_order_id: str
    work_order_item_id: str
    worker_id: str
    worker_name: str
    work_date: date
    daily_rate: Decimal


@dataclass(frozen=True)
class WorkerAttendance:
    """Daily presence record for a worker, independent of any item."""

    organization_id: str
    worker_id: str
    attendance_date: date
    status: AttendanceStatus
    worker_name: str = ""

    @property
    def is_billable(self) -> bool:
        return self.status in BILLABLE_ATTENDANCE


@dataclass(frozen=True)
class AttendanceEntry:
    """An attendance assignment submitted by an operator or the repair flow."""

    worker_id: str
    attendance_date: date
    status: AttendanceStatus
    worker_name: str = ""


@dataclass(frozen=True)
class Holiday:
    """A date excluded from working-day counts regardless of weekday."""

    holiday_date: date
    name: str = ""
