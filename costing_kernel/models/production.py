"""
Production ORM Persistence Models (``costing_kernel.models.production``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass records defined
    in ``costing_kernel.domain.production``.  Each ORM class mirrors a
    record and provides ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Kernel > Models** -- persistence companions to the pure domain records.
    Inherits from ``TrackedBase`` which provides id (string PK), created_at
    and updated_at.

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float;
      ``to_dto()`` quantizes them back to cents.
    - Enum fields stored as String(50) containing the enum .value string.
    - One work log per (item, worker, date): uq_work_log_item_worker_date.
    - One attendance record per (organization, worker, date):
      uq_worker_attendance_org_worker_date.
    - Pause periods and worker assignments belong to exactly one item or
      one sub-task; ``sort_order`` preserves their recorded order.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from costing_kernel.db.base import ID_LENGTH, TrackedBase
from costing_kernel.domain.production import (
    AttendanceStatus,
    Holiday,
    PausePeriod,
    ProductionStatus,
    SubTask,
    Worker,
    WorkerAssignment,
    WorkerAttendance,
    WorkLog,
    WorkOrder,
    WorkOrderItem,
    WorkOrderStatus,
)
from costing_kernel.domain.values import round_amount

# ---------------------------------------------------------------------------
# WorkerModel
# ---------------------------------------------------------------------------

class WorkerModel(TrackedBase):
    """ORM model for ``Worker`` -- a worker and their daily rate."""

    __tablename__ = "workers"

    organization_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_worker_organization", "organization_id"),
    )

    def to_dto(self) -> Worker:
        return Worker(
            id=self.id,
            organization_id=self.organization_id,
            name=self.name,
            daily_rate=round_amount(self.daily_rate),
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto: Worker) -> "WorkerModel":
        return cls(
            id=dto.id,
            organization_id=dto.organization_id,
            name=dto.name,
            daily_rate=dto.daily_rate,
            is_active=dto.is_active,
        )

    def __repr__(self) -> str:
        return f"<WorkerModel {self.id}: {self.name} @ {self.daily_rate}>"


# ---------------------------------------------------------------------------
# HolidayModel
# ---------------------------------------------------------------------------

class HolidayModel(TrackedBase):
    """ORM model for ``Holiday`` -- globally excluded from working days."""

    __tablename__ = "holidays"

    holiday_date: Mapped[date] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(200), default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("holiday_date", name="uq_holiday_date"),
    )

    def to_dto(self) -> Holiday:
        return Holiday(holiday_date=self.holiday_date, name=self.name)

    @classmethod
    def from_dto(cls, dto: Holiday) -> "HolidayModel":
        return cls(holiday_date=dto.holiday_date, name=dto.name)


# ---------------------------------------------------------------------------
# Owned children: pause periods and worker assignments
# ---------------------------------------------------------------------------

class PausePeriodModel(TrackedBase):
    """ORM model for ``PausePeriod``, owned by an item or a sub-task."""

    __tablename__ = "pause_periods"

    item_id: Mapped[str | None] = mapped_column(
        ForeignKey("work_order_items.id", ondelete="CASCADE"), nullable=True,
    )
    subtask_id: Mapped[str | None] = mapped_column(
        ForeignKey("sub_tasks.id", ondelete="CASCADE"), nullable=True,
    )
    started_at: Mapped[datetime] = mapped_column(nullable=False)
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def to_dto(self) -> PausePeriod:
        return PausePeriod(started_at=self.started_at, ended_at=self.ended_at)

    @classmethod
    def from_dto(cls, dto: PausePeriod, sort_order: int) -> "PausePeriodModel":
        return cls(started_at=dto.started_at, ended_at=dto.ended_at, sort_order=sort_order)


class WorkAssignmentModel(TrackedBase):
    """ORM model for ``WorkerAssignment``.

    Item-level rows are the workers of an item without sub-tasks;
    sub-task rows are helpers.
    """

    __tablename__ = "work_assignments"

    item_id: Mapped[str | None] = mapped_column(
        ForeignKey("work_order_items.id", ondelete="CASCADE"), nullable=True,
    )
    subtask_id: Mapped[str | None] = mapped_column(
        ForeignKey("sub_tasks.id", ondelete="CASCADE"), nullable=True,
    )
    worker_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    worker_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_work_assignment_worker", "worker_id"),
    )

    def to_dto(self) -> WorkerAssignment:
        return WorkerAssignment(
            worker_id=self.worker_id,
            worker_name=self.worker_name,
            started_at=self.started_at,
            ended_at=self.ended_at,
        )

    @classmethod
    def from_dto(cls, dto: WorkerAssignment, sort_order: int) -> "WorkAssignmentModel":
        return cls(
            worker_id=dto.worker_id,
            worker_name=dto.worker_name,
            started_at=dto.started_at,
            ended_at=dto.ended_at,
            sort_order=sort_order,
        )


# ---------------------------------------------------------------------------
# WorkOrderModel
# ---------------------------------------------------------------------------

class WorkOrderModel(TrackedBase):
    """
    ORM model for ``WorkOrder``.

    Contract:
        ``version`` is the optimistic-concurrency counter; it is incremented
        only by a committed recompute (see SqlProductionStore).
    """

    __tablename__ = "work_orders"

    organization_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    number: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    created_date: Mapped[date | None] = mapped_column(nullable=True)
    due_date: Mapped[date | None] = mapped_column(nullable=True)
    production_steps: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    version: Mapped[int] = mapped_column(default=0, nullable=False)

    items: Mapped[list["WorkOrderItemModel"]] = relationship(
        back_populates="work_order",
        cascade="all, delete-orphan",
        order_by="WorkOrderItemModel.sort_order",
    )

    __table_args__ = (
        Index("idx_work_order_org_status", "organization_id", "status"),
    )

    def to_dto(self) -> WorkOrder:
        return WorkOrder(
            id=self.id,
            organization_id=self.organization_id,
            number=self.number,
            status=WorkOrderStatus(self.status),
            created_date=self.created_date,
            due_date=self.due_date,
            production_steps=tuple(self.production_steps or ()),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: WorkOrder) -> "WorkOrderModel":
        return cls(
            id=dto.id,
            organization_id=dto.organization_id,
            number=dto.number,
            status=dto.status.value,
            created_date=dto.created_date,
            due_date=dto.due_date,
            production_steps=list(dto.production_steps),
            version=dto.version,
        )

    def __repr__(self) -> str:
        return f"<WorkOrderModel {self.number} ({self.status}) v{self.version}>"


# ---------------------------------------------------------------------------
# WorkOrderItemModel
# ---------------------------------------------------------------------------

class WorkOrderItemModel(TrackedBase):
    """ORM model for ``WorkOrderItem`` with its sub-tasks, pauses and workers."""

    __tablename__ = "work_order_items"

    work_order_id: Mapped[str] = mapped_column(
        ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False,
    )
    organization_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    product_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    product_value: Mapped[Decimal] = mapped_column(nullable=False)
    material_cost: Mapped[Decimal] = mapped_column(nullable=False)
    transport_share: Mapped[Decimal] = mapped_column(nullable=False)
    services_total: Mapped[Decimal] = mapped_column(nullable=False)
    planned_labor_cost: Mapped[Decimal] = mapped_column(nullable=False)
    actual_labor_cost: Mapped[Decimal] = mapped_column(nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    work_order: Mapped[WorkOrderModel] = relationship(back_populates="items")
    subtasks: Mapped[list["SubTaskModel"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="SubTaskModel.sort_order",
    )
    pause_periods: Mapped[list[PausePeriodModel]] = relationship(
        primaryjoin="PausePeriodModel.item_id == WorkOrderItemModel.id",
        cascade="all",
        order_by=PausePeriodModel.sort_order,
    )
    assigned_workers: Mapped[list[WorkAssignmentModel]] = relationship(
        primaryjoin="WorkAssignmentModel.item_id == WorkOrderItemModel.id",
        cascade="all",
        order_by=WorkAssignmentModel.sort_order,
    )

    __table_args__ = (
        Index("idx_work_order_item_work_order", "work_order_id"),
    )

    def to_dto(self) -> WorkOrderItem:
        return WorkOrderItem(
            id=self.id,
            work_order_id=self.work_order_id,
            organization_id=self.organization_id,
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=self.quantity,
            status=ProductionStatus(self.status),
            started_at=self.started_at,
            completed_at=self.completed_at,
            is_paused=self.is_paused,
            pause_periods=tuple(p.to_dto() for p in self.pause_periods),
            subtasks=tuple(s.to_dto() for s in self.subtasks),
            assigned_workers=tuple(a.to_dto() for a in self.assigned_workers),
            product_value=round_amount(self.product_value),
            material_cost=round_amount(self.material_cost),
            transport_share=round_amount(self.transport_share),
            services_total=round_amount(self.services_total),
            planned_labor_cost=round_amount(self.planned_labor_cost),
            actual_labor_cost=round_amount(self.actual_labor_cost),
        )

    @classmethod
    def from_dto(cls, dto: WorkOrderItem, sort_order: int = 0) -> "WorkOrderItemModel":
        return cls(
            id=dto.id,
            work_order_id=dto.work_order_id,
            organization_id=dto.organization_id,
            product_id=dto.product_id,
            product_name=dto.product_name,
            quantity=dto.quantity,
            status=dto.status.value,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            is_paused=dto.is_paused,
            product_value=dto.product_value,
            material_cost=dto.material_cost,
            transport_share=dto.transport_share,
            services_total=dto.services_total,
            planned_labor_cost=dto.planned_labor_cost,
            actual_labor_cost=dto.actual_labor_cost,
            sort_order=sort_order,
            pause_periods=[
                PausePeriodModel.from_dto(p, i) for i, p in enumerate(dto.pause_periods)
            ],
            subtasks=[SubTaskModel.from_dto(s, i) for i, s in enumerate(dto.subtasks)],
            assigned_workers=[
                WorkAssignmentModel.from_dto(a, i) for i, a in enumerate(dto.assigned_workers)
            ],
        )

    def __repr__(self) -> str:
        return f"<WorkOrderItemModel {self.id}: {self.product_name} x{self.quantity}>"


# ---------------------------------------------------------------------------
# SubTaskModel
# ---------------------------------------------------------------------------

class SubTaskModel(TrackedBase):
    """ORM model for ``SubTask``; ``helpers`` are sub-task assignment rows."""

    __tablename__ = "sub_tasks"

    item_id: Mapped[str] = mapped_column(
        ForeignKey("work_order_items.id", ondelete="CASCADE"), nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    worker_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True)
    worker_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    working_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    actual_labor_cost: Mapped[Decimal] = mapped_column(nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    item: Mapped[WorkOrderItemModel] = relationship(back_populates="subtasks")
    pause_periods: Mapped[list[PausePeriodModel]] = relationship(
        primaryjoin="PausePeriodModel.subtask_id == SubTaskModel.id",
        cascade="all",
        order_by=PausePeriodModel.sort_order,
    )
    helpers: Mapped[list[WorkAssignmentModel]] = relationship(
        primaryjoin="WorkAssignmentModel.subtask_id == SubTaskModel.id",
        cascade="all",
        order_by=WorkAssignmentModel.sort_order,
    )

    __table_args__ = (
        Index("idx_sub_task_item", "item_id"),
        Index("idx_sub_task_worker", "worker_id"),
    )

    def to_dto(self) -> SubTask:
        return SubTask(
            id=self.id,
            item_id=self.item_id,
            quantity=self.quantity,
            status=ProductionStatus(self.status),
            worker_id=self.worker_id,
            worker_name=self.worker_name,
            helpers=tuple(h.to_dto() for h in self.helpers),
            started_at=self.started_at,
            ended_at=self.ended_at,
            is_paused=self.is_paused,
            pause_periods=tuple(p.to_dto() for p in self.pause_periods),
            working_days=self.working_days,
            actual_labor_cost=round_amount(self.actual_labor_cost),
        )

    @classmethod
    def from_dto(cls, dto: SubTask, sort_order: int = 0) -> "SubTaskModel":
        return cls(
            id=dto.id,
            item_id=dto.item_id,
            quantity=dto.quantity,
            status=dto.status.value,
            worker_id=dto.worker_id,
            worker_name=dto.worker_name,
            started_at=dto.started_at,
            ended_at=dto.ended_at,
            is_paused=dto.is_paused,
            working_days=dto.working_days,
            actual_labor_cost=dto.actual_labor_cost,
            sort_order=sort_order,
            pause_periods=[
                PausePeriodModel.from_dto(p, i) for i, p in enumerate(dto.pause_periods)
            ],
            helpers=[WorkAssignmentModel.from_dto(h, i) for i, h in enumerate(dto.helpers)],
        )


# ---------------------------------------------------------------------------
# WorkLogModel
# ---------------------------------------------------------------------------

class WorkLogModel(TrackedBase):
    """
    ORM model for ``WorkLog`` -- one billed labor day against an item.

    Contract:
        Replaced wholesale per item by each committed recompute; never
        edited in place.
    """

    __tablename__ = "work_logs"

    organization_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    work_order_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    work_order_item_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    worker_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    worker_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    work_date: Mapped[date] = mapped_column(nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "work_order_item_id", "worker_id", "work_date",
            name="uq_work_log_item_worker_date",
        ),
        Index("idx_work_log_org_item", "organization_id", "work_order_item_id"),
        Index("idx_work_log_worker_date", "worker_id", "work_date"),
    )

    def to_dto(self) -> WorkLog:
        return WorkLog(
            id=self.id,
            organization_id=self.organization_id,
            work_order_id=self.work_order_id,
            work_order_item_id=self.work_order_item_id,
            worker_id=self.worker_id,
            worker_name=self.worker_name,
            work_date=self.work_date,
            daily_rate=round_amount(self.daily_rate),
        )

    @classmethod
    def from_dto(cls, dto: WorkLog) -> "WorkLogModel":
        return cls(
            id=dto.id,
            organization_id=dto.organization_id,
            work_order_id=dto.work_order_id,
            work_order_item_id=dto.work_order_item_id,
            worker_id=dto.worker_id,
            worker_name=dto.worker_name,
            work_date=dto.work_date,
            daily_rate=dto.daily_rate,
        )


# ---------------------------------------------------------------------------
# WorkerAttendanceModel
# ---------------------------------------------------------------------------

class WorkerAttendanceModel(TrackedBase):
    """ORM model for ``WorkerAttendance`` -- unique per org, worker and date."""

    __tablename__ = "worker_attendance"

    organization_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    worker_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)
    worker_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    attendance_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "worker_id", "attendance_date",
            name="uq_worker_attendance_org_worker_date",
        ),
    )

    def to_dto(self) -> WorkerAttendance:
        return WorkerAttendance(
            organization_id=self.organization_id,
            worker_id=self.worker_id,
            attendance_date=self.attendance_date,
            status=AttendanceStatus(self.status),
            worker_name=self.worker_name,
        )

    @classmethod
    def from_dto(cls, dto: WorkerAttendance) -> "WorkerAttendanceModel":
        return cls(
            organization_id=dto.organization_id,
            worker_id=dto.worker_id,
            worker_name=dto.worker_name,
            attendance_date=dto.attendance_date,
            status=dto.status.value,
        )
