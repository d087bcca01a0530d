"""
costing_services.sql_store -- SQLAlchemy adapter for ProductionStore.

Responsibility:
    Implement the ``ProductionStore`` protocol over the ORM models in
    ``costing_kernel.models``.  Every operation runs in its own
    ``session_scope`` transaction.

Architecture position:
    Services -- persistence boundary.  Converts ORM rows to frozen domain
    records with ``to_dto()`` on the way out and writes derived fields back
    on the way in.

Invariants enforced:
    - save_recomputed_state is one transaction: the conditional version
      bump (``UPDATE ... WHERE version = :expected``), the item and
      sub-task cost updates, and the work log replacement commit together
      or roll back together.
    - A version mismatch raises StaleRecalculationError before anything
      else is written.
    - Attendance upserts respect uq_worker_attendance_org_worker_date.

Failure modes:
    - WorkOrderNotFoundError / WorkerNotFoundError for unknown ids.
    - StaleRecalculationError on a version mismatch.
    - SQLAlchemy errors propagate after rollback.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, selectinload, sessionmaker

from costing_kernel.db.engine import session_scope
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
from costing_kernel.models import (
    HolidayModel,
    SubTaskModel,
    WorkerAttendanceModel,
    WorkerModel,
    WorkLogModel,
    WorkOrderItemModel,
    WorkOrderModel,
)

logger = get_logger("services.sql_store")


class SqlProductionStore:
    """
    ProductionStore backed by a relational database.

    Contract:
        Receives a ``sessionmaker`` by constructor injection; each public
        method opens, commits and closes its own session.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._factory = session_factory

    # ------------------------------------------------------------------
    # Seeding (host application side)
    # ------------------------------------------------------------------

    def add_work_order(self, work_order: WorkOrder, items: Sequence[WorkOrderItem] = ()) -> None:
        with session_scope(self._factory) as session:
            model = WorkOrderModel.from_dto(work_order)
            model.items = [WorkOrderItemModel.from_dto(item, i) for i, item in enumerate(items)]
            session.add(model)

    def add_worker(self, worker: Worker) -> None:
        with session_scope(self._factory) as session:
            session.add(WorkerModel.from_dto(worker))

    def add_holiday(self, holiday: Holiday) -> None:
        with session_scope(self._factory) as session:
            session.add(HolidayModel.from_dto(holiday))

    def add_work_logs(self, work_logs: Iterable[WorkLog]) -> None:
        with session_scope(self._factory) as session:
            session.add_all(WorkLogModel.from_dto(log) for log in work_logs)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def _get_work_order(session: Session, organization_id: str, work_order_id: str) -> WorkOrderModel:
        model = session.scalar(
            select(WorkOrderModel).where(
                WorkOrderModel.id == work_order_id,
                WorkOrderModel.organization_id == organization_id,
            )
        )
        if model is None:
            raise WorkOrderNotFoundError(organization_id, work_order_id)
        return model

    def load_work_order(self, organization_id: str, work_order_id: str) -> WorkOrder:
        with session_scope(self._factory) as session:
            return self._get_work_order(session, organization_id, work_order_id).to_dto()

    def list_work_orders(
        self,
        organization_id: str,
        statuses: Iterable[WorkOrderStatus] | None = None,
    ) -> tuple[WorkOrder, ...]:
        stmt = select(WorkOrderModel).where(WorkOrderModel.organization_id == organization_id)
        if statuses is not None:
            stmt = stmt.where(WorkOrderModel.status.in_([s.value for s in statuses]))
        stmt = stmt.order_by(WorkOrderModel.number, WorkOrderModel.id)
        with session_scope(self._factory) as session:
            return tuple(m.to_dto() for m in session.scalars(stmt))

    def load_items_and_subtasks(
        self, organization_id: str, work_order_id: str,
    ) -> tuple[WorkOrderItem, ...]:
        stmt = (
            select(WorkOrderItemModel)
            .where(
                WorkOrderItemModel.work_order_id == work_order_id,
                WorkOrderItemModel.organization_id == organization_id,
            )
            .order_by(WorkOrderItemModel.sort_order, WorkOrderItemModel.id)
            .options(
                selectinload(WorkOrderItemModel.pause_periods),
                selectinload(WorkOrderItemModel.assigned_workers),
                selectinload(WorkOrderItemModel.subtasks).selectinload(SubTaskModel.pause_periods),
                selectinload(WorkOrderItemModel.subtasks).selectinload(SubTaskModel.helpers),
            )
        )
        with session_scope(self._factory) as session:
            self._get_work_order(session, organization_id, work_order_id)
            return tuple(m.to_dto() for m in session.scalars(stmt))

    def load_work_logs(
        self, organization_id: str, item_ids: Iterable[str],
    ) -> tuple[WorkLog, ...]:
        ids = sorted(set(item_ids))
        if not ids:
            return ()
        stmt = (
            select(WorkLogModel)
            .where(
                WorkLogModel.organization_id == organization_id,
                WorkLogModel.work_order_item_id.in_(ids),
            )
            .order_by(
                WorkLogModel.work_order_item_id, WorkLogModel.work_date, WorkLogModel.worker_id,
            )
        )
        with session_scope(self._factory) as session:
            return tuple(m.to_dto() for m in session.scalars(stmt))

    def load_attendance(
        self,
        organization_id: str,
        worker_ids: Iterable[str],
        date_range: DateRange | None,
    ) -> tuple[WorkerAttendance, ...]:
        ids = sorted(set(worker_ids))
        if not ids:
            return ()
        stmt = select(WorkerAttendanceModel).where(
            WorkerAttendanceModel.organization_id == organization_id,
            WorkerAttendanceModel.worker_id.in_(ids),
        )
        if date_range is not None:
            stmt = stmt.where(
                WorkerAttendanceModel.attendance_date >= date_range.start,
                WorkerAttendanceModel.attendance_date <= date_range.end,
            )
        stmt = stmt.order_by(WorkerAttendanceModel.attendance_date, WorkerAttendanceModel.worker_id)
        with session_scope(self._factory) as session:
            return tuple(m.to_dto() for m in session.scalars(stmt))

    def load_holidays(self) -> tuple[Holiday, ...]:
        with session_scope(self._factory) as session:
            return tuple(
                m.to_dto()
                for m in session.scalars(select(HolidayModel).order_by(HolidayModel.holiday_date))
            )

    def load_worker(self, organization_id: str, worker_id: str) -> Worker:
        with session_scope(self._factory) as session:
            model = session.scalar(
                select(WorkerModel).where(
                    WorkerModel.id == worker_id,
                    WorkerModel.organization_id == organization_id,
                )
            )
            if model is None:
                raise WorkerNotFoundError(organization_id, worker_id)
            return model.to_dto()

    def load_workers(
        self, organization_id: str, worker_ids: Iterable[str],
    ) -> dict[str, Worker]:
        ids = sorted(set(worker_ids))
        if not ids:
            return {}
        stmt = select(WorkerModel).where(
            WorkerModel.organization_id == organization_id,
            WorkerModel.id.in_(ids),
        )
        with session_scope(self._factory) as session:
            return {m.id: m.to_dto() for m in session.scalars(stmt)}

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
        new_version = expected_version + 1
        with session_scope(self._factory) as session:
            bumped = session.execute(
                update(WorkOrderModel)
                .where(
                    WorkOrderModel.id == work_order_id,
                    WorkOrderModel.organization_id == organization_id,
                    WorkOrderModel.version == expected_version,
                )
                .values(version=new_version)
                .execution_options(synchronize_session=False)
            )
            if bumped.rowcount != 1:
                current = self._get_work_order(session, organization_id, work_order_id)
                raise StaleRecalculationError(work_order_id, expected_version, current.version)

            for item in items:
                session.execute(
                    update(WorkOrderItemModel)
                    .where(
                        WorkOrderItemModel.id == item.id,
                        WorkOrderItemModel.work_order_id == work_order_id,
                    )
                    .values(actual_labor_cost=item.actual_labor_cost)
                    .execution_options(synchronize_session=False)
                )
                for subtask in item.subtasks:
                    session.execute(
                        update(SubTaskModel)
                        .where(SubTaskModel.id == subtask.id, SubTaskModel.item_id == item.id)
                        .values(
                            working_days=subtask.working_days,
                            actual_labor_cost=subtask.actual_labor_cost,
                        )
                        .execution_options(synchronize_session=False)
                    )

            item_ids = [item.id for item in items]
            if item_ids:
                session.execute(
                    delete(WorkLogModel)
                    .where(
                        WorkLogModel.organization_id == organization_id,
                        WorkLogModel.work_order_item_id.in_(item_ids),
                    )
                    .execution_options(synchronize_session=False)
                )
            session.add_all(WorkLogModel.from_dto(log) for log in work_logs)

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
        with session_scope(self._factory) as session:
            for entry in entries:
                existing = session.scalar(
                    select(WorkerAttendanceModel).where(
                        WorkerAttendanceModel.organization_id == organization_id,
                        WorkerAttendanceModel.worker_id == entry.worker_id,
                        WorkerAttendanceModel.attendance_date == entry.attendance_date,
                    )
                )
                if existing is None:
                    session.add(WorkerAttendanceModel.from_dto(entry))
                    session.flush()
                else:
                    existing.status = entry.status.value
                    if entry.worker_name:
                        existing.worker_name = entry.worker_name
        return len(entries)
