"""SQLAlchemy ORM models for the production costing store."""

from costing_kernel.models.production import (
    HolidayModel,
    PausePeriodModel,
    SubTaskModel,
    WorkAssignmentModel,
    WorkerAttendanceModel,
    WorkerModel,
    WorkLogModel,
    WorkOrderItemModel,
    WorkOrderModel,
)

__all__ = [
    "HolidayModel",
    "PausePeriodModel",
    "SubTaskModel",
    "WorkAssignmentModel",
    "WorkerAttendanceModel",
    "WorkerModel",
    "WorkLogModel",
    "WorkOrderItemModel",
    "WorkOrderModel",
]
