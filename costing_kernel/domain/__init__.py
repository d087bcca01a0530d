"""Pure domain layer of the costing kernel: clock, values, production records."""

from costing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from costing_kernel.domain.production import (
    BILLABLE_ATTENDANCE,
    AttendanceEntry,
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
from costing_kernel.domain.values import (
    CENT,
    DEFAULT_TOLERANCE,
    ZERO,
    DateRange,
    amounts_equal,
    as_date,
    round_amount,
    sum_amounts,
    to_decimal,
)

__all__ = [
    "BILLABLE_ATTENDANCE",
    "CENT",
    "DEFAULT_TOLERANCE",
    "ZERO",
    "AttendanceEntry",
    "AttendanceStatus",
    "Clock",
    "DateRange",
    "DeterministicClock",
    "Holiday",
    "PausePeriod",
    "ProductionStatus",
    "SubTask",
    "SystemClock",
    "Worker",
    "WorkerAssignment",
    "WorkerAttendance",
    "WorkLog",
    "WorkOrder",
    "WorkOrderItem",
    "WorkOrderStatus",
    "amounts_equal",
    "as_date",
    "round_amount",
    "sum_amounts",
    "to_decimal",
]
