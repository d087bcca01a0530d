"""
Module: costing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the canonical import surface for
    costing_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import costing_kernel (and sibling engine modules).
    MUST NOT import costing_services or costing_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      The as-of date is always an explicit parameter supplied by services.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from costing_engines.calendar import count_working_days
    from costing_engines.apportionment import apportion
    from costing_engines.cost_model import LaborCostCalculator
    from costing_engines.reconciliation import LaborReconciliationChecker
"""

from costing_engines.apportionment import apportion
from costing_engines.calendar import (
    DayKind,
    WorkingDayCount,
    classify_day,
    count_working_days,
    working_dates,
)
from costing_engines.cost_model import (
    ItemLabor,
    LaborCharge,
    LaborCostCalculator,
    SubTaskLabor,
    WorkOrderSummary,
    item_labor_cost,
    item_profit,
    profit_margin,
    subtask_labor_cost,
    summarize_work_order,
    validate_item,
    work_log_id,
)
from costing_engines.reconciliation import (
    CheckOutcome,
    CheckState,
    DataQualityFlag,
    FlagCategory,
    LaborReconciliationChecker,
    MissingAttendanceEntry,
    Severity,
    SeverityBands,
    WorkerEarningsCheck,
    classify_severity,
    item_consistency_violations,
)
from costing_engines.tracer import traced_engine

__all__ = [
    # Calendar
    "DayKind",
    "WorkingDayCount",
    "classify_day",
    "count_working_days",
    "working_dates",
    # Apportionment
    "apportion",
    # Cost model
    "ItemLabor",
    "LaborCharge",
    "LaborCostCalculator",
    "SubTaskLabor",
    "WorkOrderSummary",
    "item_labor_cost",
    "item_profit",
    "profit_margin",
    "subtask_labor_cost",
    "summarize_work_order",
    "validate_item",
    "work_log_id",
    # Reconciliation
    "CheckOutcome",
    "CheckState",
    "DataQualityFlag",
    "FlagCategory",
    "LaborReconciliationChecker",
    "MissingAttendanceEntry",
    "Severity",
    "SeverityBands",
    "WorkerEarningsCheck",
    "classify_severity",
    "item_consistency_violations",
    # Tracing
    "traced_engine",
]
