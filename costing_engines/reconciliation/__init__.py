"""
Reconciliation - Pure labor data-quality checks.

Pure domain types and the LaborReconciliationChecker engine.  The repair
workflow lives in costing_services.attendance_service.
"""

from costing_engines.reconciliation.types import (
    CheckOutcome,
    CheckState,
    DataQualityFlag,
    FlagCategory,
    MissingAttendanceEntry,
    Severity,
    SeverityBands,
    WorkerEarningsCheck,
)

from costing_engines.reconciliation.checker import (
    LaborReconciliationChecker,
    classify_severity,
    item_consistency_violations,
)

__all__ = [
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
]
