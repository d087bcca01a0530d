"""
Labor reconciliation domain types.

Pure frozen dataclasses and enums for comparing the two independently
recorded sources of labor truth (daily attendance and per-item work logs)
against derived item and sub-task costs.

Used by LaborReconciliationChecker (pure engine), the recalculation
orchestrator, the attendance repair service and the sync report service.

Architecture: costing_engines/reconciliation -- pure domain, zero I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from costing_kernel.domain.values import DEFAULT_TOLERANCE


# =============================================================================
# Enums
# =============================================================================


class Severity(str, Enum):
    """Severity of a data-quality flag."""

    INFO = "info"       # Advisory, never an error
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CheckState(str, Enum):
    """Terminal state of a single check."""

    CONSISTENT = "consistent"
    FLAGGED = "flagged"


class FlagCategory(str, Enum):
    """Which check produced a flag."""

    LABOR_COST_SYNC = "labor_cost_sync"
    SUBTASK_DISTRIBUTION = "subtask_distribution"
    MISSING_WORK_LOGS = "missing_work_logs"
    MISSING_LABOR_COST = "missing_labor_cost"
    MISSING_ATTENDANCE = "missing_attendance"
    WORKER_EARNINGS = "worker_earnings"


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class SeverityBands:
    """Tolerance and thresholds for amount-mismatch severity.

    A difference within ``tolerance`` is consistent.  Above it, the
    severity is HIGH when the difference exceeds ``high``, MEDIUM when it
    exceeds ``medium``, otherwise LOW.
    """

    tolerance: Decimal = DEFAULT_TOLERANCE
    medium: Decimal = Decimal("10")
    high: Decimal = Decimal("100")

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be non-negative, got {self.tolerance}")
        if not self.tolerance <= self.medium <= self.high:
            raise ValueError(
                f"severity bands must satisfy tolerance <= medium <= high, "
                f"got {self.tolerance}, {self.medium}, {self.high}"
            )


# =============================================================================
# Output types
# =============================================================================


@dataclass(frozen=True)
class DataQualityFlag:
    """One advisory or error finding on existing data.

    Never raised; accumulated into reports.  ``expected`` is the value the
    reference source implies and ``actual`` the value stored on the item.
    """

    category: FlagCategory
    severity: Severity
    reason: str
    work_order_id: str
    item_id: str | None = None
    item_name: str = ""
    subtask_id: str | None = None
    worker_id: str | None = None
    expected: Decimal | None = None
    actual: Decimal | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    @property
    def difference(self) -> Decimal | None:
        if self.expected is None or self.actual is None:
            return None
        return abs(self.actual - self.expected)


@dataclass(frozen=True)
class CheckOutcome:
    """Result of one check on one entity: CONSISTENT or FLAGGED(flag)."""

    category: FlagCategory
    state: CheckState
    flag: DataQualityFlag | None = None

    @property
    def is_consistent(self) -> bool:
        return self.state is CheckState.CONSISTENT

    @classmethod
    def consistent(cls, category: FlagCategory) -> CheckOutcome:
        return cls(category=category, state=CheckState.CONSISTENT)

    @classmethod
    def flagged(cls, flag: DataQualityFlag) -> CheckOutcome:
        return cls(category=flag.category, state=CheckState.FLAGGED, flag=flag)


@dataclass(frozen=True)
class MissingAttendanceEntry:
    """A (worker, working day) implied by active work with no attendance record."""

    worker_id: str
    worker_name: str
    work_order_id: str
    work_order_number: str
    item_id: str
    item_name: str
    missing_date: date
    subtask_id: str | None = None


@dataclass(frozen=True)
class WorkerEarningsCheck:
    """Attendance-implied earnings vs. logged earnings for one worker.

    Advisory only: a worker may split a day across several items or work
    on items outside the scanned work orders.
    """

    worker_id: str
    worker_name: str
    attendance_days: int
    daily_rate: Decimal
    expected_earnings: Decimal
    logged_earnings: Decimal
    tolerance: Decimal = DEFAULT_TOLERANCE

    @property
    def difference(self) -> Decimal:
        return abs(self.expected_earnings - self.logged_earnings)

    @property
    def matches(self) -> bool:
        return self.difference <= self.tolerance
