"""
costing_services -- Package init and public API.

Responsibility:
    Stateful orchestration services that compose the pure costing engines
    (costing_engines/) with a ProductionStore, a Clock and the active
    CostingConfig.  This is the **only** layer that may touch persistence
    or use wall-clock time.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        costing_services/ -> costing_engines/  (allowed)
        costing_services/ -> costing_kernel/   (allowed)
        costing_engines/  -> costing_services/ (FORBIDDEN)
        costing_kernel/   -> costing_services/ (FORBIDDEN)

Invariants enforced:
    - Layer isolation: costing_kernel and costing_engines never import
      from this package.
    - DI transparency: services receive their store, clock and config by
      constructor injection.
"""

from costing_kernel.logging_config import get_logger

logger = get_logger("services")

from costing_services.store import InMemoryProductionStore, ProductionStore
from costing_services.sql_store import SqlProductionStore
from costing_services.recalculation_orchestrator import (
    BatchRecalcReport,
    RecalcFailure,
    RecalcResult,
    RecalculationOrchestrator,
    participant_date_range,
)
from costing_services.attendance_service import (
    AttendanceService,
    AttendanceUpdateResult,
    MissingAttendanceReport,
)
from costing_services.sync_report_service import (
    CategoryCount,
    SyncReport,
    SyncReportService,
    WorkingDaysCheck,
)

__all__ = [
    "AttendanceService",
    "AttendanceUpdateResult",
    "BatchRecalcReport",
    "CategoryCount",
    "InMemoryProductionStore",
    "MissingAttendanceReport",
    "ProductionStore",
    "RecalcFailure",
    "RecalcResult",
    "RecalculationOrchestrator",
    "SqlProductionStore",
    "SyncReport",
    "SyncReportService",
    "WorkingDaysCheck",
    "participant_date_range",
]
