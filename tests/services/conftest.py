"""
Shared production data for the service tests.

Seeds two in-progress work orders over the first half of January 2024
(2024-01-01 is a Monday and a holiday):

    wo-1 / i1  s1: w1 (50/day)  qty 3, 01-01 .. 01-07 completed
               s2: w2 (100/day) qty 2, 01-08 .. open
    wo-2 / i2  no sub-tasks, w1 assigned, 01-08 .. open
    wo-3       draft, not started

With calendar-only costing and as-of 2024-01-10: s1 = 4 days = 200,
s2 = 3 days = 300, i1 = 500, i2 = 3 days = 150.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from costing_kernel.domain.production import (
    Holiday,
    ProductionStatus,
    SubTask,
    Worker,
    WorkerAssignment,
    WorkOrder,
    WorkOrderItem,
    WorkOrderStatus,
)
from costing_services import (
    AttendanceService,
    InMemoryProductionStore,
    RecalculationOrchestrator,
    SyncReportService,
)

ORG_ID = "org-1"


def ts(day: int) -> datetime:
    return datetime(2024, 1, day, 8, tzinfo=UTC)


WORKERS = (
    Worker(id="w1", organization_id=ORG_ID, name="Amir", daily_rate=Decimal("50.00")),
    Worker(id="w2", organization_id=ORG_ID, name="Lejla", daily_rate=Decimal("100.00")),
)

HOLIDAYS = (Holiday(date(2024, 1, 1), "Nova godina"),)


def build_work_orders() -> list[tuple[WorkOrder, tuple[WorkOrderItem, ...]]]:
    wo1 = WorkOrder(id="wo-1", organization_id=ORG_ID, number="RN-001",
                    status=WorkOrderStatus.IN_PROGRESS)
    i1 = WorkOrderItem(
        id="i1", work_order_id="wo-1", organization_id=ORG_ID,
        product_id="p-table", product_name="Trpezarijski sto", quantity=5,
        status=ProductionStatus.IN_PROGRESS, started_at=ts(1),
        product_value=Decimal("2000.00"), material_cost=Decimal("500.00"),
        planned_labor_cost=Decimal("600.00"),
        subtasks=(
            SubTask(id="s1", item_id="i1", quantity=3, status=ProductionStatus.COMPLETED,
                    worker_id="w1", worker_name="Amir", started_at=ts(1), ended_at=ts(7)),
            SubTask(id="s2", item_id="i1", quantity=2, status=ProductionStatus.IN_PROGRESS,
                    worker_id="w2", worker_name="Lejla", started_at=ts(8)),
        ),
    )
    wo2 = WorkOrder(id="wo-2", organization_id=ORG_ID, number="RN-002",
                    status=WorkOrderStatus.IN_PROGRESS)
    i2 = WorkOrderItem(
        id="i2", work_order_id="wo-2", organization_id=ORG_ID,
        product_id="p-chair", product_name="Stolica", quantity=4,
        status=ProductionStatus.IN_PROGRESS, started_at=ts(8),
        product_value=Decimal("400.00"),
        assigned_workers=(WorkerAssignment("w1", "Amir"),),
    )
    wo3 = WorkOrder(id="wo-3", organization_id=ORG_ID, number="RN-003")
    i3 = WorkOrderItem(
        id="i3", work_order_id="wo-3", organization_id=ORG_ID,
        product_id="p-bed", product_name="Krevet", quantity=1,
    )
    return [(wo1, (i1,)), (wo2, (i2,)), (wo3, (i3,))]


def seed(store) -> None:
    for worker in WORKERS:
        store.add_worker(worker)
    for holiday in HOLIDAYS:
        store.add_holiday(holiday)
    for work_order, items in build_work_orders():
        store.add_work_order(work_order, items)


@pytest.fixture
def store():
    memory_store = InMemoryProductionStore()
    seed(memory_store)
    return memory_store


@pytest.fixture
def orchestrator(store, clock, calendar_config):
    """Orchestrator that charges every calendar working day."""
    return RecalculationOrchestrator(store, clock, calendar_config)


@pytest.fixture
def attendance_orchestrator(store, clock, default_config):
    """Orchestrator that charges only billable attendance days."""
    return RecalculationOrchestrator(store, clock, default_config)


@pytest.fixture
def attendance_service(store, attendance_orchestrator, clock):
    return AttendanceService(store, attendance_orchestrator, clock)


@pytest.fixture
def sync_report_service(store, orchestrator, clock):
    return SyncReportService(store, orchestrator, clock)
