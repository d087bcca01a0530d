"""
Bridges from CostingConfig to engine inputs.

The engines never import costing_config; services call these helpers to
translate the configuration into engine parameter types.
"""

from __future__ import annotations

from costing_config.schema import CostingConfig
from costing_engines.reconciliation.types import SeverityBands
from costing_kernel.domain.production import AttendanceStatus, WorkOrderStatus


def severity_bands(config: CostingConfig) -> SeverityBands:
    return SeverityBands(
        tolerance=config.amounts.tolerance,
        medium=config.amounts.severity_medium,
        high=config.amounts.severity_high,
    )


def billable_statuses(config: CostingConfig) -> frozenset[AttendanceStatus]:
    return frozenset(AttendanceStatus(s) for s in config.attendance.billable_statuses)


def active_work_order_statuses(config: CostingConfig) -> frozenset[WorkOrderStatus]:
    return frozenset(
        WorkOrderStatus(s) for s in config.recalculation.active_work_order_statuses
    )
