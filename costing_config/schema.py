"""
Costing configuration schema.

Frozen dataclasses parsed from YAML by the loader.  ``CostingConfig`` is
the runtime artifact returned by ``costing_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class AmountPolicy:
    """Currency, equality tolerance and mismatch severity thresholds."""

    currency: str
    tolerance: Decimal
    severity_medium: Decimal
    severity_high: Decimal


@dataclass(frozen=True)
class AttendancePolicy:
    """Which attendance statuses make a working day chargeable."""

    billable_statuses: tuple[str, ...]
    require_attendance: bool = True


@dataclass(frozen=True)
class RecalculationPolicy:
    """Which work orders the scans and batch jobs treat as active."""

    active_work_order_statuses: tuple[str, ...]


@dataclass(frozen=True)
class CostingConfig:
    """Validated costing configuration with a deterministic checksum."""

    config_id: str
    version: int
    amounts: AmountPolicy
    attendance: AttendancePolicy
    recalculation: RecalculationPolicy
    checksum: str = ""
