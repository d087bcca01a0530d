"""
Configuration Loader (``costing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``costing_config.schema`` dataclasses.  Runtime callers use
``costing_config.get_active_config()``; this module is its internal
tooling.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Attendance and work-order statuses must name known enum values.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid amounts or statuses  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from costing_config.schema import (
    AmountPolicy,
    AttendancePolicy,
    CostingConfig,
    RecalculationPolicy,
)
from costing_kernel.domain.production import AttendanceStatus, WorkOrderStatus


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse a non-negative Decimal from a YAML scalar."""
    if isinstance(value, bool):
        raise ValueError(f"{field}: expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"{field}: invalid number {value!r}") from e
    if result < 0:
        raise ValueError(f"{field}: must be non-negative, got {result}")
    return result


def _parse_statuses(values: Any, enum_cls: type, field: str) -> tuple[str, ...]:
    if not isinstance(values, list) or not values:
        raise ValueError(f"{field}: expected a non-empty list")
    known = {member.value for member in enum_cls}
    for value in values:
        if value not in known:
            raise ValueError(f"{field}: unknown status {value!r}; expected one of {sorted(known)}")
    return tuple(values)


def parse_amounts(data: dict[str, Any]) -> AmountPolicy:
    severity = data.get("severity", {})
    policy = AmountPolicy(
        currency=str(data["currency"]),
        tolerance=parse_decimal(data["tolerance"], "amounts.tolerance"),
        severity_medium=parse_decimal(severity["medium"], "amounts.severity.medium"),
        severity_high=parse_decimal(severity["high"], "amounts.severity.high"),
    )
    if not policy.tolerance <= policy.severity_medium <= policy.severity_high:
        raise ValueError(
            "amounts: expected tolerance <= severity.medium <= severity.high, got "
            f"{policy.tolerance}, {policy.severity_medium}, {policy.severity_high}"
        )
    return policy


def parse_attendance(data: dict[str, Any]) -> AttendancePolicy:
    return AttendancePolicy(
        billable_statuses=_parse_statuses(
            data["billable_statuses"], AttendanceStatus, "attendance.billable_statuses",
        ),
        require_attendance=bool(data.get("require_attendance", True)),
    )


def parse_recalculation(data: dict[str, Any]) -> RecalculationPolicy:
    return RecalculationPolicy(
        active_work_order_statuses=_parse_statuses(
            data["active_work_order_statuses"], WorkOrderStatus,
            "recalculation.active_work_order_statuses",
        ),
    )


def parse_config(data: dict[str, Any]) -> CostingConfig:
    """Parse a full configuration document; the checksum covers ``data``."""
    return CostingConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        amounts=parse_amounts(data["amounts"]),
        attendance=parse_attendance(data["attendance"]),
        recalculation=parse_recalculation(data["recalculation"]),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
