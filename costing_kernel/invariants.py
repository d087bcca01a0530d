"""
Costing Invariants Contract.

These invariants are structural law for the costing core. No configuration
value may switch them off; configuration only tunes the tolerance and the
severity bands used when reporting them.

HARD_INVARIANTS selects the checks item_consistency_violations runs after
each recompute.  The others are enforced by the calendar and apportionment
engines and by RecalculationOrchestrator.
"""

from enum import Enum, unique


@unique
class CostingInvariant(str, Enum):
    """Non-configurable invariants enforced by the costing core."""

    CALENDAR_PARTITION = "calendar_partition"
    """Every day in a range is classified exactly once:
    working + weekend + holiday + paused == days in range."""

    APPORTIONMENT_EXACTNESS = "apportionment_exactness"
    """Apportioned shares sum exactly to the total, to the cent."""

    LABOR_COST_SYNC = "labor_cost_sync"
    """After a recompute, an item's labor cost equals the sum of its work
    log daily rates within the equality tolerance."""

    SUBTASK_DISTRIBUTION = "subtask_distribution"
    """After a recompute, an item's labor cost equals the sum of its
    sub-task labor costs within the equality tolerance."""

    RECOMPUTE_IDEMPOTENCE = "recompute_idempotence"
    """Recomputing with unchanged inputs yields identical work logs and
    costs."""

    SINGLE_WRITER = "single_writer"
    """Writes for one work order are serialized; a stale recompute never
    overwrites a newer one."""


# Invariants that abort persistence when violated right after a recompute.
HARD_INVARIANTS: frozenset[CostingInvariant] = frozenset({
    CostingInvariant.LABOR_COST_SYNC,
    CostingInvariant.SUBTASK_DISTRIBUTION,
})

ALL_COSTING_INVARIANTS: frozenset[CostingInvariant] = frozenset(CostingInvariant)
