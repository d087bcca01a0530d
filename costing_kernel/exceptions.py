"""
Typed Exception Hierarchy for the Costing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the costing core (UI handlers, batch jobs, the attendance repair
flow) must react differently to a bad weight list, a half-filled work order
item, and a bug in the recompute itself.  Parsing message strings for that
is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        orchestrator.recalculate_work_order(org_id, work_order_id)
    except MalformedStateError as e:
        show_operator(e.entity_type, e.entity_id, e.reason)
    except ConsistencyViolationError as e:
        page_developers(e.code, e.work_order_id, e.violations)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CostingError:

    CostingError (base)
    |
    +-- ApportionmentError
    |   +-- InvalidWeightsError
    |
    +-- StateError
    |   +-- MalformedStateError
    |   +-- WorkOrderNotFoundError
    |   +-- WorkerNotFoundError
    |
    +-- ConsistencyError
    |   +-- ConsistencyViolationError
    |
    +-- ConcurrencyError
        +-- StaleRecalculationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                    | When Raised
----------------|-------------------------|---------------------------------------
Apportionment   | INVALID_WEIGHTS         | Zero/negative/empty weight list
----------------|-------------------------|---------------------------------------
State           | MALFORMED_STATE         | Status implies data that is missing
                | WORK_ORDER_NOT_FOUND    | Work order ID unknown for the tenant
                | WORKER_NOT_FOUND        | Participant has no Worker record
----------------|-------------------------|---------------------------------------
Consistency     | CONSISTENCY_VIOLATION   | Hard invariant failed right after
                |                         | this engine's own recompute (bug)
----------------|-------------------------|---------------------------------------
Concurrency     | STALE_RECALCULATION     | Work order changed while recomputing

Data-quality problems found on *existing* data are NOT exceptions; they are
returned as ``DataQualityFlag`` records (see costing_engines.reconciliation).
"""


class CostingError(Exception):
    """
    Base exception for all costing kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "COSTING_ERROR"


# Apportionment


class ApportionmentError(CostingError):
    """Base exception for apportionment errors."""

    code: str = "APPORTIONMENT_ERROR"


class InvalidWeightsError(ApportionmentError):
    """
    Weights cannot be used to split an amount.

    Raised for an empty weight list, any negative weight, or a zero total
    weight.  This always indicates an upstream data error; the apportioner
    never guesses an allocation.
    """

    code: str = "INVALID_WEIGHTS"

    def __init__(self, weights: tuple, reason: str):
        self.weights = tuple(str(w) for w in weights)
        self.reason = reason
        super().__init__(f"Invalid apportionment weights {list(self.weights)}: {reason}")


# State


class StateError(CostingError):
    """Base exception for invalid or missing production state."""

    code: str = "STATE_ERROR"


class MalformedStateError(StateError):
    """
    An item or sub-task is missing data its status implies should exist.

    Reported to the caller, never auto-repaired and never retried.
    """

    code: str = "MALFORMED_STATE"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Malformed {entity_type} {entity_id}: {reason}")


class WorkOrderNotFoundError(StateError):
    """Work order does not exist in the given organization."""

    code: str = "WORK_ORDER_NOT_FOUND"

    def __init__(self, organization_id: str, work_order_id: str):
        self.organization_id = organization_id
        self.work_order_id = work_order_id
        super().__init__(
            f"Work order {work_order_id} not found in organization {organization_id}"
        )


class WorkerNotFoundError(StateError):
    """A worker referenced by a sub-task or assignment has no Worker record."""

    code: str = "WORKER_NOT_FOUND"

    def __init__(self, organization_id: str, worker_id: str):
        self.organization_id = organization_id
        self.worker_id = worker_id
        super().__init__(
            f"Worker {worker_id} not found in organization {organization_id}"
        )


# Consistency


class ConsistencyError(CostingError):
    """Base exception for invariant failures."""

    code: str = "CONSISTENCY_ERROR"


class ConsistencyViolationError(ConsistencyError):
    """
    A hard invariant failed immediately after this engine's own recompute.

    Fatal and internal-only: it signals a bug in the recompute logic, aborts
    the write for the current work order, and must never persist partial
    results.  ``violations`` holds one human-readable line per failed check.
    """

    code: str = "CONSISTENCY_VIOLATION"

    def __init__(self, work_order_id: str, violations: tuple[str, ...]):
        self.work_order_id = work_order_id
        self.violations = tuple(violations)
        super().__init__(
            f"Recompute of work order {work_order_id} violated "
            f"{len(self.violations)} invariant(s): " + "; ".join(self.violations)
        )


# Concurrency


class ConcurrencyError(CostingError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleRecalculationError(ConcurrencyError):
    """
    The work order was modified by another recompute while this one ran.

    The later-committed recompute wins; this one aborts without writing.
    Safe to retry because recompute is idempotent.
    """

    code: str = "STALE_RECALCULATION"

    def __init__(self, work_order_id: str, expected_version: int, actual_version: int):
        self.work_order_id = work_order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Work order {work_order_id} changed during recompute: "
            f"expected version {expected_version}, found {actual_version}"
        )
