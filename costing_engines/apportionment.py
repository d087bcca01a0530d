"""
Module: costing_engines.apportionment
Responsibility:
    Split a monetary total across weighted shares so the parts sum exactly
    to the whole, using largest-remainder (Hamilton) rounding to cents.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import costing_kernel domain values and exceptions.

Invariants enforced:
    - sum(shares) == round_amount(total) exactly, to the cent.
    - Each non-zero share has the sign of the total.
    - Residual cents go to the largest fractional remainders; ties go to
      the earliest-listed weight.
    - Deterministic: identical inputs always produce identical shares.

Failure modes:
    - InvalidWeightsError on an empty weight list, any negative weight, or
      a zero total weight.

Usage:
    from costing_engines.apportionment import apportion

    apportion(Decimal("100.00"), [3, 7])      # (Decimal("30.00"), Decimal("70.00"))
    apportion(Decimal("10.00"), [1, 1, 1])    # (3.34, 3.33, 3.33)
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from fractions import Fraction

from costing_engines.tracer import traced_engine
from costing_kernel.domain.values import CENT, round_amount, to_decimal
from costing_kernel.exceptions import InvalidWeightsError
from costing_kernel.logging_config import get_logger

logger = get_logger("engines.apportionment")


def _validate_weights(weights: Sequence[Decimal | int]) -> tuple[Fraction, ...]:
    if not weights:
        raise InvalidWeightsError(tuple(weights), "no weights given")
    converted = tuple(Fraction(to_decimal(w)) for w in weights)
    if any(w < 0 for w in converted):
        raise InvalidWeightsError(tuple(weights), "negative weight")
    if sum(converted) == 0:
        raise InvalidWeightsError(tuple(weights), "weights sum to zero")
    return converted


@traced_engine("apportionment", "1.0", fingerprint_fields=("total", "weights"))
def apportion(
    total: Decimal | int | str,
    weights: Sequence[Decimal | int],
) -> tuple[Decimal, ...]:
    """
    Apportion ``total`` across ``weights`` with largest-remainder rounding.

    The total is first rounded to cents (ROUND_HALF_UP).  Each exact share
    ``|total| * w / sum(w)`` is truncated to whole cents; the cents left
    over are handed out one at a time, largest fractional remainder first,
    earliest index on ties.  The sign of the total is reapplied last, so a
    negative total distributes symmetrically.

    Raises:
        InvalidWeightsError: empty, negative, or zero-sum weights.
    """
    fractions = _validate_weights(weights)
    amount = round_amount(total)
    negative = amount < 0
    total_cents = int(abs(amount) / CENT)
    weight_sum = sum(fractions)

    exact = [total_cents * w / weight_sum for w in fractions]
    floors = [int(share) for share in exact]
    residual = total_cents - sum(floors)

    order = sorted(
        range(len(exact)),
        key=lambda i: (-(exact[i] - floors[i]), i),
    )
    for i in order[:residual]:
        floors[i] += 1

    sign = -1 if negative else 1
    shares = tuple((Decimal(sign * cents) * CENT) for cents in floors)

    if residual:
        logger.debug("apportionment_residual_distributed", extra={
            "total": str(amount),
            "residual_cents": residual,
            "share_count": len(shares),
        })
    return shares
