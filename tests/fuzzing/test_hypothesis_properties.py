"""
Hypothesis-based property tests for the costing engines.

Properties checked:
- Apportionment: shares are whole cents, sum exactly to the total, stay
  within one cent of the exact proportional share, flip symmetrically
  with the sign of the total, and never shrink when their weight grows.
- Calendar: per-kind counts partition the range; the WORKING count equals
  the dates yielded by working_dates.
- Shared pools: every worker-day is charged exactly once in full across
  the sub-tasks of an item, and matches the item's work logs.
"""

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from costing_engines.apportionment import apportion
from costing_engines.calendar import count_working_days, working_dates
from costing_engines.cost_model import LaborCostCalculator
from costing_kernel.domain.production import (
    PausePeriod,
    ProductionStatus,
    SubTask,
    WorkerAssignment,
    WorkOrderItem,
)
from costing_kernel.domain.values import CENT, round_amount, sum_amounts

BASE = date(2024, 1, 1)
AS_OF = date(2024, 2, 15)
RATES = {"w1": Decimal("50.00"), "w2": Decimal("87.35"), "w3": Decimal("100.01")}
HOLIDAYS = (date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 9))


def _at(offset: int) -> datetime:
    day = BASE + timedelta(days=offset)
    return datetime(day.year, day.month, day.day, 8, tzinfo=UTC)


amounts = st.decimals(
    min_value=Decimal("-100000"), max_value=Decimal("100000"),
    places=2, allow_nan=False, allow_infinity=False,
)
weights = st.lists(st.integers(min_value=0, max_value=50), min_size=1, max_size=8).filter(
    lambda ws: sum(ws) > 0
)


@composite
def pause_lists(draw):
    pauses = []
    for _ in range(draw(st.integers(min_value=0, max_value=2))):
        start = draw(st.integers(min_value=0, max_value=40))
        length = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=10)))
        pauses.append(PausePeriod(
            _at(start), None if length is None else _at(start + length),
        ))
    return tuple(pauses)


@composite
def items_with_subtasks(draw):
    subtasks = []
    for index in range(draw(st.integers(min_value=1, max_value=4))):
        start = draw(st.integers(min_value=0, max_value=30))
        length = draw(st.one_of(st.none(), st.integers(min_value=0, max_value=20)))
        helpers = tuple(
            WorkerAssignment(worker_id)
            for worker_id in draw(st.lists(st.sampled_from(sorted(RATES)), max_size=2))
        )
        subtasks.append(SubTask(
            id=f"s{index}",
            item_id="i1",
            quantity=draw(st.integers(min_value=1, max_value=10)),
            status=ProductionStatus.IN_PROGRESS,
            worker_id=draw(st.sampled_from(sorted(RATES))),
            helpers=helpers,
            started_at=_at(start),
            ended_at=None if length is None else _at(start + length),
            pause_periods=draw(pause_lists()),
        ))
    return WorkOrderItem(
        id="i1", work_order_id="wo-1", organization_id="org-1",
        product_id="p1", product_name="Ormar", quantity=50,
        status=ProductionStatus.IN_PROGRESS, started_at=_at(0),
        pause_periods=draw(pause_lists()),
        subtasks=tuple(subtasks),
    )


class TestApportionmentProperties:
    """Largest-remainder apportionment."""

    @given(total=amounts, ws=weights)
    @settings(max_examples=200, deadline=None)
    def test_shares_sum_to_total(self, total, ws):
        shares = apportion(total, ws)
        assert len(shares) == len(ws)
        assert sum_amounts(shares) == round_amount(total)

    @given(total=amounts, ws=weights)
    @settings(max_examples=200, deadline=None)
    def test_shares_are_whole_cents(self, total, ws):
        for share in apportion(total, ws):
            assert share == share.quantize(CENT)

    @given(total=amounts, ws=weights)
    @settings(max_examples=200, deadline=None)
    def test_within_one_cent_of_exact(self, total, ws):
        weight_sum = Decimal(sum(ws))
        for share, w in zip(apportion(total, ws), ws):
            exact = round_amount(total) * Decimal(w) / weight_sum
            assert abs(share - exact) < CENT

    @given(total=amounts, ws=weights)
    @settings(max_examples=100, deadline=None)
    def test_negative_total_symmetric(self, total, ws):
        assert apportion(-total, ws) == tuple(-s for s in apportion(total, ws))

    @given(total=amounts, ws=weights, data=st.data())
    @settings(max_examples=200, deadline=None)
    def test_increasing_a_weight_never_shrinks_its_share(self, total, ws, data):
        index = data.draw(st.integers(min_value=0, max_value=len(ws) - 1))
        bumped = list(ws)
        bumped[index] += data.draw(st.integers(min_value=1, max_value=20))

        before = abs(apportion(total, ws)[index])
        after = abs(apportion(total, bumped)[index])
        assert after >= before

    @given(ws=weights)
    @settings(max_examples=50, deadline=None)
    def test_zero_weight_gets_nothing_extra(self, ws):
        shares = apportion(Decimal("1.00"), ws)
        for share, w in zip(shares, ws):
            if w == 0:
                assert share == Decimal("0.00")


class TestCalendarProperties:
    """Day classification partitions every range."""

    @given(
        start=st.integers(min_value=0, max_value=60),
        length=st.integers(min_value=0, max_value=60),
        pauses=pause_lists(),
    )
    @settings(max_examples=200, deadline=None)
    def test_kinds_partition_range(self, start, length, pauses):
        first = BASE + timedelta(days=start)
        last = first + timedelta(days=length)
        counts = count_working_days(first, last, HOLIDAYS, pauses, AS_OF)
        assert counts.days_in_range == length + 1

    @given(
        start=st.integers(min_value=0, max_value=60),
        length=st.integers(min_value=0, max_value=60),
        pauses=pause_lists(),
    )
    @settings(max_examples=200, deadline=None)
    def test_count_matches_working_dates(self, start, length, pauses):
        first = BASE + timedelta(days=start)
        last = first + timedelta(days=length)
        dates = list(working_dates(first, last, HOLIDAYS, pauses, AS_OF))
        assert count_working_days(first, last, HOLIDAYS, pauses, AS_OF).total == len(dates)
        assert all(d.weekday() < 5 and d not in HOLIDAYS for d in dates)

    @given(start=st.integers(min_value=0, max_value=60), gap=st.integers(min_value=1, max_value=30))
    @settings(max_examples=50, deadline=None)
    def test_inverted_range_is_empty(self, start, gap):
        first = BASE + timedelta(days=start)
        assert count_working_days(first, first - timedelta(days=gap)).days_in_range == 0


class TestSharedPoolProperties:
    """Each worker-day is paid once, however many sub-tasks share it."""

    @given(item=items_with_subtasks())
    @settings(max_examples=150, deadline=None)
    def test_item_cost_equals_work_logs(self, item):
        labor = LaborCostCalculator(HOLIDAYS, AS_OF).item_labor(item, RATES)
        assert labor.labor_cost == sum_amounts(log.daily_rate for log in labor.work_logs)
        assert labor.labor_cost == sum_amounts(s.labor_cost for s in labor.subtasks)

    @given(item=items_with_subtasks())
    @settings(max_examples=150, deadline=None)
    def test_each_worker_day_charged_in_full(self, item):
        labor = LaborCostCalculator(HOLIDAYS, AS_OF).item_labor(item, RATES)

        charged: dict[tuple[str, date], Decimal] = defaultdict(Decimal)
        for result in labor.subtasks:
            for charge in result.charges:
                charged[(charge.worker_id, charge.work_date)] += charge.amount

        logged = {(log.worker_id, log.work_date): log.daily_rate for log in labor.work_logs}
        assert len(logged) == len(labor.work_logs)
        assert dict(charged) == logged
        for (worker_id, _), amount in logged.items():
            assert amount == RATES[worker_id]

    @given(item=items_with_subtasks())
    @settings(max_examples=100, deadline=None)
    def test_recompute_deterministic(self, item):
        calculator = LaborCostCalculator(HOLIDAYS, AS_OF)
        assert calculator.item_labor(item, RATES) == calculator.item_labor(item, RATES)

    @given(item=items_with_subtasks())
    @settings(max_examples=100, deadline=None)
    def test_nothing_charged_after_as_of(self, item):
        labor = LaborCostCalculator(HOLIDAYS, AS_OF).item_labor(item, RATES)
        assert all(log.work_date <= AS_OF for log in labor.work_logs)
