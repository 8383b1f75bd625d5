from __future__ import annotations

import threading
import time
from decimal import Decimal

import pytest

from conftest import ARBITRUM, BASE, BLAST, GNOSIS, POLYGON, RecordingQuoteProvider, balances
from routefinder.config import default_config
from routefinder.core.errors import InvalidInput
from routefinder.core.models import LOCAL_PROTOCOL
from routefinder.core.optimizer import RouteOptimizer, allocate_evenly
from routefinder.core.scoring import RouteScorer

TOLERANCE = Decimal("0.000001")


def test_single_chain_prefers_cheapest_source(optimizer, quotes) -> None:
    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100", base="80"))

    assert result.success
    best = result.best
    assert best.is_optimal
    assert [leg.protocol for leg in best.legs] == [LOCAL_PROTOCOL, "static"]
    assert best.legs[0].amount == Decimal("50")
    assert best.legs[1].from_chain == BASE
    assert best.legs[1].amount == Decimal("50")
    assert best.total_fee == Decimal("0.5")
    assert best.total_amount == Decimal("100")
    assert best.source_chains == (BASE,)
    assert best.explanation == "Using 50 already on Polygon, bridging remaining 50 from Base at fee 0.5. Total fee: 0.5"
    assert [route.source_chains for route in result.routes] == [(BASE,), (ARBITRUM,), (ARBITRUM, BASE)]


def test_split_across_cheap_chains_beats_single_bridge(optimizer) -> None:
    result = optimizer.optimize(
        POLYGON,
        Decimal("100"),
        balances(polygon="50", arbitrum="100", base="80", gnosis="25", blast="30"),
    )

    best = result.best
    assert best.source_chains == (GNOSIS, BLAST)
    assert best.total_fee == Decimal("0.3")
    assert [leg.amount for leg in best.bridge_legs] == [Decimal("25"), Decimal("25")]
    assert best.explanation == (
        "Using 50 already on Polygon, split bridging: 25 from Gnosis (fee 0.1) + 25 from Blast (fee 0.2). "
        "Total fee: 0.3"
    )
    assert result.routes[1].source_chains == (BASE,)
    assert len(result.routes) == 3


def test_local_balance_covers_requirement_without_quotes(optimizer, quotes) -> None:
    result = optimizer.optimize(POLYGON, Decimal("40"), balances(polygon="50", arbitrum="100"))

    assert result.success
    assert len(result.routes) == 1
    route = result.routes[0]
    assert len(route.legs) == 1
    assert route.legs[0].protocol == LOCAL_PROTOCOL
    assert route.legs[0].amount == Decimal("40")
    assert route.total_fee == 0
    assert route.total_time_seconds == 0
    assert route.is_optimal
    assert route.explanation == "Using 40 already on Polygon, no bridging needed. Total fee: 0"
    assert quotes.calls == []


def test_insufficient_total_balance_fails_without_quotes(optimizer, quotes) -> None:
    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="10", arbitrum="20"))

    assert not result.success
    assert result.routes == ()
    assert result.error == "INSUFFICIENT_BALANCE"
    assert result.shortfall == Decimal("70")
    assert quotes.calls == []


def test_no_local_leg_when_target_is_empty(optimizer) -> None:
    result = optimizer.optimize(POLYGON, Decimal("60"), balances(arbitrum="60"))

    best = result.best
    assert len(best.legs) == 1
    assert best.legs[0].from_chain == ARBITRUM
    assert best.total_fee == Decimal("1.0")
    assert best.explanation == "Bridging remaining 60 from Arbitrum at fee 1. Total fee: 1"


def test_failed_quote_drops_only_affected_candidates(config) -> None:
    quotes = RecordingQuoteProvider(config, failing={BASE})
    optimizer = RouteOptimizer.from_config(config, quotes)

    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100", base="80"))

    assert result.success
    assert [route.source_chains for route in result.routes] == [(ARBITRUM,)]


def test_unexpected_provider_error_drops_only_that_leg(config) -> None:
    static = RecordingQuoteProvider(config)

    class FlakyProvider:
        def get_quote(self, from_chain, to_chain, amount, token_address=None, user_address=None):
            if from_chain == ARBITRUM:
                raise ValueError("invalid literal for int() with base 10: 'n/a'")
            return static.get_quote(from_chain, to_chain, amount, token_address, user_address)

    optimizer = RouteOptimizer.from_config(config, FlakyProvider())

    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100", base="80"))

    assert result.success
    assert [route.source_chains for route in result.routes] == [(BASE,)]


def test_every_quote_failing_reports_no_route(config) -> None:
    quotes = RecordingQuoteProvider(config, failing={ARBITRUM, BASE})
    optimizer = RouteOptimizer.from_config(config, quotes)

    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100", base="80"))

    assert not result.success
    assert result.error == "NO_ROUTE_FOUND"
    assert result.routes == ()
    assert result.shortfall is None


def test_split_cap_limits_source_chains(config, quotes) -> None:
    optimizer = RouteOptimizer.from_config(config, quotes)
    result = optimizer.optimize(
        POLYGON,
        Decimal("100"),
        balances(arbitrum="25", base="25", gnosis="25", blast="25"),
    )

    assert not result.success
    assert result.error == "NO_ROUTE_FOUND"
    assert quotes.calls == []


def test_single_source_cap_skips_combinations(quotes) -> None:
    config = default_config(defaults={"max_splits": 1})
    optimizer = RouteOptimizer.from_config(config, quotes)

    result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", gnosis="25", blast="30", base="80"))

    assert [route.source_chains for route in result.routes] == [(BASE,)]


def test_slow_cheap_chain_loses_on_time() -> None:
    config = default_config(
        defaults={"max_routes": 20},
        static_fees={"100": {"fee": "0.1", "estimated_time_seconds": 600}},
    )
    optimizer = RouteOptimizer.from_config(config, RecordingQuoteProvider(config))

    result = optimizer.optimize(
        POLYGON,
        Decimal("100"),
        balances(polygon="50", arbitrum="100", base="80", gnosis="25", blast="30"),
    )

    assert result.best.source_chains == (BASE,)
    gnosis_blast = next(route for route in result.routes if route.source_chains == (GNOSIS, BLAST))
    assert gnosis_blast.total_time_seconds == 600


def test_returned_routes_hold_invariants(optimizer, config) -> None:
    required = Decimal("120")
    result = optimizer.optimize(
        POLYGON,
        required,
        balances(polygon="5", arbitrum="60", base="60", gnosis="60", blast="60"),
    )
    scorer = RouteScorer(config.defaults.fee_weight, config.defaults.time_weight)

    assert result.success
    assert 0 < len(result.routes) <= 3
    assert [route.is_optimal for route in result.routes] == [True] + [False] * (len(result.routes) - 1)
    scores = [scorer.score(route) for route in result.routes]
    assert scores == sorted(scores)
    for route in result.routes:
        assert abs(sum(leg.amount for leg in route.legs) - required) <= TOLERANCE
        assert route.total_fee == sum(leg.fee for leg in route.legs)
        assert route.total_time_seconds == max(leg.estimated_time_seconds for leg in route.legs)
        assert len(route.source_chains) <= 3
        assert POLYGON not in route.source_chains


def test_inputs_are_not_mutated(optimizer) -> None:
    snapshot = balances(polygon="50", arbitrum="100", base="80")
    before = dict(snapshot)

    optimizer.optimize(POLYGON, Decimal("100"), snapshot)

    assert snapshot == before


def test_identical_legs_are_quoted_once_on_worker_threads(optimizer, quotes) -> None:
    optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100", base="80"))

    assert len(quotes.calls) == 4
    assert len(set(quotes.calls)) == 4
    assert all(name.startswith("quote") for name in quotes.thread_names)


def test_deadline_lapse_reports_timeout(config) -> None:
    release = threading.Event()

    class StuckProvider:
        def get_quote(self, from_chain, to_chain, amount, token_address=None, user_address=None):
            release.wait(5)
            raise AssertionError("quote should have been abandoned")

    optimizer = RouteOptimizer(StuckProvider(), deadline_seconds=0.2)
    started = time.monotonic()
    try:
        result = optimizer.optimize(POLYGON, Decimal("100"), balances(polygon="50", arbitrum="100"))
    finally:
        release.set()

    assert time.monotonic() - started < 2
    assert not result.success
    assert result.error == "TIMEOUT"
    assert result.routes == ()


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
def test_non_positive_amount_is_caller_error(optimizer, amount) -> None:
    with pytest.raises(InvalidInput):
        optimizer.optimize(POLYGON, amount, balances(polygon="50"))


def test_negative_balance_is_caller_error(optimizer) -> None:
    with pytest.raises(InvalidInput):
        optimizer.optimize(POLYGON, Decimal("10"), {POLYGON: Decimal("-1")})


def test_allocation_splits_evenly_and_last_chain_absorbs() -> None:
    plan = allocate_evenly([(1, Decimal("100")), (2, Decimal("80"))], Decimal("50"))
    assert plan.draws == ((1, Decimal("25")), (2, Decimal("25")))

    plan = allocate_evenly([(1, Decimal("10")), (2, Decimal("100"))], Decimal("50"))
    assert plan.draws == ((1, Decimal("10")), (2, Decimal("40")))


def test_allocation_fails_when_last_chain_is_short() -> None:
    assert allocate_evenly([(1, Decimal("30")), (2, Decimal("10"))], Decimal("50")) is None


def test_allocation_reconciles_uneven_thirds() -> None:
    plan = allocate_evenly([(1, Decimal("100")), (2, Decimal("100")), (3, Decimal("100"))], Decimal("50"))

    amounts = [amount for _, amount in plan.draws]
    assert amounts == [Decimal("16.666666"), Decimal("16.666667"), Decimal("16.666667")]
    assert sum(amounts) == Decimal("50")


@pytest.mark.parametrize(
    "amount, held",
    [("lots", {POLYGON: Decimal("50")}), (Decimal("10"), {POLYGON: "plenty"})],
)
def test_non_numeric_amounts_are_caller_errors(optimizer, amount, held) -> None:
    with pytest.raises(InvalidInput):
        optimizer.optimize(POLYGON, amount, held)
