from __future__ import annotations

from decimal import Decimal

import pytest

from routefinder.core.models import BridgeLeg, Route
from routefinder.core.scoring import RouteScorer, score


def _route(fee: str, seconds: int) -> Route:
    leg = BridgeLeg(
        from_chain=8453,
        to_chain=137,
        amount=Decimal("50"),
        fee=Decimal(fee),
        estimated_time_seconds=seconds,
        protocol="static",
    )
    return Route.from_legs((leg,))


def test_fee_dominates_and_time_counts_in_minutes() -> None:
    assert score(_route("1.0", 120)) == pytest.approx(0.7 * 1.0 + 0.3 * 2)


def test_rank_orders_lowest_score_first_and_keeps_ties_stable() -> None:
    cheap = _route("0.2", 60)
    fast_but_pricey = _route("0.9", 0)
    tie = _route("0.2", 60)

    ranked = RouteScorer().rank([fast_but_pricey, cheap, tie])

    assert ranked[0] is cheap
    assert ranked[1] is tie
    assert ranked[2] is fast_but_pricey


def test_custom_weights() -> None:
    scorer = RouteScorer(fee_weight=0.0, time_weight=1.0)

    assert scorer.score(_route("5", 300)) == pytest.approx(5.0)
