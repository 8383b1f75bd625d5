"""Route cost scoring and ranking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from routefinder.core.models import Route

DEFAULT_FEE_WEIGHT = 0.7
DEFAULT_TIME_WEIGHT = 0.3


@dataclass(frozen=True)
class RouteScorer:
    """Blend of total fee and total time; lower is better.

    Fees are absolute token amounts and time is measured in minutes. No
    normalisation happens between routes because every compared route
    assembles the same amount.
    """

    fee_weight: float = DEFAULT_FEE_WEIGHT
    time_weight: float = DEFAULT_TIME_WEIGHT

    def score(self, route: Route) -> float:
        fee_score = float(route.total_fee)
        time_score = route.total_time_seconds / 60
        return fee_score * self.fee_weight + time_score * self.time_weight

    def rank(self, routes: Iterable[Route]) -> List[Route]:
        """Return ``routes`` sorted best first; ties keep discovery order."""
        return sorted(routes, key=self.score)


def score(route: Route) -> float:
    """Score ``route`` with the default weights."""
    return RouteScorer().score(route)


__all__ = ["DEFAULT_FEE_WEIGHT", "DEFAULT_TIME_WEIGHT", "RouteScorer", "score"]
