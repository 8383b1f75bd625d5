"""Route optimization: choose which chains to draw from, and how much, to fund a target chain."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from routefinder.config import RouterConfig
from routefinder.core.combinations import iter_combination_groups
from routefinder.core.errors import (
    InsufficientBalance,
    InvalidInput,
    NoRouteFound,
    OptimizationTimeout,
    QuoteUnavailable,
)
from routefinder.core.explain import explain_route
from routefinder.core.models import LOCAL_PROTOCOL, BridgeLeg, Quote, Route, RouteOptimizationResult
from routefinder.core.quotes import QuoteProvider, build_quote_provider
from routefinder.core.scoring import RouteScorer
from routefinder.core.utils import amounts_match, format_amount, get_logger, sum_decimals, to_decimal

LOGGER = get_logger("routefinder.optimizer")

MAX_SPLITS = 3
MAX_ROUTES = 3

QuoteKey = Tuple[int, Decimal]


@dataclass(frozen=True)
class CandidatePlan:
    """Unpriced candidate: how much to draw from each source chain."""

    draws: Tuple[QuoteKey, ...]

    @property
    def chains(self) -> Tuple[int, ...]:
        return tuple(chain_id for chain_id, _ in self.draws)


def allocate_evenly(sources: Sequence[Tuple[int, Decimal]], need: Decimal, decimals: int = 6) -> Optional[CandidatePlan]:
    """Spread ``need`` over ``sources`` in order, or return None if they cannot cover it.

    Every chain but the last draws ``min(available, remaining / chains_left)``
    rounded down to ``decimals`` places; the last chain takes whatever is
    still missing and must hold enough for it.
    """
    step = Decimal(1).scaleb(-decimals)
    remaining = need
    draws: List[QuoteKey] = []
    for index, (chain_id, available) in enumerate(sources):
        chains_left = len(sources) - index
        if chains_left == 1:
            if available < remaining:
                return None
            draw = remaining
        else:
            draw = min(available, (remaining / chains_left).quantize(step, rounding=ROUND_DOWN))
        if draw <= 0:
            return None
        draws.append((chain_id, draw))
        remaining -= draw
    return CandidatePlan(draws=tuple(draws))


class RouteOptimizer:
    """Ranks ways of sourcing a required amount onto one target chain.

    The optimizer holds no per-call state: each ``optimize`` call works on its
    own copy of the balances and its own candidate list, so one instance can
    serve concurrent callers.
    """

    def __init__(
        self,
        quote_provider: QuoteProvider,
        *,
        chain_name: Callable[[int], str] = lambda chain_id: f"chain-{chain_id}",
        max_splits: int = MAX_SPLITS,
        max_routes: int = MAX_ROUTES,
        scorer: Optional[RouteScorer] = None,
        quote_workers: int = 8,
        deadline_seconds: float = 30.0,
        amount_decimals: int = 6,
    ) -> None:
        if max_splits < 1:
            raise ValueError("max_splits must be at least 1")
        if max_routes < 1:
            raise ValueError("max_routes must be at least 1")
        self.quote_provider = quote_provider
        self.chain_name = chain_name
        self.max_splits = max_splits
        self.max_routes = max_routes
        self.scorer = scorer or RouteScorer()
        self.quote_workers = quote_workers
        self.deadline_seconds = deadline_seconds
        self.amount_decimals = amount_decimals

    @classmethod
    def from_config(cls, config: RouterConfig, quote_provider: Optional[QuoteProvider] = None) -> "RouteOptimizer":
        defaults = config.defaults
        return cls(
            quote_provider or build_quote_provider(config),
            chain_name=config.chain_name,
            max_splits=defaults.max_splits,
            max_routes=defaults.max_routes,
            scorer=RouteScorer(fee_weight=defaults.fee_weight, time_weight=defaults.time_weight),
            quote_workers=defaults.quote_workers,
            deadline_seconds=defaults.optimize_deadline_seconds,
            amount_decimals=defaults.token_decimals,
        )

    def optimize(
        self,
        target_chain: int,
        required_amount: Decimal,
        user_balances: Mapping[int, Decimal],
        *,
        token_address: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> RouteOptimizationResult:
        """Return up to ``max_routes`` ranked routes funding ``required_amount`` on ``target_chain``.

        Insufficient funds, an exhausted search and a lapsed deadline come back
        as an unsuccessful result rather than an exception. Non-positive
        amounts or negative balances raise ``InvalidInput``.
        """
        target_chain = int(target_chain)
        try:
            required = to_decimal(required_amount)
        except ValueError as exc:
            raise InvalidInput(f"Required amount is not a number: {required_amount!r}") from exc
        if not required.is_finite() or required <= 0:
            raise InvalidInput(f"Required amount must be positive, got {required_amount}")
        balances: Dict[int, Decimal] = {}
        for chain_id, amount in user_balances.items():
            try:
                value = to_decimal(amount)
            except ValueError as exc:
                raise InvalidInput(f"Balance on chain {chain_id} is not a number: {amount!r}") from exc
            if not value.is_finite() or value < 0:
                raise InvalidInput(f"Balance on chain {chain_id} must be finite and non-negative: {amount}")
            balances[int(chain_id)] = value

        deadline = time.monotonic() + self.deadline_seconds
        try:
            routes = self._search(target_chain, required, balances, token_address, user_address, deadline)
        except (InsufficientBalance, NoRouteFound, OptimizationTimeout) as exc:
            LOGGER.warning("No routes to %s for %s: %s", self.chain_name(target_chain), required, exc)
            return RouteOptimizationResult(
                success=False,
                routes=(),
                target_chain=target_chain,
                requested_amount=required,
                error=exc.code,
                message=str(exc),
                shortfall=getattr(exc, "shortfall", None),
            )

        return RouteOptimizationResult(
            success=True,
            routes=tuple(routes),
            target_chain=target_chain,
            requested_amount=required,
        )

    def _search(
        self,
        target_chain: int,
        required: Decimal,
        balances: Dict[int, Decimal],
        token_address: Optional[str],
        user_address: Optional[str],
        deadline: float,
    ) -> List[Route]:
        local_balance = balances.get(target_chain, Decimal(0))
        need = max(Decimal(0), required - local_balance)

        if need == 0:
            LOGGER.info("%s already holds %s, no bridging needed", self.chain_name(target_chain), local_balance)
            route = Route.from_legs((self._local_leg(target_chain, required),))
            return [route.marked(is_optimal=True, explanation=explain_route(route))]

        total_available = sum_decimals(balances.values())
        if total_available < required:
            raise InsufficientBalance(
                required - total_available,
                f"Total balance {format_amount(total_available)} across all chains is below "
                f"required {format_amount(required)}",
            )

        sources = [
            (chain_id, amount) for chain_id, amount in balances.items() if chain_id != target_chain and amount > 0
        ]
        LOGGER.info(
            "Need to bridge %s to %s from %s candidate chains",
            need,
            self.chain_name(target_chain),
            len(sources),
        )

        plans = self._plan_candidates(sources, need)
        if not plans:
            raise NoRouteFound(f"No combination of at most {self.max_splits} chains covers {format_amount(need)}")

        quotes = self._fetch_quotes(plans, target_chain, token_address, user_address, deadline)

        candidates: List[Route] = []
        for plan in plans:
            route = self._price_plan(plan, quotes, target_chain, need)
            if route is None:
                continue
            if local_balance > 0:
                route = route.with_local_leg(self._local_leg(target_chain, local_balance))
            candidates.append(route)

        if not candidates:
            raise NoRouteFound(f"All {len(plans)} candidate routes failed quoting")

        ranked = self.scorer.rank(candidates)[: self.max_routes]
        LOGGER.info("Priced %s of %s candidates, returning %s", len(candidates), len(plans), len(ranked))
        return [
            route.marked(is_optimal=index == 0, explanation=explain_route(route))
            for index, route in enumerate(ranked)
        ]

    def _plan_candidates(self, sources: Sequence[Tuple[int, Decimal]], need: Decimal) -> List[CandidatePlan]:
        plans = [CandidatePlan(draws=((chain_id, need),)) for chain_id, available in sources if available >= need]

        for combo in iter_combination_groups(sources, 2, self.max_splits):
            if sum_decimals(available for _, available in combo) < need:
                continue
            plan = allocate_evenly(combo, need, self.amount_decimals)
            if plan is not None:
                plans.append(plan)
        return plans

    def _fetch_quotes(
        self,
        plans: Sequence[CandidatePlan],
        target_chain: int,
        token_address: Optional[str],
        user_address: Optional[str],
        deadline: float,
    ) -> Dict[QuoteKey, Optional[Quote]]:
        keys: List[QuoteKey] = []
        for plan in plans:
            for key in plan.draws:
                if key not in keys:
                    keys.append(key)

        executor = ThreadPoolExecutor(max_workers=min(self.quote_workers, len(keys)), thread_name_prefix="quote")
        futures: Dict[QuoteKey, Future] = {
            key: executor.submit(self._quote_leg, key, target_chain, token_address, user_address) for key in keys
        }
        pending = set()
        try:
            _, pending = wait(futures.values(), timeout=max(0.0, deadline - time.monotonic()))
        finally:
            executor.shutdown(wait=not pending, cancel_futures=True)

        if pending:
            for future in pending:
                future.cancel()
            raise OptimizationTimeout(
                f"Deadline of {self.deadline_seconds}s lapsed with {len(pending)} of {len(keys)} quotes outstanding"
            )
        return {key: future.result() for key, future in futures.items()}

    def _quote_leg(
        self,
        key: QuoteKey,
        target_chain: int,
        token_address: Optional[str],
        user_address: Optional[str],
    ) -> Optional[Quote]:
        chain_id, amount = key
        try:
            return self.quote_provider.get_quote(chain_id, target_chain, amount, token_address, user_address)
        except QuoteUnavailable as exc:
            LOGGER.warning("Error getting quote for %s amount=%s: %s", self.chain_name(chain_id), amount, exc)
            return None
        except Exception as exc:
            LOGGER.warning(
                "Unexpected quote failure for %s amount=%s: %s: %s",
                self.chain_name(chain_id),
                amount,
                type(exc).__name__,
                exc,
            )
            return None

    def _price_plan(
        self,
        plan: CandidatePlan,
        quotes: Mapping[QuoteKey, Optional[Quote]],
        target_chain: int,
        need: Decimal,
    ) -> Optional[Route]:
        legs: List[BridgeLeg] = []
        for chain_id, amount in plan.draws:
            quote = quotes.get((chain_id, amount))
            if quote is None:
                LOGGER.debug("Dropping candidate %s: no quote from %s", plan.chains, chain_id)
                return None
            legs.append(
                BridgeLeg(
                    from_chain=chain_id,
                    to_chain=target_chain,
                    amount=amount,
                    fee=quote.fee,
                    estimated_time_seconds=quote.estimated_time_seconds,
                    protocol=quote.protocol,
                    from_chain_name=self.chain_name(chain_id),
                    to_chain_name=self.chain_name(target_chain),
                )
            )

        route = Route.from_legs(tuple(legs))
        if not amounts_match(route.total_amount, need):
            LOGGER.debug("Dropping candidate %s: drew %s of %s", plan.chains, route.total_amount, need)
            return None
        return route

    def _local_leg(self, target_chain: int, amount: Decimal) -> BridgeLeg:
        name = self.chain_name(target_chain)
        return BridgeLeg(
            from_chain=target_chain,
            to_chain=target_chain,
            amount=amount,
            fee=Decimal(0),
            estimated_time_seconds=0,
            protocol=LOCAL_PROTOCOL,
            from_chain_name=name,
            to_chain_name=name,
        )


__all__ = ["CandidatePlan", "MAX_ROUTES", "MAX_SPLITS", "RouteOptimizer", "allocate_evenly"]
