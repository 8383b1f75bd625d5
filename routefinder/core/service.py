"""Request handling: validation, cache, balances and optimization wired together."""

from __future__ import annotations

from typing import Any, Optional

from routefinder.config import RouterConfig
from routefinder.core.balances import BalanceProvider, build_balance_provider
from routefinder.core.cache import MemoryResultCache, ResultCache, build_result_cache, route_cache_key
from routefinder.core.models import RouteOptimizationResult
from routefinder.core.optimizer import RouteOptimizer
from routefinder.core.quotes import QuoteProvider
from routefinder.core.utils import get_logger
from routefinder.core.validation import RouteRequest, validate_route_request

LOGGER = get_logger("routefinder.service")


class RouteService:
    """Answers route requests for one configured deployment.

    Collaborators are injected; ``from_config`` builds the ones selected by
    configuration.
    """

    def __init__(
        self,
        *,
        config: RouterConfig,
        balance_provider: BalanceProvider,
        optimizer: RouteOptimizer,
        cache: ResultCache,
    ) -> None:
        self.config = config
        self.balance_provider = balance_provider
        self.optimizer = optimizer
        self.cache = cache

    @classmethod
    def from_config(
        cls,
        config: RouterConfig,
        *,
        quote_provider: Optional[QuoteProvider] = None,
        balance_provider: Optional[BalanceProvider] = None,
        cache: Optional[ResultCache] = None,
    ) -> "RouteService":
        return cls(
            config=config,
            balance_provider=balance_provider or build_balance_provider(config),
            optimizer=RouteOptimizer.from_config(config, quote_provider),
            cache=cache if cache is not None else build_result_cache(config),
        )

    def find_routes(
        self,
        *,
        target_chain: Any,
        amount: Any,
        token_address: Any,
        user_address: Any,
    ) -> RouteOptimizationResult:
        """Validate the raw request and return ranked routes.

        Raises ``InvalidInput`` for malformed requests and ``BalanceUnavailable``
        when balances cannot be read at all; every other outcome is a result.
        """
        request = validate_route_request(
            config=self.config,
            target_chain=target_chain,
            amount=amount,
            token_address=token_address,
            user_address=user_address,
        )
        return self.handle(request)

    def handle(self, request: RouteRequest) -> RouteOptimizationResult:
        key = route_cache_key(request.target_chain, request.amount, request.user_address)
        if isinstance(self.cache, MemoryResultCache):
            return self.cache.get_or_compute(key, lambda: self._compute(request), self.config.defaults.cache_ttl)

        cached = self.cache.get(key)
        if cached is not None:
            LOGGER.info("Cache hit for %s", key)
            return cached

        result = self._compute(request)
        if result.success:
            self.cache.set(key, result, self.config.defaults.cache_ttl)
        return result

    def _compute(self, request: RouteRequest) -> RouteOptimizationResult:
        balances = self.balance_provider.get_all_balances(request.user_address)
        LOGGER.info(
            "Optimizing %s on %s for %s",
            request.amount,
            self.config.chain_name(request.target_chain),
            request.user_address,
        )
        return self.optimizer.optimize(
            request.target_chain,
            request.amount,
            balances,
            token_address=request.token_address,
            user_address=request.user_address,
        )


__all__ = ["RouteService"]
