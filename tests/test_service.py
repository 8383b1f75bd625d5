from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import BLAST, GNOSIS, POLYGON_USDC, TEST_WALLET, RecordingQuoteProvider
from routefinder.core.balances import StaticBalanceProvider
from routefinder.core.cache import MemoryResultCache, NullResultCache
from routefinder.core.errors import BalanceUnavailable, InvalidInput
from routefinder.core.service import RouteService


class DownBalanceProvider:
    def get_all_balances(self, user_address):
        raise BalanceUnavailable("balance source offline")


def _find(service, amount="100"):
    return service.find_routes(
        target_chain="137",
        amount=amount,
        token_address=POLYGON_USDC,
        user_address=TEST_WALLET,
    )


def test_service_returns_ranked_routes_and_caches(config, quotes) -> None:
    service = RouteService.from_config(config, quote_provider=quotes)

    result = _find(service)
    calls_after_first = len(quotes.calls)
    cached = _find(service)

    assert result.success
    assert result.best.source_chains == (GNOSIS, BLAST)
    assert cached is result
    assert len(quotes.calls) == calls_after_first


def test_failed_results_are_not_cached(config, quotes) -> None:
    cache = MemoryResultCache()
    service = RouteService.from_config(config, quote_provider=quotes, cache=cache)

    result = _find(service, amount="300")

    assert result.error == "INSUFFICIENT_BALANCE"
    assert result.shortfall == Decimal("15")
    assert cache.get(f"route:137:300:{TEST_WALLET.lower()}") is None


def test_generic_cache_path(config) -> None:
    quotes = RecordingQuoteProvider(config)
    service = RouteService.from_config(config, quote_provider=quotes, cache=NullResultCache())

    _find(service)
    _find(service)

    assert len(quotes.calls) > 0
    assert len(quotes.calls) % 2 == 0


def test_balance_outage_propagates(config, quotes) -> None:
    service = RouteService.from_config(config, quote_provider=quotes, balance_provider=DownBalanceProvider())

    with pytest.raises(BalanceUnavailable):
        _find(service)


def test_invalid_request_never_reaches_balances(config, quotes) -> None:
    service = RouteService.from_config(
        config,
        quote_provider=quotes,
        balance_provider=StaticBalanceProvider(config, {}),
    )

    with pytest.raises(InvalidInput):
        _find(service, amount="-1")
    assert quotes.calls == []
