from __future__ import annotations

import threading
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

import pytest

from routefinder.config import RouterConfig, default_config
from routefinder.core.errors import QuoteUnavailable
from routefinder.core.models import Quote
from routefinder.core.optimizer import RouteOptimizer
from routefinder.core.quotes import StaticQuoteProvider

POLYGON = 137
ARBITRUM = 42161
BASE = 8453
GNOSIS = 100
BLAST = 81457

POLYGON_USDC = "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"
TEST_WALLET = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


def balances(**amounts: str) -> dict:
    ids = {"polygon": POLYGON, "arbitrum": ARBITRUM, "base": BASE, "gnosis": GNOSIS, "blast": BLAST}
    return {ids[name]: Decimal(value) for name, value in amounts.items()}


class RecordingQuoteProvider:
    """Static fee table that records every call and can fail chosen chains."""

    def __init__(self, config: RouterConfig, failing: Iterable[int] = ()) -> None:
        self._inner = StaticQuoteProvider(config)
        self.failing = set(failing)
        self.calls: List[Tuple[int, int, Decimal]] = []
        self.thread_names: List[str] = []
        self._lock = threading.Lock()

    def get_quote(
        self,
        from_chain: int,
        to_chain: int,
        amount: Decimal,
        token_address: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> Quote:
        with self._lock:
            self.calls.append((from_chain, to_chain, amount))
            self.thread_names.append(threading.current_thread().name)
        if from_chain in self.failing:
            raise QuoteUnavailable(f"chain {from_chain} is down")
        return self._inner.get_quote(from_chain, to_chain, amount, token_address, user_address)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BUNGEE_API_KEY", "REDIS_URL", "POLYGON_RPC_URL", "ARBITRUM_RPC_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> RouterConfig:
    return default_config()


@pytest.fixture
def quotes(config: RouterConfig) -> RecordingQuoteProvider:
    return RecordingQuoteProvider(config)


@pytest.fixture
def optimizer(config: RouterConfig, quotes: RecordingQuoteProvider) -> RouteOptimizer:
    return RouteOptimizer.from_config(config, quotes)
