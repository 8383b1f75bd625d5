"""Bridge quote providers: a static fee table and the live Bungee (Socket) API."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

import requests

from routefinder.config import RouterConfig
from routefinder.core.errors import QuoteUnavailable
from routefinder.core.models import Quote
from routefinder.core.utils import get_logger, to_base_units

LOGGER = get_logger("routefinder.quotes")


class QuoteProvider(Protocol):
    """Prices a single bridge leg or raises ``QuoteUnavailable``."""

    def get_quote(
        self,
        from_chain: int,
        to_chain: int,
        amount: Decimal,
        token_address: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> Quote:
        ...


class StaticQuoteProvider:
    """Flat per-source-chain fees read from the ``static_fees`` table."""

    def __init__(self, config: RouterConfig) -> None:
        self._fees = dict(config.static_fees)
        self._config = config

    def get_quote(
        self,
        from_chain: int,
        to_chain: int,
        amount: Decimal,
        token_address: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> Quote:
        entry = self._fees.get(from_chain)
        if entry is None:
            raise QuoteUnavailable(f"No static fee configured for {self._config.chain_name(from_chain)}")
        if amount <= 0:
            raise QuoteUnavailable(f"Cannot quote non-positive amount {amount}")
        LOGGER.debug(
            "Static quote %s -> %s amount=%s fee=%s",
            from_chain,
            to_chain,
            amount,
            entry.fee,
        )
        return Quote(fee=entry.fee, estimated_time_seconds=entry.estimated_time_seconds, protocol=entry.protocol)


class BungeeQuoteProvider:
    """Live quotes from the Bungee (Socket) v2 ``/quote`` endpoint."""

    def __init__(self, config: RouterConfig, session: Optional[requests.Session] = None) -> None:
        if not config.bungee_api_key:
            raise QuoteUnavailable("BUNGEE_API_KEY is not configured")
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "API-KEY": config.bungee_api_key,
                "Content-Type": "application/json",
            }
        )

    def _token_for(self, chain_id: int, override: Optional[str]) -> str:
        if override:
            return override
        chain = self._config.chains.get(chain_id)
        if chain is None:
            raise QuoteUnavailable(f"Unsupported chain {chain_id}")
        return chain.usdc_address

    def get_quote(
        self,
        from_chain: int,
        to_chain: int,
        amount: Decimal,
        token_address: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> Quote:
        from_amount = to_base_units(amount, self._config.defaults.token_decimals)
        if from_amount <= 0:
            raise QuoteUnavailable(f"Cannot quote non-positive amount {amount}")

        # The caller names the token on the target chain; sources use their own address for it.
        params: Dict[str, Any] = {
            "fromChainId": from_chain,
            "toChainId": to_chain,
            "fromTokenAddress": self._token_for(from_chain, None),
            "toTokenAddress": self._token_for(to_chain, token_address),
            "fromAmount": str(from_amount),
            "singleTxOnly": "true",
            "sort": "output",
        }
        if user_address:
            params["userAddress"] = user_address

        url = f"{self._config.api_urls.bungee}/quote"
        LOGGER.debug("Fetching quote with params: %s", params)
        try:
            response = self._session.get(url, params=params, timeout=self._config.defaults.api_timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise QuoteUnavailable(f"Failed to fetch Bungee quote from {url}: {exc}") from exc
        except ValueError as exc:
            raise QuoteUnavailable(f"Bungee quote response is not JSON: {exc}") from exc

        return parse_bungee_quote(payload)


def parse_bungee_quote(payload: Dict[str, Any]) -> Quote:
    """Extract the best route's fee, time and protocol from a ``/quote`` payload."""
    try:
        return _parse_best_route(payload)
    except (AttributeError, TypeError, ValueError, ArithmeticError) as exc:
        raise QuoteUnavailable(f"Malformed Bungee quote payload: {exc}") from exc


def _parse_best_route(payload: Dict[str, Any]) -> Quote:
    if not payload.get("success"):
        raise QuoteUnavailable(f"Bungee API returned non-success payload: {payload.get('message')}")

    routes = (payload.get("result") or {}).get("routes") or []
    if not routes:
        raise QuoteUnavailable("No routes found")

    best = routes[0]
    if "totalGasFeesInUsd" not in best:
        raise QuoteUnavailable("Bungee route missing totalGasFeesInUsd")
    fee = Decimal(str(best["totalGasFeesInUsd"]))
    if not fee.is_finite() or fee < 0:
        raise QuoteUnavailable(f"Bungee route has unusable fee {best['totalGasFeesInUsd']!r}")

    protocol = "unknown"
    user_txs = best.get("userTxs") or []
    if user_txs:
        steps = user_txs[0].get("steps") or []
        if steps:
            raw_protocol = steps[0].get("protocol")
            if isinstance(raw_protocol, dict):
                raw_protocol = raw_protocol.get("name")
            protocol = str(raw_protocol or "unknown")

    return Quote(
        fee=fee,
        estimated_time_seconds=int(best.get("estimatedTimeInSeconds") or 0),
        protocol=protocol,
    )


def build_quote_provider(config: RouterConfig) -> QuoteProvider:
    """Return the quote provider selected by ``config.quote_provider``."""
    if config.quote_provider == "bungee":
        LOGGER.info("Using live Bungee quotes from %s", config.api_urls.bungee)
        return BungeeQuoteProvider(config)
    LOGGER.info("Using static fee table for %s chains", len(config.static_fees))
    return StaticQuoteProvider(config)


__all__ = [
    "BungeeQuoteProvider",
    "QuoteProvider",
    "StaticQuoteProvider",
    "build_quote_provider",
    "parse_bungee_quote",
]
