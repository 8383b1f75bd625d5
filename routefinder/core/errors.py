"""Error taxonomy for route finding."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional


class RouteFinderError(Exception):
    """Base class for all routefinder failures."""

    code = "ROUTE_FINDER_ERROR"


class InvalidInput(RouteFinderError, ValueError):
    """Raised when a route request is malformed."""

    code = "INVALID_INPUT"


class InsufficientBalance(RouteFinderError):
    """Total funds across all chains are below the requested amount."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, shortfall: Decimal, message: Optional[str] = None) -> None:
        self.shortfall = shortfall
        super().__init__(message or f"Insufficient balance: short by {shortfall}")


class QuoteUnavailable(RouteFinderError):
    """A bridge quote could not be obtained for a single leg."""

    code = "QUOTE_UNAVAILABLE"


class NoRouteFound(RouteFinderError):
    """Enough funds exist but no candidate could be fully quoted."""

    code = "NO_ROUTE_FOUND"


class BalanceUnavailable(RouteFinderError):
    """The balance source is entirely unavailable."""

    code = "BALANCE_UNAVAILABLE"


class OptimizationTimeout(RouteFinderError):
    """The overall optimization deadline lapsed before all quotes resolved."""

    code = "TIMEOUT"


__all__ = [
    "BalanceUnavailable",
    "InsufficientBalance",
    "InvalidInput",
    "NoRouteFound",
    "OptimizationTimeout",
    "QuoteUnavailable",
    "RouteFinderError",
]
