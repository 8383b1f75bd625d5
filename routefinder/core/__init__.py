"""Core domain logic for the route finder."""

from .optimizer import RouteOptimizer, allocate_evenly
from .quotes import BungeeQuoteProvider, StaticQuoteProvider, build_quote_provider
from .balances import OnchainBalanceProvider, StaticBalanceProvider, build_balance_provider
from .scoring import RouteScorer
from .service import RouteService
from .validation import validate_route_request

__all__ = [
    "BungeeQuoteProvider",
    "OnchainBalanceProvider",
    "RouteOptimizer",
    "RouteScorer",
    "RouteService",
    "StaticBalanceProvider",
    "StaticQuoteProvider",
    "allocate_evenly",
    "build_balance_provider",
    "build_quote_provider",
    "validate_route_request",
]
