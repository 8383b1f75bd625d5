"""Value types produced and consumed by the route optimizer."""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from routefinder.core.utils import format_amount

LOCAL_PROTOCOL = "local"


@dataclass(frozen=True)
class Balance:
    """Funds a user holds on one chain at query time."""

    chain_id: int
    chain_name: str
    amount_available: Decimal


@dataclass(frozen=True)
class Quote:
    """Price of moving an amount from one chain to another."""

    fee: Decimal
    estimated_time_seconds: int
    protocol: str


@dataclass(frozen=True)
class BridgeLeg:
    """One hop of value from a source chain to the target chain."""

    from_chain: int
    to_chain: int
    amount: Decimal
    fee: Decimal
    estimated_time_seconds: int
    protocol: str
    from_chain_name: str = ""
    to_chain_name: str = ""

    @property
    def is_local(self) -> bool:
        return self.protocol == LOCAL_PROTOCOL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromChain": self.from_chain,
            "fromChainName": self.from_chain_name,
            "toChain": self.to_chain,
            "toChainName": self.to_chain_name,
            "amount": format_amount(self.amount),
            "fee": format_amount(self.fee),
            "estimatedTimeSeconds": self.estimated_time_seconds,
            "protocol": self.protocol,
        }


@dataclass(frozen=True)
class Route:
    """A fully priced way of assembling the required amount on the target chain."""

    legs: Tuple[BridgeLeg, ...]
    total_fee: Decimal
    total_time_seconds: int
    total_amount: Decimal
    source_chains: Tuple[int, ...]
    is_optimal: bool = False
    explanation: str = ""

    @classmethod
    def from_legs(cls, legs: Tuple[BridgeLeg, ...]) -> "Route":
        """Build a route whose totals are derived from ``legs``.

        Fees add up while times do not: legs into the same target chain run
        in parallel, so the route takes as long as its slowest leg.
        """
        total_fee = Decimal(0)
        total_amount = Decimal(0)
        total_time = 0
        sources: List[int] = []
        for leg in legs:
            total_fee += leg.fee
            total_amount += leg.amount
            total_time = max(total_time, leg.estimated_time_seconds)
            if not leg.is_local and leg.from_chain not in sources:
                sources.append(leg.from_chain)
        return cls(
            legs=tuple(legs),
            total_fee=total_fee,
            total_time_seconds=total_time,
            total_amount=total_amount,
            source_chains=tuple(sources),
        )

    @property
    def bridge_legs(self) -> Tuple[BridgeLeg, ...]:
        return tuple(leg for leg in self.legs if not leg.is_local)

    @property
    def local_leg(self) -> Optional[BridgeLeg]:
        for leg in self.legs:
            if leg.is_local:
                return leg
        return None

    def with_local_leg(self, leg: BridgeLeg) -> "Route":
        return Route.from_legs((leg,) + self.legs)

    def marked(self, *, is_optimal: bool, explanation: str) -> "Route":
        return replace(self, is_optimal=is_optimal, explanation=explanation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "legs": [leg.to_dict() for leg in self.legs],
            "totalFee": format_amount(self.total_fee),
            "totalTimeSeconds": self.total_time_seconds,
            "totalAmount": format_amount(self.total_amount),
            "sourceChains": list(self.source_chains),
            "isOptimal": self.is_optimal,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Route":
        legs = tuple(
            BridgeLeg(
                from_chain=int(leg["fromChain"]),
                to_chain=int(leg["toChain"]),
                amount=Decimal(leg["amount"]),
                fee=Decimal(leg["fee"]),
                estimated_time_seconds=int(leg["estimatedTimeSeconds"]),
                protocol=str(leg["protocol"]),
                from_chain_name=str(leg.get("fromChainName", "")),
                to_chain_name=str(leg.get("toChainName", "")),
            )
            for leg in data["legs"]
        )
        return cls(
            legs=legs,
            total_fee=Decimal(data["totalFee"]),
            total_time_seconds=int(data["totalTimeSeconds"]),
            total_amount=Decimal(data["totalAmount"]),
            source_chains=tuple(int(chain) for chain in data["sourceChains"]),
            is_optimal=bool(data["isOptimal"]),
            explanation=str(data["explanation"]),
        )


@dataclass(frozen=True)
class RouteOptimizationResult:
    """Outcome of a single optimization call, best route first."""

    success: bool
    routes: Tuple[Route, ...]
    target_chain: int
    requested_amount: Decimal
    timestamp: float = field(default_factory=time.time)
    error: Optional[str] = None
    message: Optional[str] = None
    shortfall: Optional[Decimal] = None

    @property
    def best(self) -> Optional[Route]:
        return self.routes[0] if self.routes else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "routes": [route.to_dict() for route in self.routes],
            "targetChain": self.target_chain,
            "requestedAmount": format_amount(self.requested_amount),
            "timestamp": self.timestamp,
        }
        if self.error is not None:
            payload["error"] = self.error
            payload["message"] = self.message
        if self.shortfall is not None:
            payload["shortfall"] = format_amount(self.shortfall)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RouteOptimizationResult":
        shortfall = data.get("shortfall")
        return cls(
            success=bool(data["success"]),
            routes=tuple(Route.from_dict(route) for route in data["routes"]),
            target_chain=int(data["targetChain"]),
            requested_amount=Decimal(data["requestedAmount"]),
            timestamp=float(data["timestamp"]),
            error=data.get("error"),
            message=data.get("message"),
            shortfall=Decimal(shortfall) if shortfall is not None else None,
        )


__all__ = [
    "Balance",
    "BridgeLeg",
    "LOCAL_PROTOCOL",
    "Quote",
    "Route",
    "RouteOptimizationResult",
]
