"""Human readable route explanations."""

from __future__ import annotations

from typing import List

from routefinder.core.models import BridgeLeg, Route
from routefinder.core.utils import format_amount


def _chain_label(leg: BridgeLeg) -> str:
    return leg.from_chain_name or f"chain-{leg.from_chain}"


def explain_route(route: Route) -> str:
    """Describe how ``route`` assembles its total amount.

    The local contribution comes first, then the bridged part, then the
    total fee, e.g. ``Using 50 already on Polygon, bridging remaining 50
    from Base at fee 0.5. Total fee: 0.5``.
    """
    parts: List[str] = []
    local = route.local_leg
    if local is not None:
        parts.append(f"using {format_amount(local.amount)} already on {local.to_chain_name or local.to_chain}")

    bridged = route.bridge_legs
    if not bridged:
        parts.append("no bridging needed")
    elif len(bridged) == 1:
        leg = bridged[0]
        parts.append(
            f"bridging remaining {format_amount(leg.amount)} from {_chain_label(leg)} at fee {format_amount(leg.fee)}"
        )
    else:
        splits = " + ".join(
            f"{format_amount(leg.amount)} from {_chain_label(leg)} (fee {format_amount(leg.fee)})" for leg in bridged
        )
        parts.append(f"split bridging: {splits}")

    sentence = ", ".join(parts)
    return f"{sentence[0].upper()}{sentence[1:]}. Total fee: {format_amount(route.total_fee)}"


__all__ = ["explain_route"]
