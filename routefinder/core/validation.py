"""Validation helpers for route requests."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from web3 import Web3

from routefinder.config import RouterConfig
from routefinder.core.errors import InvalidInput
from routefinder.core.utils import get_logger, to_decimal

LOGGER = get_logger("routefinder.validation")

_CHAIN_ID_PATTERN = re.compile(r"^\d+$")
_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


@dataclass(frozen=True)
class RouteRequest:
    """A validated request for funds on one chain."""

    target_chain: int
    amount: Decimal
    token_address: str
    user_address: str


def _validate_address(value: Any, *, field_name: str) -> str:
    text = str(value or "").strip()
    if not _ADDRESS_PATTERN.match(text) or not Web3.is_address(text):
        raise InvalidInput(f"Invalid {field_name} format: {value!r}")
    return Web3.to_checksum_address(text)


def validate_route_request(
    *,
    config: RouterConfig,
    target_chain: Any,
    amount: Any,
    token_address: Any,
    user_address: Any,
) -> RouteRequest:
    """Validate raw request fields and return a typed ``RouteRequest``."""
    chain_text = str(target_chain).strip()
    if not _CHAIN_ID_PATTERN.match(chain_text):
        raise InvalidInput(f"Invalid chain ID format: {target_chain!r}")
    chain_id = int(chain_text)
    if not config.is_supported(chain_id):
        raise InvalidInput(f"Unsupported target chain: {chain_id}")

    try:
        parsed_amount = to_decimal(amount)
    except ValueError as exc:
        raise InvalidInput(f"Invalid amount format: {amount!r}") from exc
    if not parsed_amount.is_finite() or parsed_amount <= 0:
        raise InvalidInput(f"Invalid amount: {amount!r}")

    request = RouteRequest(
        target_chain=chain_id,
        amount=parsed_amount,
        token_address=_validate_address(token_address, field_name="token address"),
        user_address=_validate_address(user_address, field_name="user address"),
    )
    LOGGER.debug("Validated route request %s", request)
    return request


__all__ = ["RouteRequest", "validate_route_request"]
