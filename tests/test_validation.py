from __future__ import annotations

from decimal import Decimal

import pytest

from conftest import POLYGON, POLYGON_USDC, TEST_WALLET
from routefinder.core.errors import InvalidInput
from routefinder.core.validation import validate_route_request


def _validate(config, **overrides):
    fields = {
        "target_chain": "137",
        "amount": "100",
        "token_address": POLYGON_USDC,
        "user_address": TEST_WALLET,
    }
    fields.update(overrides)
    return validate_route_request(config=config, **fields)


def test_valid_request_is_typed(config) -> None:
    request = _validate(config, user_address=TEST_WALLET.lower())

    assert request.target_chain == POLYGON
    assert request.amount == Decimal("100")
    assert request.user_address == TEST_WALLET


@pytest.mark.parametrize(
    "overrides",
    [
        {"target_chain": "polygon"},
        {"target_chain": "-137"},
        {"target_chain": "999"},
        {"amount": "0"},
        {"amount": "-5"},
        {"amount": "ten"},
        {"amount": "NaN"},
        {"token_address": "0x1234"},
        {"user_address": "742d35Cc6634C0532925a3b844Bc454e4438f44e"},
        {"user_address": None},
    ],
)
def test_malformed_requests_are_invalid_input(config, overrides) -> None:
    with pytest.raises(InvalidInput):
        _validate(config, **overrides)
