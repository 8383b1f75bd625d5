"""Balance providers: a fixed snapshot and on-chain ERC20 ``balanceOf`` reads."""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Protocol, Tuple

from web3 import Web3
from web3.contract import Contract

from routefinder.config import RouterConfig
from routefinder.core.errors import BalanceUnavailable
from routefinder.core.models import Balance
from routefinder.core.utils import from_base_units, get_logger

LOGGER = get_logger("routefinder.balances")

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "type": "function",
    },
]


class BalanceProvider(Protocol):
    """Returns a complete per-chain balance snapshot for a user."""

    def get_all_balances(self, user_address: str) -> Dict[int, Decimal]:
        ...


def describe_balances(config: RouterConfig, balances: Mapping[int, Decimal]) -> Tuple[Balance, ...]:
    """Attach chain names to a raw ``{chain_id: amount}`` snapshot."""
    return tuple(
        Balance(chain_id=chain_id, chain_name=config.chain_name(chain_id), amount_available=amount)
        for chain_id, amount in balances.items()
    )


class StaticBalanceProvider:
    """Serves the same snapshot for every user."""

    def __init__(self, config: RouterConfig, balances: Optional[Mapping[int, Decimal]] = None) -> None:
        snapshot = dict(config.static_balances if balances is None else balances)
        self._balances = {chain_id: snapshot.get(chain_id, Decimal(0)) for chain_id in config.chains}
        for chain_id, amount in snapshot.items():
            self._balances.setdefault(chain_id, amount)

    def get_all_balances(self, user_address: str) -> Dict[int, Decimal]:
        LOGGER.debug("Serving static balances for %s", user_address)
        return dict(self._balances)


class OnchainBalanceProvider:
    """Reads the configured USDC balance on every chain over its RPC endpoint."""

    def __init__(
        self,
        config: RouterConfig,
        web3_factory: Callable[[str], Web3] = lambda url: Web3(Web3.HTTPProvider(url)),
    ) -> None:
        self._config = config
        self._web3_factory = web3_factory
        self._contracts: Dict[int, Contract] = {}

    def _get_or_create_contract(self, chain_id: int) -> Contract:
        contract = self._contracts.get(chain_id)
        if contract is None:
            chain = self._config.chains[chain_id]
            web3 = self._web3_factory(chain.ensure_rpc_url())
            if not web3.is_connected():
                raise ConnectionError(f"Failed to connect to {chain.name} RPC")
            contract = web3.eth.contract(address=chain.usdc_address, abi=ERC20_ABI)
            self._contracts[chain_id] = contract
        return contract

    def balance_for_chain(self, chain_id: int, user_address: str) -> Decimal:
        """Fetch the token balance on one chain in human units."""
        contract = self._get_or_create_contract(chain_id)
        raw = contract.functions.balanceOf(Web3.to_checksum_address(user_address)).call()
        return from_base_units(raw, self._config.defaults.token_decimals)

    def get_all_balances(self, user_address: str) -> Dict[int, Decimal]:
        balances: Dict[int, Decimal] = {}
        failures = 0
        for chain_id, chain in self._config.chains.items():
            try:
                balances[chain_id] = self.balance_for_chain(chain_id, user_address)
            except Exception as exc:  # web3 surfaces transport and decode errors with many types
                failures += 1
                LOGGER.warning("Error fetching %s balance: %s", chain.name, exc)
                balances[chain_id] = Decimal(0)
            else:
                LOGGER.info("%s balance: %s USDC", chain.name, balances[chain_id])

        if failures == len(self._config.chains):
            raise BalanceUnavailable(f"Balances unavailable on all {failures} chains for {user_address}")
        return balances


def build_balance_provider(config: RouterConfig) -> BalanceProvider:
    """Return the balance provider selected by ``config.balance_provider``."""
    if config.balance_provider == "onchain":
        return OnchainBalanceProvider(config)
    return StaticBalanceProvider(config)


__all__ = [
    "BalanceProvider",
    "ERC20_ABI",
    "OnchainBalanceProvider",
    "StaticBalanceProvider",
    "build_balance_provider",
    "describe_balances",
]
