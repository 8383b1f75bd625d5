"""Config loader for the route finder."""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, MutableMapping, Optional

from web3 import Web3

QUOTE_PROVIDERS = ("static", "bungee")
BALANCE_PROVIDERS = ("static", "onchain")
CACHE_BACKENDS = ("memory", "redis", "none")


class ConfigError(ValueError):
    """Raised when configuration data is invalid or missing."""


def _require_keys(data: Mapping[str, Any], keys: Iterable[str], context: str) -> None:
    missing = [key for key in keys if key not in data]
    if missing:
        raise ConfigError(f"{context} missing required keys: {', '.join(missing)}")


def _to_checksum(value: str, *, field_name: str) -> str:
    try:
        return Web3.to_checksum_address(value)
    except Exception as exc:  # web3 raises ValueError for malformed inputs
        raise ConfigError(f"Invalid address for {field_name}: {value}") from exc


def _to_decimal(value: Any, *, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ConfigError(f"{field_name} must be a decimal number, got {value!r}") from exc


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a supported blockchain network."""

    chain_id: int
    name: str
    usdc_address: str
    rpc_url: Optional[str] = None

    def ensure_rpc_url(self) -> str:
        """Return the RPC URL or raise if it is missing."""
        if not self.rpc_url:
            raise ConfigError(f"RPC URL required for {self.name} but not configured")
        return self.rpc_url


@dataclass(frozen=True)
class StaticFee:
    """Fixed bridging price for legs leaving one chain."""

    fee: Decimal
    estimated_time_seconds: int
    protocol: str = "static"


@dataclass(frozen=True)
class DefaultsConfig:
    """Default operational parameters."""

    max_splits: int
    max_routes: int
    fee_weight: float
    time_weight: float
    api_timeout: float
    quote_workers: int
    optimize_deadline_seconds: float
    cache_ttl: int
    token_decimals: int


@dataclass(frozen=True)
class ApiUrlsConfig:
    """API endpoints required for quoting and balances."""

    bungee: str


@dataclass(frozen=True)
class RouterConfig:
    """Typed wrapper around the route finder configuration."""

    chains: Dict[int, ChainConfig]
    defaults: DefaultsConfig
    api_urls: ApiUrlsConfig
    quote_provider: str
    balance_provider: str
    cache: str
    static_fees: Dict[int, StaticFee]
    static_balances: Dict[int, Decimal]
    bungee_api_key: Optional[str] = field(default=None, repr=False)
    redis_url: Optional[str] = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def chain_name(self, chain_id: int) -> str:
        chain = self.chains.get(chain_id)
        return chain.name if chain else f"chain-{chain_id}"

    def is_supported(self, chain_id: int) -> bool:
        return chain_id in self.chains

    def to_dict(self) -> Dict[str, Any]:
        """Return the original configuration mapping."""
        return dict(self.raw)


DEFAULT_CONFIG: Dict[str, Any] = {
    "chains": {
        "137": {"name": "Polygon", "rpc_url": "https://polygon-rpc.com", "usdc_address": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359"},
        "42161": {"name": "Arbitrum", "rpc_url": "https://arb1.arbitrum.io/rpc", "usdc_address": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831"},
        "8453": {"name": "Base", "rpc_url": "https://mainnet.base.org", "usdc_address": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"},
        "100": {"name": "Gnosis", "rpc_url": "https://rpc.gnosischain.com", "usdc_address": "0xDDAfbb505ad214D7b80b1f830fcCc89B60fb7A83"},
        "81457": {"name": "Blast", "rpc_url": "https://rpc.blast.io", "usdc_address": "0x4300000000000000000000000000000000000003"},
    },
    "defaults": {
        "max_splits": 3,
        "max_routes": 3,
        "fee_weight": 0.7,
        "time_weight": 0.3,
        "api_timeout": 10,
        "quote_workers": 8,
        "optimize_deadline_seconds": 30,
        "cache_ttl": 30,
        "token_decimals": 6,
    },
    "api_urls": {"bungee": "https://api.socket.tech/v2"},
    "quote_provider": "static",
    "balance_provider": "static",
    "cache": "memory",
    "static_fees": {
        "137": {"fee": "0.3", "estimated_time_seconds": 120},
        "42161": {"fee": "1.0", "estimated_time_seconds": 120},
        "8453": {"fee": "0.5", "estimated_time_seconds": 120},
        "100": {"fee": "0.1", "estimated_time_seconds": 120},
        "81457": {"fee": "0.2", "estimated_time_seconds": 120},
    },
    "static_balances": {
        "137": "50",
        "42161": "100",
        "8453": "80",
        "100": "25",
        "81457": "30",
    },
}


def _parse_chains(chains: Mapping[str, Any]) -> Dict[int, ChainConfig]:
    if not isinstance(chains, Mapping) or not chains:
        raise ConfigError("chains must be a non-empty mapping of chain id to chain settings")

    result: Dict[int, ChainConfig] = {}
    for raw_id, chain_data in chains.items():
        try:
            chain_id = int(raw_id)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid chain id: {raw_id!r}") from exc
        _require_keys(chain_data, ["name", "usdc_address"], f"chain {chain_id}")
        name = str(chain_data["name"])
        env_rpc = os.getenv(f"{name.upper()}_RPC_URL")
        result[chain_id] = ChainConfig(
            chain_id=chain_id,
            name=name,
            usdc_address=_to_checksum(chain_data["usdc_address"], field_name=f"{name} usdc_address"),
            rpc_url=env_rpc or chain_data.get("rpc_url"),
        )
    return result


def _parse_static_fees(fees: Mapping[str, Any]) -> Dict[int, StaticFee]:
    result: Dict[int, StaticFee] = {}
    for raw_id, entry in fees.items():
        _require_keys(entry, ["fee", "estimated_time_seconds"], f"static_fees {raw_id}")
        fee = _to_decimal(entry["fee"], field_name=f"static_fees.{raw_id}.fee")
        if fee < 0:
            raise ConfigError(f"static_fees.{raw_id}.fee must not be negative")
        result[int(raw_id)] = StaticFee(
            fee=fee,
            estimated_time_seconds=int(entry["estimated_time_seconds"]),
            protocol=str(entry.get("protocol", "static")),
        )
    return result


def _parse_static_balances(balances: Mapping[str, Any]) -> Dict[int, Decimal]:
    result: Dict[int, Decimal] = {}
    for raw_id, amount in balances.items():
        value = _to_decimal(amount, field_name=f"static_balances.{raw_id}")
        if value < 0:
            raise ConfigError(f"static_balances.{raw_id} must not be negative")
        result[int(raw_id)] = value
    return result


def _parse_defaults(defaults: Mapping[str, Any]) -> DefaultsConfig:
    _require_keys(
        defaults,
        [
            "max_splits",
            "max_routes",
            "fee_weight",
            "time_weight",
            "api_timeout",
            "quote_workers",
            "optimize_deadline_seconds",
            "cache_ttl",
            "token_decimals",
        ],
        "defaults",
    )
    defaults_config = DefaultsConfig(
        max_splits=int(defaults["max_splits"]),
        max_routes=int(defaults["max_routes"]),
        fee_weight=float(defaults["fee_weight"]),
        time_weight=float(defaults["time_weight"]),
        api_timeout=float(defaults["api_timeout"]),
        quote_workers=int(defaults["quote_workers"]),
        optimize_deadline_seconds=float(defaults["optimize_deadline_seconds"]),
        cache_ttl=int(defaults["cache_ttl"]),
        token_decimals=int(defaults["token_decimals"]),
    )
    if defaults_config.max_splits < 1:
        raise ConfigError("defaults.max_splits must be at least 1")
    if defaults_config.max_routes < 1:
        raise ConfigError("defaults.max_routes must be at least 1")
    if defaults_config.fee_weight < 0 or defaults_config.time_weight < 0:
        raise ConfigError("defaults.fee_weight and defaults.time_weight must not be negative")
    if defaults_config.api_timeout <= 0:
        raise ConfigError("defaults.api_timeout must be positive")
    if defaults_config.quote_workers <= 0:
        raise ConfigError("defaults.quote_workers must be positive")
    if defaults_config.optimize_deadline_seconds <= 0:
        raise ConfigError("defaults.optimize_deadline_seconds must be positive")
    if defaults_config.cache_ttl <= 0:
        raise ConfigError("defaults.cache_ttl must be positive")
    if defaults_config.token_decimals < 0:
        raise ConfigError("defaults.token_decimals must not be negative")
    return defaults_config


def _choice(data: Mapping[str, Any], key: str, choices: Iterable[str], default: str) -> str:
    value = str(data.get(key, default))
    if value not in choices:
        raise ConfigError(f"{key} must be one of {', '.join(choices)}, got {value!r}")
    return value


def parse_config(data: Mapping[str, Any]) -> RouterConfig:
    """Validate a configuration mapping and build a ``RouterConfig``."""
    _require_keys(data, ["chains", "defaults", "api_urls"], "config")

    chains = _parse_chains(data["chains"])
    defaults_config = _parse_defaults(data["defaults"])

    api_urls = data["api_urls"]
    _require_keys(api_urls, ["bungee"], "api_urls")
    api_config = ApiUrlsConfig(bungee=str(api_urls["bungee"]).rstrip("/"))

    quote_provider = _choice(data, "quote_provider", QUOTE_PROVIDERS, "static")
    balance_provider = _choice(data, "balance_provider", BALANCE_PROVIDERS, "static")
    cache = _choice(data, "cache", CACHE_BACKENDS, "memory")

    bungee_api_key = os.getenv("BUNGEE_API_KEY") or data.get("bungee_api_key")
    if quote_provider == "bungee" and not bungee_api_key:
        raise ConfigError("BUNGEE_API_KEY environment variable is required for the bungee quote provider")

    redis_url = os.getenv("REDIS_URL") or data.get("redis_url")
    if cache == "redis" and not redis_url:
        raise ConfigError("REDIS_URL is required for the redis cache")

    return RouterConfig(
        chains=chains,
        defaults=defaults_config,
        api_urls=api_config,
        quote_provider=quote_provider,
        balance_provider=balance_provider,
        cache=cache,
        static_fees=_parse_static_fees(data.get("static_fees", {})),
        static_balances=_parse_static_balances(data.get("static_balances", {})),
        bungee_api_key=bungee_api_key,
        redis_url=redis_url,
        raw=data,
    )


def _load_json(path: Path) -> MutableMapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file contains invalid JSON: {path}") from exc


def load_config(config_path: Optional[Path] = None) -> RouterConfig:
    """Load and validate route finder configuration data."""
    config_path = config_path or Path("config.json")
    return parse_config(_load_json(config_path))


def default_config(**overrides: Any) -> RouterConfig:
    """Return the built-in five-chain configuration with top-level overrides applied."""
    data = copy.deepcopy(DEFAULT_CONFIG)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), Mapping):
            data[key].update(value)
        else:
            data[key] = value
    return parse_config(data)


__all__ = [
    "ApiUrlsConfig",
    "ChainConfig",
    "ConfigError",
    "DEFAULT_CONFIG",
    "DefaultsConfig",
    "RouterConfig",
    "StaticFee",
    "default_config",
    "load_config",
    "parse_config",
]
