"""CLI entrypoint for finding funding routes and serving the HTTP API."""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from routefinder.config import ConfigError, RouterConfig, default_config, load_config
from routefinder.core.balances import StaticBalanceProvider, describe_balances
from routefinder.core.errors import RouteFinderError
from routefinder.core.models import Balance, RouteOptimizationResult
from routefinder.core.service import RouteService
from routefinder.core.utils import format_amount, get_logger, to_decimal

LOGGER = get_logger("routefinder.cli")

load_dotenv()

DEFAULT_USER = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"


def _parse_balance(value: str) -> tuple:
    chain, sep, amount = value.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"Balance must look like CHAIN_ID=AMOUNT, got {value!r}")
    try:
        return int(chain), to_decimal(amount)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid balance {value!r}: {exc}") from exc


def _resolve_config(path: Optional[str]) -> RouterConfig:
    if path:
        return load_config(Path(path))
    if Path("config.json").exists():
        return load_config()
    return default_config()


def _default_token(config: RouterConfig, target_chain: str) -> Optional[str]:
    if target_chain.isdigit() and int(target_chain) in config.chains:
        return config.chains[int(target_chain)].usdc_address
    return None


def _print_balances(snapshot: Tuple[Balance, ...]) -> None:
    held = [
        f"{balance.chain_name}={format_amount(balance.amount_available)}"
        for balance in snapshot
        if balance.amount_available > 0
    ]
    print(f"Balances: {', '.join(held) or 'none'}")


def _print_result(result: RouteOptimizationResult, config: RouterConfig) -> None:
    target = config.chain_name(result.target_chain)
    if not result.success:
        print(f"❌ No route to {target} for {format_amount(result.requested_amount)}: {result.error}")
        if result.message:
            print(f"   {result.message}")
        return

    print(f"Routes to {target} for {format_amount(result.requested_amount)}:")
    for index, route in enumerate(result.routes, start=1):
        marker = " (optimal)" if route.is_optimal else ""
        print(
            f"{index}. fee={format_amount(route.total_fee)} time={route.total_time_seconds}s "
            f"chains={','.join(config.chain_name(chain) for chain in route.source_chains) or '-'}{marker}"
        )
        print(f"   {route.explanation}")


def _run_find(args: argparse.Namespace) -> int:
    config = _resolve_config(args.config)
    balance_provider = None
    if args.balance:
        balances: Dict[int, Decimal] = dict(args.balance)
        balance_provider = StaticBalanceProvider(config, balances)

    service = RouteService.from_config(config, balance_provider=balance_provider)
    token = args.token or _default_token(config, args.target_chain)
    result = service.find_routes(
        target_chain=args.target_chain,
        amount=args.amount,
        token_address=token,
        user_address=args.user,
    )

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        snapshot = service.balance_provider.get_all_balances(args.user)
        _print_balances(describe_balances(config, snapshot))
        _print_result(result, config)
    return 0 if result.success else 1


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from routefinder.api import create_app

    app = create_app(_resolve_config(args.config))
    LOGGER.info("Server running on http://%s:%s (docs at /docs)", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find the cheapest way to fund a target chain")
    parser.add_argument("--config", help="Path to config JSON (defaults to ./config.json or built-in chains)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    find = subparsers.add_parser("find", help="Rank funding routes for one request")
    find.add_argument("--target-chain", required=True, help="Chain id that needs the funds")
    find.add_argument("--amount", required=True, help="Amount needed on the target chain, e.g. 100")
    find.add_argument("--user", default=DEFAULT_USER, help="User address whose balances are used")
    find.add_argument("--token", help="Token address on the target chain (defaults to configured USDC)")
    find.add_argument(
        "--balance",
        action="append",
        type=_parse_balance,
        help="Override balances as CHAIN_ID=AMOUNT (repeatable)",
    )
    find.add_argument("--json", action="store_true", help="Print the raw result as JSON")
    find.set_defaults(handler=_run_find)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3000)
    serve.set_defaults(handler=_run_serve)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        code = args.handler(args)
    except (ConfigError, RouteFinderError) as exc:
        print(f"\n❌ Error: {exc}")
        sys.exit(1)
    if code:
        sys.exit(code)


if __name__ == "__main__":  # pragma: no cover - CLI entry
    main()
