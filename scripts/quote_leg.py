#!/usr/bin/env python3
"""Debug script to inspect a single bridge quote from the configured provider."""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from routefinder.config import default_config, load_config
from routefinder.core.errors import QuoteUnavailable
from routefinder.core.quotes import build_quote_provider
from routefinder.core.utils import to_decimal

load_dotenv()


def main() -> None:
    """Print the fee, time and protocol for one leg."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("from_chain", type=int)
    parser.add_argument("to_chain", type=int)
    parser.add_argument("amount")
    parser.add_argument("--config")
    args = parser.parse_args()

    config = load_config(Path(args.config)) if args.config else default_config()
    provider = build_quote_provider(config)
    try:
        quote = provider.get_quote(args.from_chain, args.to_chain, to_decimal(args.amount))
    except QuoteUnavailable as exc:
        print(f"❌ Quote unavailable: {exc}")
        sys.exit(1)

    print(f"{config.chain_name(args.from_chain)} -> {config.chain_name(args.to_chain)}")
    print(f"  fee:      {quote.fee}")
    print(f"  time:     {quote.estimated_time_seconds}s")
    print(f"  protocol: {quote.protocol}")


if __name__ == "__main__":
    main()
