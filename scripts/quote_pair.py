#!/usr/bin/env python3
"""Quote a token pair against a live RPC endpoint.

Prints the best bid/ask for each amount and the best route for the first
amount, optionally following block updates.

Usage:
    # FUN/REP on mainnet through a custom RPC
    python scripts/quote_pair.py \\
        --token-a 0x419D0d8BdD9aF5e606Ae2232ed285Aff190E711b \\
        --token-b 0x1985365e9f78359a9B6AD760e32412f4a445E862 \\
        --rpc-url https://eth.llamarpc.com \\
        --amount 1 --amount 10

    # v2 only, direct pair only, watch for 5 minutes
    python scripts/quote_pair.py --token-a ... --token-b ... \\
        --versions v2 --disable-multihop --watch 300
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from quoter.config import QuoterSettings  # noqa: E402
from quoter.engine import QuoterEngine  # noqa: E402
from quoter.errors import QuoterError, RouteNotFound  # noqa: E402
from quoter.models.quote import BestRouteQuotes, BidAskQuote  # noqa: E402
from quoter.models.route import ProtocolVersion  # noqa: E402
from quoter.providers import ChainIdContext, ProviderUrlContext  # noqa: E402
from quoter.quoter import Quoter  # noqa: E402

logger = structlog.get_logger()

# Placeholder caller address; quoting never signs or sends transactions
DEFAULT_ETHEREUM_ADDRESS = "0x0000000000000000000000000000000000000001"


def format_quotes(engine: QuoterEngine, quotes: list[BidAskQuote]) -> str:
    pair = f"{engine.token_a.symbol}/{engine.token_b.symbol}"
    lines = [f"{'Amount':>14}  {'Bid':>24}  {'Ask':>24}   ({pair})"]
    for quote in quotes:
        bid = "-" if quote.bid_price is None else f"{quote.bid_price:.10f}"
        ask = "-" if quote.ask_price is None else f"{quote.ask_price:.10f}"
        lines.append(f"{quote.amount!s:>14}  {bid:>24}  {ask:>24}")
    return "\n".join(lines)


def format_routes(result: BestRouteQuotes) -> str:
    best = result.best_route_quote
    lines = [f"Best route: {best.route_text} ({best.version.value}, fee={best.fee_tier})"]
    for quote in result.tried_routes_quote:
        fee = f" fee={quote.fee_tier}" if quote.fee_tier is not None else ""
        lines.append(
            f"  {quote.converted_amount:>28.10f}  {quote.version.value}{fee}  {quote.route_text}"
        )
    return "\n".join(lines)


async def report_quotes(engine: QuoterEngine, amounts: list[str], watch: float) -> int:
    """Print the best route and the bid/ask table, then optionally watch."""
    try:
        result = await engine.find_best_route(amounts[0])
    except RouteNotFound as e:
        logger.warning("best_route_unavailable", amount=amounts[0], error=str(e))
        print(f"No route found for {amounts[0]} {engine.token_a.symbol}")
    else:
        print(format_routes(result))
    print()

    quotes = await engine.get_best_bid_ask_quotes(amounts)
    print(format_quotes(engine, quotes))

    if watch <= 0:
        engine.unwatch()
        return 0

    print(f"\nWatching for {watch:.0f}s (Ctrl+C to stop)...")
    engine.quote_changed.subscribe(
        lambda updated: print("\n" + format_quotes(engine, updated)),
        lambda: print("Stopped watching"),
    )
    try:
        await asyncio.sleep(watch)
    finally:
        engine.unwatch()
    return 0


async def quote_pair(args: argparse.Namespace) -> int:
    settings = QuoterSettings(
        disable_multihop=args.disable_multihop,
        versions=tuple(ProtocolVersion(v) for v in args.versions),
        max_intermediaries=args.max_intermediaries,
    )
    connection = (
        ProviderUrlContext(chain_id=args.chain_id, provider_url=args.rpc_url)
        if args.rpc_url
        else ChainIdContext(chain_id=args.chain_id)
    )
    quoter = Quoter(
        args.token_a, args.token_b, args.ethereum_address, connection, settings=settings
    )
    engine = await quoter.create_engine()
    return await report_quotes(engine, args.amount, args.watch)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Quote a token pair across Uniswap v2 and v3",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--token-a", required=True, help="Token trade amounts are in")
    parser.add_argument("--token-b", required=True, help="Token prices are quoted in")
    parser.add_argument(
        "--amount",
        action="append",
        default=None,
        help="Trade amount of token A (repeatable, default: 1)",
    )
    parser.add_argument(
        "--ethereum-address",
        default=DEFAULT_ETHEREUM_ADDRESS,
        help="Caller address",
    )
    parser.add_argument("--chain-id", type=int, default=1, help="Chain id (default: 1)")
    parser.add_argument(
        "--rpc-url",
        type=str,
        default=None,
        help="RPC endpoint (default: the chain's public RPC)",
    )
    parser.add_argument(
        "--versions",
        nargs="+",
        choices=[v.value for v in ProtocolVersion],
        default=[v.value for v in ProtocolVersion],
        help="Protocol versions to quote (default: v2 v3)",
    )
    parser.add_argument(
        "--disable-multihop",
        action="store_true",
        help="Only quote the direct pair",
    )
    parser.add_argument(
        "--max-intermediaries",
        type=int,
        default=1,
        help="Maximum base tokens between the pair (default: 1)",
    )
    parser.add_argument(
        "--watch",
        type=float,
        default=0,
        help="Seconds to keep watching for quote updates (default: 0)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()
    if args.amount is None:
        args.amount = ["1"]

    log_level = logging.DEBUG if args.verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )

    try:
        return asyncio.run(quote_pair(args))
    except QuoterError as e:
        logger.error("quote_failed", code=e.code.value, error=str(e))
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
