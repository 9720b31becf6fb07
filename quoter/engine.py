"""Quoting engine for one token pair.

The engine owns the memoized route sets (one per direction) and at most one
block watcher. Quotes themselves are computed fresh on every call.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog

from quoter.config import DEFAULT_SETTINGS, QuoterSettings
from quoter.constants import WETH
from quoter.models.quote import BestRouteQuotes, BidAskQuote, TriedRouteQuote
from quoter.models.route import AllPossibleRoutes, Direction
from quoter.models.token import Token
from quoter.multicall import BatchExecutor
from quoter.providers import ChainProvider
from quoter.quoting.aggregator import QuoteResultAggregator
from quoter.quoting.request_builder import QuoteRequestBuilder
from quoter.routing.enumerator import RouteEnumerator
from quoter.routing.ranker import RouteRanker
from quoter.watcher import (
    PriceWatcher,
    QuoteChannel,
    QuoteFingerprint,
    QuoteSnapshot,
    WatcherState,
)

logger = structlog.get_logger()


class RouteCache:
    """Lazily computed route set, written at most once.

    Concurrent callers share a single computation: the first one computes
    under the lock, the others wait and reuse its result.
    """

    def __init__(self, compute: Callable[[], Awaitable[AllPossibleRoutes]]) -> None:
        self._compute = compute
        self._routes: AllPossibleRoutes | None = None
        self._lock = asyncio.Lock()

    @property
    def is_computed(self) -> bool:
        return self._routes is not None

    async def get(self) -> AllPossibleRoutes:
        if self._routes is not None:
            return self._routes

        async with self._lock:
            if self._routes is None:
                self._routes = await self._compute()
        return self._routes


def bid_ask_snapshot(quotes: list[BidAskQuote], expires_at: float) -> QuoteSnapshot:
    """Fingerprint bid/ask quotes, one entry per amount and side."""
    fingerprints = []
    for quote in sorted(quotes, key=lambda q: q.amount):
        fingerprints.append(QuoteFingerprint(label=f"{quote.amount}:bid", price=quote.bid_price))
        fingerprints.append(QuoteFingerprint(label=f"{quote.amount}:ask", price=quote.ask_price))
    return QuoteSnapshot(fingerprints=tuple(fingerprints), expires_at=expires_at)


def best_route_snapshot(result: BestRouteQuotes, expires_at: float) -> QuoteSnapshot:
    """Fingerprint the best route by its label, price and fee tier."""
    best = result.best_route_quote
    return QuoteSnapshot(
        fingerprints=(
            QuoteFingerprint(label=best.route_text, price=best.price, fee_tier=best.fee_tier),
        ),
        expires_at=expires_at,
    )


def parse_trade_amounts(amounts: Iterable[Decimal | str | int]) -> list[Decimal]:
    """Parse human trade amounts, dropping duplicates but keeping order.

    Raises:
        ValueError: If an amount is not a positive finite number
    """
    parsed: list[Decimal] = []
    for amount in amounts:
        try:
            value = Decimal(str(amount))
        except InvalidOperation as err:
            raise ValueError(f"Invalid trade amount: {amount!r}") from err
        if not value.is_finite() or value <= 0:
            raise ValueError(f"Trade amount must be positive: {amount!r}")
        parsed.append(value)
    return list(dict.fromkeys(parsed))


class QuoterEngine:
    """Best bid/ask and best-route quoting between token A and token B.

    Bid prices are token B received per token A sold; ask prices are token B
    paid per token A bought. Trade amounts are always in token A.

    Usage:
        engine = QuoterEngine(token_a, token_b, provider, executor, base_tokens=bases)
        quotes = await engine.get_best_bid_ask_quotes(["1", "10"])
        engine.quote_changed.subscribe(on_update)
        ...
        engine.unwatch()
    """

    def __init__(
        self,
        token_a: Token,
        token_b: Token,
        provider: ChainProvider,
        executor: BatchExecutor,
        settings: QuoterSettings = DEFAULT_SETTINGS,
        base_tokens: Iterable[Token] = (),
        wrapped_native: str = WETH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            token_a: Base token of the pair (trade amounts are in token A)
            token_b: Quote token of the pair (prices are in token B)
            provider: Chain provider (block notifications, provider url)
            executor: Batch call executor
            settings: Quoter settings
            base_tokens: Multihop intermediaries, in iteration order
            wrapped_native: Wrapped native token address for the chain
            clock: Unix time source for quote expiry
        """
        self._token_a = token_a
        self._token_b = token_b
        self._provider = provider
        self._executor = executor
        self._settings = settings

        self._enumerator = RouteEnumerator(
            base_tokens,
            wrapped_native=wrapped_native,
            max_intermediaries=settings.max_intermediaries,
        )
        self._routes_a_to_b = RouteCache(lambda: self._enumerate(token_a, token_b))
        self._routes_b_to_a = RouteCache(lambda: self._enumerate(token_b, token_a))

        self._request_builder = QuoteRequestBuilder(
            token_a, wrapped_native, settings.clone_contracts
        )
        self._aggregator = QuoteResultAggregator(token_b)
        self._ranker = RouteRanker(
            token_a,
            token_b,
            self._routes_a_to_b.get,
            executor,
            self._request_builder,
            settings.versions,
        )
        self._watcher = PriceWatcher(
            provider,
            quote_ttl_seconds=settings.quote_ttl_seconds,
            price_change_tolerance=settings.price_change_tolerance,
            clock=clock,
        )
        # Numbers top-level quoting calls; only the newest may start watching
        self._request_seq = 0

    @property
    def token_a(self) -> Token:
        return self._token_a

    @property
    def token_b(self) -> Token:
        return self._token_b

    @property
    def provider_url(self) -> str | None:
        return self._provider.provider_url

    @property
    def settings(self) -> QuoterSettings:
        return self._settings

    @property
    def quote_changed(self) -> QuoteChannel:
        """Updates for the last top-level quote.

        Each top-level quoting call opens a new channel, and unwatch() (or the
        next top-level call) completes it. Read this after the call returns:
        before the first call the channel is already complete, and a
        subscription made earlier completes as soon as a new call starts.
        """
        return self._watcher.channel

    @property
    def is_watching(self) -> bool:
        return self._watcher.state == WatcherState.WATCHING

    @property
    def watcher(self) -> PriceWatcher:
        return self._watcher

    async def get_all_possible_routes(
        self, direction: Direction = Direction.A_TO_B
    ) -> AllPossibleRoutes:
        """Candidate routes for a direction, enumerated once per engine."""
        if direction == Direction.A_TO_B:
            return await self._routes_a_to_b.get()
        return await self._routes_b_to_a.get()

    async def get_best_bid_ask_quotes(
        self, amounts: Iterable[Decimal | str | int]
    ) -> list[BidAskQuote]:
        """Best bid and ask per trade amount across all routes and versions.

        Tears down any active watcher, quotes, then watches the new quote.
        Amounts without any surviving route are left out of the result.

        Raises:
            ValueError: If an amount is not positive
            NetworkFailure: If the batch request fails
        """
        request_id = self._begin_request()
        trade_amounts = parse_trade_amounts(amounts)
        quotes = await self._quote_bid_ask(trade_amounts)

        logger.info(
            "bid_ask_quotes_built",
            pair=f"{self._token_a.symbol}/{self._token_b.symbol}",
            amounts=[str(a) for a in trade_amounts],
            quote_count=len(quotes),
        )
        self._watch_latest(
            request_id, lambda: self._quote_bid_ask(trade_amounts), bid_ask_snapshot, quotes
        )
        return quotes

    async def find_best_route(self, amount: Decimal | str | int) -> BestRouteQuotes:
        """Best route selling amount of token A for token B, then watch it.

        Raises:
            RouteNotFound: If no route survives pruning
            NetworkFailure: If the batch request fails
        """
        request_id = self._begin_request()
        (trade_amount,) = parse_trade_amounts([amount])
        result = await self._ranker.find_best_route(trade_amount)
        self._watch_latest(
            request_id,
            lambda: self._ranker.find_best_route(trade_amount),
            best_route_snapshot,
            result,
        )
        return result

    async def get_all_possible_routes_with_quotes(
        self, amount: Decimal | str | int
    ) -> list[TriedRouteQuote]:
        """Per-route quotes for selling amount of token A, best first."""
        (trade_amount,) = parse_trade_amounts([amount])
        return await self._ranker.get_all_possible_routes_with_quotes(trade_amount)

    def unwatch(self) -> None:
        """Stop watching blocks and complete the quote_changed channel."""
        self._watcher.unwatch()

    def _begin_request(self) -> int:
        """Tear down the active watcher and number a new top-level call."""
        self.unwatch()
        self._request_seq += 1
        return self._request_seq

    def _watch_latest(
        self,
        request_id: int,
        recompute: Callable[[], Awaitable[Any]],
        snapshot: Callable[[Any, float], QuoteSnapshot],
        initial: Any,
    ) -> None:
        """Watch a finished quote unless a newer top-level call has started.

        Overlapping calls may finish in any order; the watcher must always
        follow the most recently requested quote.
        """
        if request_id != self._request_seq:
            logger.debug(
                "stale_quote_not_watched", request_id=request_id, latest=self._request_seq
            )
            return
        self.unwatch()
        self._watcher.watch(recompute, snapshot, initial)

    async def _quote_bid_ask(self, trade_amounts: list[Decimal]) -> list[BidAskQuote]:
        routes_a_to_b = await self._routes_a_to_b.get()
        routes_b_to_a = await self._routes_b_to_a.get()
        contexts = self._request_builder.build_batch(
            routes_a_to_b, routes_b_to_a, trade_amounts, self._settings.versions
        )
        results = await self._executor.execute(contexts)
        return list(self._aggregator.aggregate(results).values())

    async def _enumerate(self, token_from: Token, token_to: Token) -> AllPossibleRoutes:
        return self._enumerator.enumerate(
            token_from,
            token_to,
            self._settings.disable_multihop,
            self._settings.versions,
        )


__all__ = [
    "QuoterEngine",
    "RouteCache",
    "best_route_snapshot",
    "bid_ask_snapshot",
    "parse_trade_amounts",
]
