"""Block-driven quote watching.

While watching, every new block recomputes the last requested quote and
publishes it on a QuoteChannel only when it changed meaningfully or the
held quote expired.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

import structlog

from quoter.constants import BLOCK_EVENT
from quoter.errors import QuoterError
from quoter.providers import ChainProvider

logger = structlog.get_logger()

T = TypeVar("T")


class QuoteChannel(Generic[T]):
    """Publish/subscribe channel for quote updates.

    Closing is idempotent and final: completion callbacks run once and
    nothing is delivered afterwards.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[Callable[[T], None], Callable[[], None] | None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_complete: Callable[[], None] | None = None,
    ) -> Callable[[], None]:
        """Register callbacks and return a function that removes them.

        Subscribing to a closed channel completes immediately.
        """
        if self._closed:
            if on_complete is not None:
                on_complete()
            return lambda: None

        entry = (on_next, on_complete)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, value: T) -> bool:
        """Deliver value to every subscriber; returns False once closed."""
        if self._closed:
            return False
        for on_next, _ in list(self._subscribers):
            on_next(value)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subscribers, self._subscribers = self._subscribers, []
        for _, on_complete in subscribers:
            if on_complete is not None:
                on_complete()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)


@dataclass(frozen=True)
class QuoteFingerprint:
    """The parts of a quote whose change is worth announcing.

    Attributes:
        label: Route text for route quotes, "<amount>:<side>" for bid/ask quotes
        price: Quoted price or output amount (None when the side is missing)
        fee_tier: V3 fee tier, if any
    """

    label: str
    price: Decimal | None
    fee_tier: int | None = None


@dataclass(frozen=True)
class QuoteSnapshot:
    """Fingerprints of a held quote plus the time it stops being valid."""

    fingerprints: tuple[QuoteFingerprint, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def price_moved(old: Decimal | None, new: Decimal | None, tolerance: Decimal) -> bool:
    """True when a price appeared, vanished, or moved more than tolerance (relative)."""
    if old is None or new is None:
        return old is not new
    if old == 0:
        return new != 0
    return abs(new - old) > tolerance * abs(old)


def has_meaningful_change(
    held: QuoteSnapshot,
    fresh: QuoteSnapshot,
    now: float,
    tolerance: Decimal = Decimal(0),
) -> bool:
    """Decide whether a recomputed quote should be announced.

    Args:
        held: Snapshot of the quote currently held by the watcher
        fresh: Snapshot of the recomputed quote
        now: Current unix time
        tolerance: Relative price move ignored as noise

    Returns:
        True if the held quote expired, or any label, fee tier or price differs
    """
    if held.is_expired(now):
        return True
    if len(held.fingerprints) != len(fresh.fingerprints):
        return True
    for old, new in zip(held.fingerprints, fresh.fingerprints, strict=True):
        if old.label != new.label or old.fee_tier != new.fee_tier:
            return True
        if price_moved(old.price, new.price, tolerance):
            return True
    return False


class WatcherState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"


Recompute = Callable[[], Awaitable[Any]]
Snapshotter = Callable[[Any, float], QuoteSnapshot]


class PriceWatcher:
    """Re-quotes on every new block and emits on meaningful change.

    States: idle -> watching -> idle. At most one block subscription is
    active per watcher; watch() while watching and unwatch() while idle are
    no-ops.

    Usage:
        watcher = PriceWatcher(provider, quote_ttl_seconds=1200)
        watcher.watch(recompute, snapshot, initial_quote)
        watcher.channel.subscribe(on_quote)
        ...
        watcher.unwatch()
    """

    def __init__(
        self,
        provider: ChainProvider,
        quote_ttl_seconds: float,
        price_change_tolerance: Decimal = Decimal(0),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._provider = provider
        self._ttl = quote_ttl_seconds
        self._tolerance = price_change_tolerance
        self._clock = clock

        self._state = WatcherState.IDLE
        self._channel: QuoteChannel[Any] = QuoteChannel()
        self._channel.close()
        self._recompute: Recompute | None = None
        self._snapshot: Snapshotter | None = None
        self._held: QuoteSnapshot | None = None
        self._recompute_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[bool]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def channel(self) -> QuoteChannel[Any]:
        """Channel of the current watch session (closed while idle)."""
        return self._channel

    @property
    def held_snapshot(self) -> QuoteSnapshot | None:
        return self._held

    def watch(self, recompute: Recompute, snapshot: Snapshotter, initial: Any) -> None:
        """Start watching blocks, holding initial as the current quote.

        Args:
            recompute: Coroutine function producing a fresh quote
            snapshot: Builds a QuoteSnapshot from a quote and its expiry time
            initial: The quote just returned to the caller
        """
        if self._state == WatcherState.WATCHING:
            return

        self._recompute = recompute
        self._snapshot = snapshot
        self._held = snapshot(initial, self._clock() + self._ttl)
        self._channel = QuoteChannel()
        self._loop = asyncio.get_running_loop()
        self._provider.subscribe(BLOCK_EVENT, self._on_block)
        self._state = WatcherState.WATCHING
        logger.debug("price_watch_started")

    def unwatch(self) -> None:
        """Cancel the block subscription and complete the channel."""
        if self._state == WatcherState.IDLE:
            return

        self._provider.unsubscribe(BLOCK_EVENT, self._on_block)
        self._state = WatcherState.IDLE
        self._channel.close()
        self._recompute = None
        self._snapshot = None
        self._held = None
        self._loop = None
        logger.debug("price_watch_stopped", pending_recomputes=len(self._tasks))

    def _on_block(self, block_number: int) -> None:
        """Provider callback: hand the block to the watching loop without blocking.

        Safe to call from any thread; the recompute always runs on the event
        loop that started watching.
        """
        loop = self._loop
        if self._state != WatcherState.WATCHING or loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_recompute, block_number)

    def _schedule_recompute(self, block_number: int) -> None:
        if self._state != WatcherState.WATCHING or self._loop is None:
            return
        task = self._loop.create_task(self.handle_new_block(block_number))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_new_block(self, block_number: int) -> bool:
        """Recompute the held quote for a new block.

        Recomputes for successive blocks never overlap; a block arriving
        while one is in flight is skipped since the next block re-triggers.

        Returns:
            True if an update was published
        """
        if self._state != WatcherState.WATCHING or self._recompute_lock.locked():
            return False

        async with self._recompute_lock:
            channel = self._channel
            recompute, snapshot = self._recompute, self._snapshot
            if recompute is None or snapshot is None or self._held is None:
                return False

            try:
                value = await recompute()
            except QuoterError as e:
                logger.warning(
                    "watch_recompute_failed",
                    block=block_number,
                    error=str(e),
                    code=e.code.value,
                )
                return False
            except Exception as e:
                logger.warning(
                    "watch_recompute_failed",
                    block=block_number,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False

            # Unwatched (or restarted) while the recompute was in flight
            if channel is not self._channel or channel.closed:
                return False

            now = self._clock()
            fresh = snapshot(value, now + self._ttl)
            if not has_meaningful_change(self._held, fresh, now, self._tolerance):
                return False

            self._held = fresh
            logger.info("quote_changed", block=block_number)
            return channel.publish(value)


__all__ = [
    "PriceWatcher",
    "QuoteChannel",
    "QuoteFingerprint",
    "QuoteSnapshot",
    "WatcherState",
    "has_meaningful_change",
    "price_moved",
]
