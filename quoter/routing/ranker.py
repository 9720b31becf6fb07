"""Best-route selection for a single trade amount."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from decimal import Decimal

import structlog

from quoter.errors import RouteNotFound
from quoter.models.quote import BestRouteQuotes, TriedRouteQuote
from quoter.models.route import AllPossibleRoutes, ProtocolVersion
from quoter.models.token import Token
from quoter.multicall import BatchExecutor
from quoter.quoting.aggregator import QuoteResultAggregator
from quoter.quoting.request_builder import QuoteRequestBuilder

logger = structlog.get_logger()

RoutesSource = Callable[[], Awaitable[AllPossibleRoutes]]


class RouteRanker:
    """Quotes every candidate route individually and picks the best one.

    The best route is the one with the highest output of token_to for the
    given input of token_from. Ties go to the earliest route in enumeration
    order (v2 routes before v3 routes), so the choice is reproducible.
    """

    def __init__(
        self,
        token_from: Token,
        token_to: Token,
        routes: RoutesSource,
        executor: BatchExecutor,
        request_builder: QuoteRequestBuilder,
        versions: Iterable[ProtocolVersion],
    ) -> None:
        """Initialize the ranker.

        Args:
            token_from: Input token (trade amounts are in this token)
            token_to: Output token
            routes: Coroutine returning the (cached) candidate routes
            executor: Batch call executor
            request_builder: Builder denominated in token_from
            versions: Enabled protocol versions
        """
        self._token_from = token_from
        self._token_to = token_to
        self._routes = routes
        self._executor = executor
        self._request_builder = request_builder
        self._aggregator = QuoteResultAggregator(token_to)
        self._versions = tuple(versions)

    async def get_all_possible_routes_with_quotes(
        self, trade_amount: Decimal
    ) -> list[TriedRouteQuote]:
        """Quote each surviving route, sorted by output (best first).

        The sort is stable, so routes with equal output keep enumeration order.
        """
        routes = await self._routes()
        contexts = self._request_builder.build_route_batch(routes, trade_amount, self._versions)
        results = await self._executor.execute(contexts)
        quotes = self._aggregator.tried_routes(results, routes)
        return sorted(quotes, key=lambda q: q.converted_amount, reverse=True)

    async def find_best_route(self, trade_amount: Decimal) -> BestRouteQuotes:
        """Find the route giving the most token_to for trade_amount of token_from.

        Raises:
            RouteNotFound: If every candidate route reverted
        """
        tried = await self.get_all_possible_routes_with_quotes(trade_amount)
        if not tried:
            logger.info(
                "no_route_found",
                token_from=self._token_from.symbol,
                token_to=self._token_to.symbol,
                amount=str(trade_amount),
            )
            raise RouteNotFound(
                f"No routes found for {self._token_from.symbol} > {self._token_to.symbol}"
            )

        best = tried[0]
        logger.debug(
            "best_route_found",
            route=best.route_text,
            version=best.version.value,
            fee_tier=best.fee_tier,
            converted_amount=str(best.converted_amount),
            tried=len(tried),
        )
        return BestRouteQuotes(best_route_quote=best, tried_routes_quote=tried)


__all__ = ["RouteRanker", "RoutesSource"]
