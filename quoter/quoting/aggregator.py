"""Decodes batch results and merges them into best bid/ask quotes."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

import structlog

from quoter.errors import UnsupportedVersion
from quoter.models.quote import BidAskQuote, CallTag, QuoteSide, TriedRouteQuote
from quoter.models.route import AllPossibleRoutes, ProtocolVersion
from quoter.models.token import Token
from quoter.models.types import from_base_units
from quoter.multicall import CallReturn, ContractCallResult

logger = structlog.get_logger()


class QuoteResultAggregator:
    """Decodes raw quote results into token B amounts and prices.

    Failed calls are reverted quotes (missing pool, no liquidity) and are
    dropped silently: that is how speculative routes get pruned.
    """

    def __init__(self, token_out: Token) -> None:
        """Initialize the aggregator.

        Args:
            token_out: Token every decoded amount is denominated in (token B)
        """
        self._token_out = token_out

    def aggregate(self, results: Sequence[ContractCallResult]) -> dict[Decimal, BidAskQuote]:
        """Merge all successful results into one BidAskQuote per trade amount.

        The highest bid and lowest ask win; on ties the first seen value is kept.

        Raises:
            UnsupportedVersion: If a result group is tagged with an unknown version
        """
        best: dict[Decimal, dict[QuoteSide, Decimal]] = {}
        pruned = 0

        for result in results:
            version = self._version(result.context.reference)
            for call_return in result.call_returns:
                if not call_return.success:
                    pruned += 1
                    continue

                tag = call_return.tag
                assert isinstance(tag, CallTag)
                price = self.converted_amount(version, call_return) / tag.trade_amount

                sides = best.setdefault(tag.trade_amount, {})
                current = sides.get(tag.side)
                if current is None:
                    sides[tag.side] = price
                elif tag.side == QuoteSide.BID and price > current:
                    sides[tag.side] = price
                elif tag.side == QuoteSide.ASK and price < current:
                    sides[tag.side] = price

        logger.debug("quote_results_aggregated", amounts=len(best), pruned_calls=pruned)
        return {
            amount: BidAskQuote(
                amount=amount,
                bid_price=sides.get(QuoteSide.BID),
                ask_price=sides.get(QuoteSide.ASK),
            )
            for amount, sides in best.items()
        }

    def tried_routes(
        self,
        results: Sequence[ContractCallResult],
        routes: AllPossibleRoutes,
    ) -> list[TriedRouteQuote]:
        """Per-route (unmerged) quotes for the routes that did not revert.

        Results keep the order of the batch, which follows route enumeration.
        """
        quotes: list[TriedRouteQuote] = []
        for result in results:
            version = self._version(result.context.reference)
            version_routes = routes.for_version(version)
            for call_return in result.call_returns:
                if not call_return.success:
                    continue
                tag = call_return.tag
                assert isinstance(tag, CallTag)
                route = version_routes[tag.route_index]
                quotes.append(
                    TriedRouteQuote(
                        route_path_array=route.route_path_array,
                        route_text=route.route_text,
                        version=version,
                        fee_tier=route.fee_tier,
                        amount=tag.trade_amount,
                        converted_amount=self.converted_amount(version, call_return),
                    )
                )
        return quotes

    def converted_amount(self, version: ProtocolVersion, call_return: CallReturn) -> Decimal:
        """Decimal token B amount of a successful call."""
        return from_base_units(self.raw_amount(version, call_return), self._token_out.decimals)

    @staticmethod
    def raw_amount(version: ProtocolVersion, call_return: CallReturn) -> int:
        """Pick the quoted integer amount out of a call's decoded values.

        - getAmountsOut: last element (output after the final hop)
        - getAmountsIn: first element (input required at the first hop)
        - v3 quoter methods: the single scalar
        """
        values = call_return.decoded_values
        if version == ProtocolVersion.V2:
            amounts = values[0]
            if call_return.method_name == "getAmountsOut":
                return int(amounts[-1])
            if call_return.method_name == "getAmountsIn":
                return int(amounts[0])
            raise UnsupportedVersion(f"Unknown v2 quote method: {call_return.method_name}")
        if version == ProtocolVersion.V3:
            return int(values[0])
        raise UnsupportedVersion(f"Invalid protocol version: {version}")

    @staticmethod
    def _version(reference: str) -> ProtocolVersion:
        try:
            return ProtocolVersion(reference)
        except ValueError as err:
            raise UnsupportedVersion(f"Invalid protocol version: {reference}") from err


__all__ = ["QuoteResultAggregator"]
