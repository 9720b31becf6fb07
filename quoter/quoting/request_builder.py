"""Turns candidate routes and trade amounts into tagged batch calls."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

import structlog

from quoter.abi import UNISWAP_V2_ROUTER_ABI, UNISWAP_V3_QUOTER_ABI
from quoter.config import CloneContracts
from quoter.encoding import encode_v3_path
from quoter.models.quote import CallTag, QuoteSide
from quoter.models.route import AllPossibleRoutes, ProtocolVersion, RouteContext
from quoter.models.token import Token
from quoter.models.types import checksum_address, to_base_units
from quoter.multicall import CallContext, ContractCallContext

logger = structlog.get_logger()

# sqrtPriceLimitX96 = 0 means no price limit
NO_PRICE_LIMIT = 0


class QuoteRequestBuilder:
    """Builds one ContractCallContext per enabled protocol version.

    Call shapes:
    | version | side | method                                          |
    |---------|------|-------------------------------------------------|
    | v2      | bid  | getAmountsOut(amountIn, pathAtoB)               |
    | v2      | ask  | getAmountsIn(amountOut, pathBtoA)               |
    | v3      | bid  | quoteExactInputSingle / quoteExactInput(path)   |
    | v3      | ask  | quoteExactOutputSingle / quoteExactOutput(path) |

    Trade amounts are always denominated in token A: bids sell that much
    token A, asks buy that much token A with token B.
    """

    def __init__(
        self,
        token_a: Token,
        wrapped_native: str,
        contracts: CloneContracts | None = None,
    ) -> None:
        """Initialize the builder.

        Args:
            token_a: Token trade amounts are denominated in
            wrapped_native: Address substituted for native ETH in calldata
            contracts: Router/quoter addresses (defaults to Uniswap mainnet)
        """
        self._token_a = token_a
        self._wrapped_native = checksum_address(wrapped_native)
        self._contracts = contracts or CloneContracts()

    def build_batch(
        self,
        routes_a_to_b: AllPossibleRoutes,
        routes_b_to_a: AllPossibleRoutes,
        trade_amounts: Sequence[Decimal],
        versions: Iterable[ProtocolVersion],
    ) -> list[ContractCallContext]:
        """Build the bid/ask batch for every trade amount and route.

        Args:
            routes_a_to_b: Routes selling token A (bid side)
            routes_b_to_a: Routes paying token B for token A (ask side)
            trade_amounts: Human amounts of token A
            versions: Enabled protocol versions

        Returns:
            One ContractCallContext per enabled version, v2 before v3
        """
        contexts = []
        for version in self._ordered(versions):
            context = self._empty_context(version)
            for amount in trade_amounts:
                raw_amount = to_base_units(amount, self._token_a.decimals)
                for i, route in enumerate(routes_a_to_b.for_version(version)):
                    tag = CallTag(route_index=i, trade_amount=amount, side=QuoteSide.BID)
                    context.calls.append(self._bid_call(route, raw_amount, tag))
                for i, route in enumerate(routes_b_to_a.for_version(version)):
                    tag = CallTag(route_index=i, trade_amount=amount, side=QuoteSide.ASK)
                    context.calls.append(self._ask_call(route, raw_amount, tag))
            contexts.append(context)

        logger.debug(
            "quote_batch_built",
            amounts=[str(a) for a in trade_amounts],
            calls={c.reference: len(c.calls) for c in contexts},
        )
        return contexts

    def build_route_batch(
        self,
        routes: AllPossibleRoutes,
        trade_amount: Decimal,
        versions: Iterable[ProtocolVersion],
    ) -> list[ContractCallContext]:
        """Build exact-input calls quoting each route individually (bid side only)."""
        raw_amount = to_base_units(trade_amount, self._token_a.decimals)
        contexts = []
        for version in self._ordered(versions):
            context = self._empty_context(version)
            for i, route in enumerate(routes.for_version(version)):
                tag = CallTag(route_index=i, trade_amount=trade_amount, side=QuoteSide.BID)
                context.calls.append(self._bid_call(route, raw_amount, tag))
            contexts.append(context)
        return contexts

    @staticmethod
    def _ordered(versions: Iterable[ProtocolVersion]) -> list[ProtocolVersion]:
        enabled = set(versions)
        return [v for v in (ProtocolVersion.V2, ProtocolVersion.V3) if v in enabled]

    def _empty_context(self, version: ProtocolVersion) -> ContractCallContext:
        if version == ProtocolVersion.V2:
            return ContractCallContext(
                reference=version.value,
                contract_address=self._contracts.v2_router,
                abi=UNISWAP_V2_ROUTER_ABI,
            )
        return ContractCallContext(
            reference=version.value,
            contract_address=self._contracts.v3_quoter,
            abi=UNISWAP_V3_QUOTER_ABI,
        )

    def _call_path(self, route: RouteContext) -> list[str]:
        """Route addresses as sent on-chain (native ETH becomes the wrapped token)."""
        return [
            self._wrapped_native if token.is_native_eth else token.contract_address
            for token in route.route
        ]

    def _bid_call(self, route: RouteContext, amount_in: int, tag: CallTag) -> CallContext:
        path = self._call_path(route)
        if route.version == ProtocolVersion.V2:
            return CallContext(tag, "getAmountsOut", (amount_in, path))

        assert route.fee_tier is not None
        if route.is_direct:
            return CallContext(
                tag,
                "quoteExactInputSingle",
                (path[0], path[1], route.fee_tier, amount_in, NO_PRICE_LIMIT),
            )
        encoded = encode_v3_path(path, [route.fee_tier] * (len(path) - 1))
        return CallContext(tag, "quoteExactInput", (encoded, amount_in))

    def _ask_call(self, route: RouteContext, amount_out: int, tag: CallTag) -> CallContext:
        # route runs B -> A: B is paid in, amount_out of A comes out
        path = self._call_path(route)
        if route.version == ProtocolVersion.V2:
            return CallContext(tag, "getAmountsIn", (amount_out, path))

        assert route.fee_tier is not None
        if route.is_direct:
            return CallContext(
                tag,
                "quoteExactOutputSingle",
                (path[0], path[1], route.fee_tier, amount_out, NO_PRICE_LIMIT),
            )
        # Exact-output paths are encoded from the output token backwards
        reversed_path = list(reversed(path))
        encoded = encode_v3_path(reversed_path, [route.fee_tier] * (len(path) - 1))
        return CallContext(tag, "quoteExactOutput", (encoded, amount_out))


__all__ = ["QuoteRequestBuilder", "NO_PRICE_LIMIT"]
