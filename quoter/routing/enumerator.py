"""Candidate route enumeration.

Routes are speculative: every path through the base-token whitelist is
emitted without checking that its pools exist. Paths through missing or
illiquid pools revert when quoted and are pruned by the aggregator.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from itertools import permutations

import structlog

from quoter.constants import V3_FEE_TIERS
from quoter.models.route import AllPossibleRoutes, ProtocolVersion, RouteContext
from quoter.models.token import Token
from quoter.models.types import same_address

logger = structlog.get_logger()


class RouteEnumerator:
    """Generates candidate token paths between two tokens, per protocol version.

    Enumeration order is stable: the direct path first, then single
    intermediaries in whitelist order, then ordered pairs of intermediaries.
    Downstream route indices therefore reproduce across calls.

    Usage:
        enumerator = RouteEnumerator(base_tokens, wrapped_native=WETH)
        routes = enumerator.enumerate(fun, rep, False, (ProtocolVersion.V2,))
    """

    def __init__(
        self,
        base_tokens: Sequence[Token],
        wrapped_native: str,
        max_intermediaries: int = 1,
        fee_tiers: Sequence[int] = V3_FEE_TIERS,
    ) -> None:
        """Initialize the enumerator.

        Args:
            base_tokens: High-liquidity intermediaries, in iteration order
            wrapped_native: Wrapped native token address; skipped as an
                intermediary when native ETH is an endpoint
            max_intermediaries: Longest chain of intermediaries to emit
            fee_tiers: V3 fee tiers each v3 path is multiplied by
        """
        self._base_tokens = tuple(base_tokens)
        self._wrapped_native = wrapped_native
        self._max_intermediaries = max_intermediaries
        self._fee_tiers = tuple(fee_tiers)

    def enumerate(
        self,
        token_from: Token,
        token_to: Token,
        disable_multihop: bool,
        versions: Iterable[ProtocolVersion],
    ) -> AllPossibleRoutes:
        """Enumerate candidate routes for every enabled protocol version.

        Args:
            token_from: Input token
            token_to: Output token
            disable_multihop: Only emit the direct path
            versions: Enabled protocol versions

        Returns:
            AllPossibleRoutes with an entry list per version (empty when disabled)
        """
        paths = self.candidate_paths(token_from, token_to, disable_multihop)
        enabled = set(versions)

        v2: tuple[RouteContext, ...] = ()
        v3: tuple[RouteContext, ...] = ()
        if ProtocolVersion.V2 in enabled:
            v2 = tuple(RouteContext(route=path, version=ProtocolVersion.V2) for path in paths)
        if ProtocolVersion.V3 in enabled:
            v3 = tuple(
                RouteContext(route=path, version=ProtocolVersion.V3, fee_tier=fee)
                for path in paths
                for fee in self._fee_tiers
            )

        logger.debug(
            "routes_enumerated",
            token_from=token_from.symbol,
            token_to=token_to.symbol,
            disable_multihop=disable_multihop,
            path_count=len(paths),
            v2_routes=len(v2),
            v3_routes=len(v3),
        )
        return AllPossibleRoutes(v2=v2, v3=v3)

    def candidate_paths(
        self,
        token_from: Token,
        token_to: Token,
        disable_multihop: bool,
    ) -> list[tuple[Token, ...]]:
        """Token paths from token_from to token_to, direct path first.

        Path types by intermediaries:
        - Direct: (from, to)
        - 1 intermediary: (from, base, to)
        - 2 intermediaries: (from, base1, base2, to)
        """
        paths: list[tuple[Token, ...]] = [(token_from, token_to)]
        if disable_multihop or self._max_intermediaries == 0:
            return paths

        intermediaries = self._intermediaries(token_from, token_to)
        for hops in range(1, self._max_intermediaries + 1):
            for chain in permutations(intermediaries, hops):
                paths.append((token_from, *chain, token_to))
        return paths

    def _intermediaries(self, token_from: Token, token_to: Token) -> list[Token]:
        """Whitelisted base tokens usable between token_from and token_to."""
        native_endpoint = token_from.is_native_eth or token_to.is_native_eth
        usable = []
        for base in self._base_tokens:
            if base == token_from or base == token_to:
                continue
            # ETH trades through its wrapped token already, so WETH as a hop would repeat a pool
            if native_endpoint and same_address(base.contract_address, self._wrapped_native):
                continue
            usable.append(base)
        return usable
