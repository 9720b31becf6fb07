"""Offline batch executor backed by in-memory constant-product pools.

Answers the same calls as the on-chain router and quoter so the engine can
run without a node. Pools follow x * y = k with the fee taken on input;
v3 pools are approximated the same way, one pool per fee tier.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from quoter.encoding import decode_v3_path
from quoter.errors import CallFailure, NetworkFailure
from quoter.models.types import normalize_address
from quoter.multicall import CallReturn, ContractCallContext, ContractCallResult

logger = structlog.get_logger()

# Fees are in hundredths of a basis point: 3000 = 0.3%
FEE_DENOMINATOR = 1_000_000
V2_FEE = 3000


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee: int = V2_FEE) -> int:
    """Output for an exact input.

    Formula: amount_out = (in * (1 - fee) * res_out) / (res_in + in * (1 - fee))

    Raises:
        CallFailure: On zero input or an empty pool (the contracts revert)
    """
    if amount_in <= 0:
        raise CallFailure("INSUFFICIENT_INPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0:
        raise CallFailure("INSUFFICIENT_LIQUIDITY")

    amount_in_with_fee = amount_in * (FEE_DENOMINATOR - fee)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int, fee: int = V2_FEE) -> int:
    """Input required for an exact output (rounded up).

    Formula: amount_in = (res_in * out) / ((res_out - out) * (1 - fee)) + 1

    Raises:
        CallFailure: On zero output or when the output would drain the pool
    """
    if amount_out <= 0:
        raise CallFailure("INSUFFICIENT_OUTPUT_AMOUNT")
    if reserve_in <= 0 or amount_out >= reserve_out:
        raise CallFailure("INSUFFICIENT_LIQUIDITY")

    numerator = reserve_in * amount_out * FEE_DENOMINATOR
    denominator = (reserve_out - amount_out) * (FEE_DENOMINATOR - fee)
    return numerator // denominator + 1


@dataclass
class SimulatedPool:
    """A two-token constant-product pool."""

    token0: str
    token1: str
    reserve0: int
    reserve1: int
    fee: int = V2_FEE

    def get_reserves(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        token_in_norm = normalize_address(token_in)
        if token_in_norm == normalize_address(self.token0):
            return self.reserve0, self.reserve1
        if token_in_norm == normalize_address(self.token1):
            return self.reserve1, self.reserve0
        raise CallFailure(f"Token {token_in} not in pool")


class SimulatedPools:
    """Registry of simulated v2 and v3 pools keyed by token pair (and fee)."""

    def __init__(self) -> None:
        self._v2: dict[frozenset[str], SimulatedPool] = {}
        self._v3: dict[tuple[frozenset[str], int], SimulatedPool] = {}

    @staticmethod
    def _pair(token_a: str, token_b: str) -> frozenset[str]:
        return frozenset((normalize_address(token_a), normalize_address(token_b)))

    def add_v2_pool(self, token_a: str, token_b: str, reserve_a: int, reserve_b: int) -> None:
        """Add (or replace) the v2 pool for a pair."""
        self._v2[self._pair(token_a, token_b)] = SimulatedPool(
            token0=token_a, token1=token_b, reserve0=reserve_a, reserve1=reserve_b
        )

    def add_v3_pool(
        self,
        token_a: str,
        token_b: str,
        fee: int,
        reserve_a: int,
        reserve_b: int,
    ) -> None:
        """Add (or replace) the v3 pool for a pair and fee tier."""
        self._v3[(self._pair(token_a, token_b), fee)] = SimulatedPool(
            token0=token_a, token1=token_b, reserve0=reserve_a, reserve1=reserve_b, fee=fee
        )

    def v2_pool(self, token_a: str, token_b: str) -> SimulatedPool:
        pool = self._v2.get(self._pair(token_a, token_b))
        if pool is None:
            raise CallFailure(f"No v2 pool for {token_a}/{token_b}")
        return pool

    def v3_pool(self, token_a: str, token_b: str, fee: int) -> SimulatedPool:
        pool = self._v3.get((self._pair(token_a, token_b), fee))
        if pool is None:
            raise CallFailure(f"No v3 pool for {token_a}/{token_b} at fee {fee}")
        return pool


class SimulatedBatchExecutor:
    """BatchExecutor answering router and quoter calls from SimulatedPools.

    Tracks executed batches and calls for assertions.
    """

    def __init__(self, pools: SimulatedPools, network_error: str | None = None) -> None:
        """Initialize the executor.

        Args:
            pools: Pools to quote against
            network_error: If set, every batch fails with NetworkFailure
        """
        self.pools = pools
        self.network_error = network_error
        self.batch_count = 0
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []  # (reference, method, params)

    async def execute(
        self,
        contexts: Sequence[ContractCallContext],
    ) -> list[ContractCallResult]:
        self.batch_count += 1
        if self.network_error is not None:
            raise NetworkFailure(self.network_error)

        results = []
        for context in contexts:
            call_returns = []
            for call in context.calls:
                self.calls.append((context.reference, call.method_name, call.method_parameters))
                try:
                    values = self._dispatch(call.method_name, call.method_parameters)
                except CallFailure as e:
                    logger.debug("simulated_call_reverted", method=call.method_name, reason=str(e))
                    call_returns.append(
                        CallReturn(tag=call.tag, method_name=call.method_name, success=False)
                    )
                    continue
                call_returns.append(
                    CallReturn(
                        tag=call.tag,
                        method_name=call.method_name,
                        success=True,
                        decoded_values=values,
                    )
                )
            results.append(ContractCallResult(context=context, call_returns=call_returns))
        return results

    def _dispatch(self, method_name: str, params: tuple[Any, ...]) -> tuple[Any, ...]:
        if method_name == "getAmountsOut":
            amount_in, path = params
            return (self._v2_amounts_out(amount_in, list(path)),)
        if method_name == "getAmountsIn":
            amount_out, path = params
            return (self._v2_amounts_in(amount_out, list(path)),)
        if method_name == "quoteExactInputSingle":
            token_in, token_out, fee, amount_in, _ = params
            return (self._v3_exact_input([token_in, token_out], [fee], amount_in),)
        if method_name == "quoteExactOutputSingle":
            token_in, token_out, fee, amount_out, _ = params
            return (self._v3_exact_output([token_in, token_out], [fee], amount_out),)
        if method_name == "quoteExactInput":
            path, amount_in = params
            tokens, fees = decode_v3_path(path)
            return (self._v3_exact_input(tokens, fees, amount_in),)
        if method_name == "quoteExactOutput":
            path, amount_out = params
            tokens, fees = decode_v3_path(path)
            # Exact-output paths start at the output token
            tokens.reverse()
            fees.reverse()
            return (self._v3_exact_output(tokens, fees, amount_out),)
        raise CallFailure(f"Unsupported method: {method_name}")

    def _v2_amounts_out(self, amount_in: int, path: list[str]) -> list[int]:
        if len(path) < 2:
            raise CallFailure("INVALID_PATH")
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:], strict=False):
            reserve_in, reserve_out = self.pools.v2_pool(token_in, token_out).get_reserves(token_in)
            amounts.append(get_amount_out(amounts[-1], reserve_in, reserve_out))
        return amounts

    def _v2_amounts_in(self, amount_out: int, path: list[str]) -> list[int]:
        if len(path) < 2:
            raise CallFailure("INVALID_PATH")
        amounts = [0] * len(path)
        amounts[-1] = amount_out
        for i in range(len(path) - 1, 0, -1):
            token_in, token_out = path[i - 1], path[i]
            reserve_in, reserve_out = self.pools.v2_pool(token_in, token_out).get_reserves(token_in)
            amounts[i - 1] = get_amount_in(amounts[i], reserve_in, reserve_out)
        return amounts

    def _v3_exact_input(self, tokens: list[str], fees: list[int], amount_in: int) -> int:
        amount = amount_in
        hops = zip(tokens, tokens[1:], strict=False)
        for (token_in, token_out), fee in zip(hops, fees, strict=True):
            pool = self.pools.v3_pool(token_in, token_out, fee)
            reserve_in, reserve_out = pool.get_reserves(token_in)
            amount = get_amount_out(amount, reserve_in, reserve_out, fee)
        return amount

    def _v3_exact_output(self, tokens: list[str], fees: list[int], amount_out: int) -> int:
        """tokens run input -> output; walk backwards from the output."""
        amount = amount_out
        for i in range(len(tokens) - 1, 0, -1):
            token_in, token_out = tokens[i - 1], tokens[i]
            pool = self.pools.v3_pool(token_in, token_out, fees[i - 1])
            reserve_in, reserve_out = pool.get_reserves(token_in)
            amount = get_amount_in(amount, reserve_in, reserve_out, fees[i - 1])
        return amount


__all__ = [
    "SimulatedBatchExecutor",
    "SimulatedPool",
    "SimulatedPools",
    "get_amount_in",
    "get_amount_out",
]
