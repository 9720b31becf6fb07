"""Batched read-only call execution.

The engine only depends on the BatchExecutor shape: a list of contract call
contexts in, a per-call success flag and decoded values out. Transport lives
in the executor implementation.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from quoter.abi import MULTICALL3_ABI
from quoter.constants import MULTICALL3_ADDRESS
from quoter.encoding import decode_result, encode_call
from quoter.errors import NetworkFailure, QuoterError

if TYPE_CHECKING:
    from quoter.providers import ChainProvider

logger = structlog.get_logger()


@dataclass(frozen=True)
class CallContext:
    """One read-only call inside a contract call context.

    Attributes:
        tag: Caller-defined key returned with the call's result
        method_name: ABI function name
        method_parameters: Positional arguments for the function
    """

    tag: Hashable
    method_name: str
    method_parameters: tuple[Any, ...]


@dataclass
class ContractCallContext:
    """All calls against one target contract.

    Attributes:
        reference: Label for the group (the protocol version for quote batches)
        contract_address: Target contract
        abi: ABI covering every method in calls
        calls: Calls to run, in order
    """

    reference: str
    contract_address: str
    abi: list[dict[str, Any]]
    calls: list[CallContext] = field(default_factory=list)


@dataclass(frozen=True)
class CallReturn:
    """Result of one call; decoded_values is empty when the call failed."""

    tag: Hashable
    method_name: str
    success: bool
    decoded_values: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ContractCallResult:
    """Results for one ContractCallContext, in call order."""

    context: ContractCallContext
    call_returns: list[CallReturn]


class BatchExecutor(Protocol):
    """Protocol for batch call executors.

    Implementations run every call of every context as one unit and either
    return all results or raise NetworkFailure. A reverted call is reported
    as an unsuccessful CallReturn, never raised.
    """

    async def execute(
        self,
        contexts: Sequence[ContractCallContext],
    ) -> list[ContractCallResult]:
        """Execute all contexts; results are aligned with the input order."""
        ...


class Web3MulticallExecutor:
    """Executes batches through Multicall3.aggregate3 in a single eth_call.

    Every call is sent with allowFailure=True so reverting quotes (missing
    pools, insufficient liquidity) come back as failures instead of
    reverting the whole batch.
    """

    def __init__(self, provider: ChainProvider, multicall_address: str = MULTICALL3_ADDRESS):
        """Initialize the executor.

        Args:
            provider: Chain provider used for the eth_call
            multicall_address: Multicall3 deployment address
        """
        self._provider = provider
        self._multicall_address = to_checksum_address(multicall_address)

    async def execute(
        self,
        contexts: Sequence[ContractCallContext],
    ) -> list[ContractCallResult]:
        calls: list[tuple[str, bool, bytes]] = []
        for context in contexts:
            target = to_checksum_address(context.contract_address)
            for call in context.calls:
                calldata = encode_call(context.abi, call.method_name, call.method_parameters)
                calls.append((target, True, calldata))

        if not calls:
            return [ContractCallResult(context=c, call_returns=[]) for c in contexts]

        data = encode_call(MULTICALL3_ABI, "aggregate3", (calls,))
        try:
            raw = await self._provider.eth_call(self._multicall_address, data)
        except QuoterError:
            raise
        except Exception as e:
            logger.warning("multicall_request_failed", call_count=len(calls), error=str(e))
            raise NetworkFailure(f"Batch call of {len(calls)} calls failed: {e}") from e

        try:
            (returns,) = decode_result(MULTICALL3_ABI, "aggregate3", raw)
        except DecodingError as e:
            raise NetworkFailure(f"Malformed multicall response: {e}") from e

        if len(returns) != len(calls):
            raise NetworkFailure(
                f"Multicall returned {len(returns)} results for {len(calls)} calls"
            )

        results: list[ContractCallResult] = []
        position = 0
        for context in contexts:
            call_returns = []
            for call in context.calls:
                success, return_data = returns[position]
                position += 1
                call_returns.append(self._decode_call(context, call, success, return_data))
            results.append(ContractCallResult(context=context, call_returns=call_returns))

        logger.debug(
            "multicall_executed",
            call_count=len(calls),
            failed=sum(not r.success for res in results for r in res.call_returns),
        )
        return results

    @staticmethod
    def _decode_call(
        context: ContractCallContext,
        call: CallContext,
        success: bool,
        return_data: bytes,
    ) -> CallReturn:
        """Decode one aggregate3 entry; undecodable data counts as a failed call."""
        if not success:
            return CallReturn(tag=call.tag, method_name=call.method_name, success=False)
        try:
            values = decode_result(context.abi, call.method_name, return_data)
        except DecodingError:
            # Calls to addresses without code succeed with empty return data
            return CallReturn(tag=call.tag, method_name=call.method_name, success=False)
        return CallReturn(
            tag=call.tag,
            method_name=call.method_name,
            success=True,
            decoded_values=values,
        )


__all__ = [
    "BatchExecutor",
    "CallContext",
    "CallReturn",
    "ContractCallContext",
    "ContractCallResult",
    "Web3MulticallExecutor",
]
