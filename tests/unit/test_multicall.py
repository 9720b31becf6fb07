"""Tests for the Multicall3 batch executor."""

import pytest
from eth_abi import decode, encode

from quoter.abi import UNISWAP_V2_ROUTER_ABI, UNISWAP_V3_QUOTER_ABI
from quoter.constants import MULTICALL3_ADDRESS
from quoter.errors import ErrorCode, NetworkFailure
from quoter.multicall import CallContext, ContractCallContext, Web3MulticallExecutor
from tests.helpers import FUN, REP, WETH, FakeChainProvider

AGGREGATE3_RESULT = ["(bool,bytes)[]"]


def v2_context(*calls: CallContext) -> ContractCallContext:
    return ContractCallContext(
        reference="v2",
        contract_address="0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
        abi=UNISWAP_V2_ROUTER_ABI,
        calls=list(calls),
    )


class FailingProvider(FakeChainProvider):
    async def eth_call(self, to: str, data: bytes) -> bytes:
        raise ConnectionError("connection refused")


class TestWeb3MulticallExecutor:
    """Tests for Web3MulticallExecutor."""

    @pytest.mark.asyncio
    async def test_single_round_trip(self):
        """All calls of all contexts go out in one aggregate3 eth_call."""
        provider = FakeChainProvider()
        provider.call_result = encode(
            AGGREGATE3_RESULT,
            [
                [
                    (True, encode(["uint256[]"], [[100, 5, 7]])),
                    (True, encode(["uint256"], [42])),
                ]
            ],
        )
        executor = Web3MulticallExecutor(provider)
        v3 = ContractCallContext(
            reference="v3",
            contract_address="0xb27308f9f90d607463bb33ea1bebb41c27ce5ab6",
            abi=UNISWAP_V3_QUOTER_ABI,
            calls=[CallContext("b", "quoteExactInputSingle", (FUN, REP, 3000, 10**8, 0))],
        )

        results = await executor.execute(
            [v2_context(CallContext("a", "getAmountsOut", (100, [FUN, WETH, REP]))), v3]
        )

        assert len(provider.eth_calls) == 1
        to, data = provider.eth_calls[0]
        assert to.lower() == MULTICALL3_ADDRESS
        (calls,) = decode(["(address,bool,bytes)[]"], data[4:])
        assert len(calls) == 2
        assert all(allow_failure for _, allow_failure, _ in calls)

        v2_returns = results[0].call_returns
        assert v2_returns[0].success
        assert v2_returns[0].tag == "a"
        assert list(v2_returns[0].decoded_values[0]) == [100, 5, 7]
        assert results[1].call_returns[0].decoded_values == (42,)

    @pytest.mark.asyncio
    async def test_reverted_and_empty_calls_fail(self):
        """Reverted calls and calls with undecodable data are marked failed."""
        provider = FakeChainProvider()
        provider.call_result = encode(AGGREGATE3_RESULT, [[(False, b""), (True, b"")]])
        executor = Web3MulticallExecutor(provider)

        results = await executor.execute(
            [
                v2_context(
                    CallContext("a", "getAmountsOut", (100, [FUN, REP])),
                    CallContext("b", "getAmountsIn", (100, [REP, FUN])),
                )
            ]
        )

        assert [r.success for r in results[0].call_returns] == [False, False]

    @pytest.mark.asyncio
    async def test_empty_batch_skips_network(self):
        """A batch without calls never touches the provider."""
        provider = FakeChainProvider()
        executor = Web3MulticallExecutor(provider)

        results = await executor.execute([v2_context()])

        assert provider.eth_calls == []
        assert results[0].call_returns == []

    @pytest.mark.asyncio
    async def test_transport_error_is_network_failure(self):
        """Transport exceptions surface as NetworkFailure."""
        executor = Web3MulticallExecutor(FailingProvider())

        with pytest.raises(NetworkFailure) as exc_info:
            await executor.execute([v2_context(CallContext("a", "getAmountsOut", (1, [FUN, REP])))])

        assert exc_info.value.code == ErrorCode.NETWORK_REQUEST_FAILED
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_result_count_mismatch(self):
        """A response with the wrong number of results is rejected."""
        provider = FakeChainProvider()
        provider.call_result = encode(AGGREGATE3_RESULT, [[]])
        executor = Web3MulticallExecutor(provider)

        with pytest.raises(NetworkFailure, match="0 results for 1 calls"):
            await executor.execute([v2_context(CallContext("a", "getAmountsOut", (1, [FUN, REP])))])

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        """Undecodable aggregate3 responses are network failures."""
        provider = FakeChainProvider()
        provider.call_result = b"\x00"
        executor = Web3MulticallExecutor(provider)

        with pytest.raises(NetworkFailure, match="Malformed"):
            await executor.execute([v2_context(CallContext("a", "getAmountsOut", (1, [FUN, REP])))])
