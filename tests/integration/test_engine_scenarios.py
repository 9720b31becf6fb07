"""End-to-end quoting scenarios against simulated pools.

These run the full stack (Quoter -> engine -> request builder -> executor ->
aggregator -> watcher) without a node.
"""

import asyncio

import pytest

from quoter import Quoter
from quoter.config import QuoterSettings
from quoter.constants import BASE_TOKENS, V3_FEE_MEDIUM, ChainId
from quoter.errors import RouteNotFound
from quoter.models.route import ProtocolVersion
from quoter.providers import EthereumProviderContext
from quoter.simulation import SimulatedBatchExecutor
from quoter.tokens import StaticTokenMetadataSource
from tests.helpers import (
    AAVE,
    ETHEREUM_ADDRESS,
    FUN,
    REP,
    UNI,
    WETH,
    FakeChainProvider,
    aave_uni_pools,
    fun_rep_pools,
    make_token,
    units,
)

TOKENS = StaticTokenMetadataSource(
    [make_token(a) for a in (FUN, REP, AAVE, UNI, *BASE_TOKENS[ChainId.MAINNET])]
)


async def create_engine(token_a, token_b, pools, provider=None, **settings):
    quoter = Quoter(
        token_a,
        token_b,
        ETHEREUM_ADDRESS,
        EthereumProviderContext(ethereum_provider=provider or FakeChainProvider()),
        settings=QuoterSettings(**settings),
        token_source=TOKENS,
        executor=SimulatedBatchExecutor(pools),
    )
    return await quoter.create_engine()


async def settle():
    """Let scheduled block handlers run to completion."""
    for _ in range(10):
        await asyncio.sleep(0)


class TestFunRepV2:
    """FUN/REP only trade through WETH on v2."""

    @pytest.mark.asyncio
    async def test_best_route(self):
        engine = await create_engine(FUN, REP, fun_rep_pools(), versions=(ProtocolVersion.V2,))

        result = await engine.find_best_route("10000")
        engine.unwatch()

        assert result.best_route_quote.route_text == "FUN > WETH > REP"
        assert [q.route_text for q in result.tried_routes_quote] == ["FUN > WETH > REP"]

    @pytest.mark.asyncio
    async def test_direct_only_has_no_route(self):
        """Without multihop the only viable FUN/REP path is excluded."""
        engine = await create_engine(
            FUN, REP, fun_rep_pools(), versions=(ProtocolVersion.V2,), disable_multihop=True
        )

        with pytest.raises(RouteNotFound):
            await engine.find_best_route("10000")

    @pytest.mark.asyncio
    async def test_bid_ask_spread(self):
        """Larger trades get worse prices on both sides."""
        engine = await create_engine(FUN, REP, fun_rep_pools(), versions=(ProtocolVersion.V2,))

        small, large = await engine.get_best_bid_ask_quotes(["1", "100000"])
        engine.unwatch()

        assert large.bid_price < small.bid_price
        assert large.ask_price > small.ask_price


class TestAaveUniV3:
    """AAVE/UNI with a deep direct v3 pool."""

    @pytest.mark.asyncio
    async def test_direct_pool_wins(self):
        engine = await create_engine(AAVE, UNI, aave_uni_pools(), versions=(ProtocolVersion.V3,))

        result = await engine.find_best_route("100")
        engine.unwatch()

        best = result.best_route_quote
        assert best.route_text == "AAVE > UNI"
        assert best.fee_tier == V3_FEE_MEDIUM
        assert best.converted_amount > result.tried_routes_quote[1].converted_amount


class TestWatching:
    """Block-driven updates through the provider."""

    @pytest.mark.asyncio
    async def test_reserve_change_emits_on_next_block(self):
        """Moving a pool's reserves publishes a new quote on the next block."""
        pools = fun_rep_pools()
        provider = FakeChainProvider()
        engine = await create_engine(
            FUN, REP, pools, provider=provider, versions=(ProtocolVersion.V2,)
        )
        (initial,) = await engine.get_best_bid_ask_quotes(["1"])
        received = []
        completed = []
        engine.quote_changed.subscribe(received.append, lambda: completed.append(True))

        provider.emit_block(100)
        await settle()
        assert received == []

        pools.add_v2_pool(WETH, REP, units(100, WETH), units(5_000, REP))
        provider.emit_block(101)
        await settle()

        assert len(received) == 1
        (updated,) = received[0]
        assert updated.bid_price < initial.bid_price

        engine.unwatch()
        assert completed == [True]
        provider.emit_block(102)
        await settle()
        assert len(received) == 1
