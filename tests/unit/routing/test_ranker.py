"""Tests for best-route selection."""

from decimal import Decimal

import pytest

from quoter.errors import ErrorCode, RouteNotFound
from quoter.models.route import ProtocolVersion
from quoter.models.types import from_base_units
from quoter.quoting.request_builder import QuoteRequestBuilder
from quoter.routing.enumerator import RouteEnumerator
from quoter.routing.ranker import RouteRanker
from quoter.simulation import SimulatedBatchExecutor, SimulatedPools, get_amount_out
from tests.helpers import AAVE, FUN, REP, UNI, WETH, mainnet_base_tokens, make_token, units

BOTH = (ProtocolVersion.V2, ProtocolVersion.V3)


def make_ranker(token_from, token_to, pools, versions=BOTH, disable_multihop=False):
    a, b = make_token(token_from), make_token(token_to)
    enumerator = RouteEnumerator(mainnet_base_tokens(), wrapped_native=WETH)

    async def routes():
        return enumerator.enumerate(a, b, disable_multihop, versions)

    executor = SimulatedBatchExecutor(pools)
    ranker = RouteRanker(a, b, routes, executor, QuoteRequestBuilder(a, WETH), versions)
    return ranker, executor


class TestFindBestRoute:
    """Tests for RouteRanker.find_best_route."""

    @pytest.mark.asyncio
    async def test_fun_rep_through_weth(self, fun_rep_executor):
        """With only FUN/WETH and WETH/REP v2 pools the best route is via WETH."""
        ranker, _ = make_ranker(FUN, REP, fun_rep_executor.pools, versions=(ProtocolVersion.V2,))

        result = await ranker.find_best_route(Decimal(1))

        assert result.best_route_quote.route_text == "FUN > WETH > REP"
        assert result.best_route_quote.version == ProtocolVersion.V2
        weth_out = get_amount_out(units(1, FUN), units(10_000_000, FUN), units(100, WETH))
        rep_out = get_amount_out(weth_out, units(100, WETH), units(10_000, REP))
        assert result.best_route_quote.converted_amount == from_base_units(rep_out, 18)
        assert result.tried_routes_quote == [result.best_route_quote]

    @pytest.mark.asyncio
    async def test_aave_uni_direct_v3(self, aave_uni_executor):
        """A deep direct 0.3% pool beats the route through WETH."""
        ranker, _ = make_ranker(AAVE, UNI, aave_uni_executor.pools, versions=(ProtocolVersion.V3,))

        result = await ranker.find_best_route(Decimal(100))

        best = result.best_route_quote
        assert best.route_text == "AAVE > UNI"
        assert best.version == ProtocolVersion.V3
        assert best.fee_tier == 3000
        assert [q.route_text for q in result.tried_routes_quote] == [
            "AAVE > UNI",
            "AAVE > WETH > UNI",
        ]

    @pytest.mark.asyncio
    async def test_tried_routes_sorted_descending(self, aave_uni_executor):
        """Tried routes are ordered by converted amount, best first."""
        ranker, _ = make_ranker(AAVE, UNI, aave_uni_executor.pools)

        tried = await ranker.get_all_possible_routes_with_quotes(Decimal(100))

        amounts = [q.converted_amount for q in tried]
        assert amounts == sorted(amounts, reverse=True)

    @pytest.mark.asyncio
    async def test_ties_keep_enumeration_order(self):
        """Equal outputs resolve to the earliest route (v2 before v3)."""
        pools = SimulatedPools()
        pools.add_v2_pool(FUN, REP, units(1_000_000, FUN), units(1_000, REP))
        pools.add_v3_pool(FUN, REP, 3000, units(1_000_000, FUN), units(1_000, REP))
        ranker, _ = make_ranker(FUN, REP, pools)

        result = await ranker.find_best_route(Decimal(10))

        assert result.best_route_quote.version == ProtocolVersion.V2
        assert result.tried_routes_quote[1].version == ProtocolVersion.V3
        assert (
            result.tried_routes_quote[0].converted_amount
            == result.tried_routes_quote[1].converted_amount
        )

    @pytest.mark.asyncio
    async def test_no_route_found(self, fun_rep_executor):
        """Direct-only FUN/REP on v2 has no pool and raises RouteNotFound."""
        ranker, _ = make_ranker(
            FUN,
            REP,
            fun_rep_executor.pools,
            versions=(ProtocolVersion.V2,),
            disable_multihop=True,
        )

        with pytest.raises(RouteNotFound) as exc_info:
            await ranker.find_best_route(Decimal(1))

        assert exc_info.value.code == ErrorCode.NO_ROUTES_FOUND

    @pytest.mark.asyncio
    async def test_one_batch_per_call(self, fun_rep_executor):
        """Ranking a trade amount costs exactly one batch round trip."""
        ranker, executor = make_ranker(FUN, REP, fun_rep_executor.pools)

        await ranker.find_best_route(Decimal(1))

        assert executor.batch_count == 1
