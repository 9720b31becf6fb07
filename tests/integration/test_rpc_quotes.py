"""Integration tests against a live mainnet RPC.

These tests require an RPC connection and are skipped by default.
Run with: RPC_URL=https://eth.llamarpc.com pytest -m requires_rpc
"""

import os
from decimal import Decimal

import pytest
import pytest_asyncio

from quoter import Quoter
from quoter.providers import ProviderUrlContext
from tests.helpers import ETHEREUM_ADDRESS, USDC, WETH

# Skip all tests in this module if RPC_URL is not set
pytestmark = [
    pytest.mark.requires_rpc,
    pytest.mark.skipif(
        not os.environ.get("RPC_URL"),
        reason="RPC_URL environment variable not set",
    ),
]


@pytest.fixture
def rpc_url() -> str:
    """Get RPC URL from environment."""
    url = os.environ.get("RPC_URL")
    if not url:
        pytest.skip("RPC_URL not set")
    return url


@pytest_asyncio.fixture
async def weth_usdc_engine(rpc_url):
    quoter = Quoter(
        WETH,
        USDC,
        ETHEREUM_ADDRESS,
        ProviderUrlContext(chain_id=1, provider_url=rpc_url),
    )
    engine = await quoter.create_engine()
    yield engine
    engine.unwatch()


class TestMainnetQuotes:
    """Quotes for WETH/USDC on mainnet."""

    @pytest.mark.asyncio
    async def test_token_metadata(self, weth_usdc_engine):
        """Metadata is read on-chain."""
        assert weth_usdc_engine.token_a.symbol == "WETH"
        assert weth_usdc_engine.token_b.decimals == 6

    @pytest.mark.asyncio
    async def test_bid_below_ask(self, weth_usdc_engine):
        """1 WETH quotes in a sensible USDC range with bid < ask."""
        (quote,) = await weth_usdc_engine.get_best_bid_ask_quotes(["1"])

        assert quote.bid_price is not None and quote.ask_price is not None
        assert Decimal(100) < quote.bid_price < quote.ask_price < Decimal(100_000)

    @pytest.mark.asyncio
    async def test_best_route_is_sorted(self, weth_usdc_engine):
        result = await weth_usdc_engine.find_best_route("1")

        amounts = [q.converted_amount for q in result.tried_routes_quote]
        assert amounts == sorted(amounts, reverse=True)
        assert result.best_route_quote == result.tried_routes_quote[0]
