"""Unit tests for the quote API endpoints."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from quoter import Quoter
from quoter.api.endpoints import get_engine_factory
from quoter.api.main import app
from quoter.config import QuoterSettings
from quoter.constants import BASE_TOKENS, ChainId
from quoter.models.route import ProtocolVersion
from quoter.providers import EthereumProviderContext
from quoter.simulation import SimulatedBatchExecutor
from quoter.tokens import StaticTokenMetadataSource
from tests.helpers import (
    ETHEREUM_ADDRESS,
    FUN,
    REP,
    FakeChainProvider,
    fun_rep_pools,
    make_token,
)


def simulated_factory(network_error=None):
    """Engine factory quoting FUN/REP against simulated v2 pools."""
    tokens = StaticTokenMetadataSource(
        [make_token(a) for a in (FUN, REP, *BASE_TOKENS[ChainId.MAINNET])]
    )

    async def factory(token_a, token_b, ethereum_address):
        quoter = Quoter(
            token_a,
            token_b,
            ethereum_address,
            EthereumProviderContext(ethereum_provider=FakeChainProvider()),
            settings=QuoterSettings(versions=(ProtocolVersion.V2,)),
            token_source=tokens,
            executor=SimulatedBatchExecutor(fun_rep_pools(), network_error=network_error),
        )
        return await quoter.create_engine()

    return factory


@pytest.fixture
def client():
    """Create a test client quoting against simulated pools."""
    app.dependency_overrides[get_engine_factory] = lambda: simulated_factory()
    yield TestClient(app)
    app.dependency_overrides.clear()


def pair(**extra):
    return {"tokenA": FUN, "tokenB": REP, "ethereumAddress": ETHEREUM_ADDRESS, **extra}


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestBidAskEndpoint:
    """Tests for POST /quotes/bid-ask."""

    def test_returns_quotes_per_amount(self, client):
        """Each amount gets a bid and an ask in token B per token A."""
        response = client.post("/quotes/bid-ask", json=pair(amounts=["1", "10"]))

        assert response.status_code == 200
        data = response.json()
        assert data["tokenA"] == "0x419D0d8BdD9aF5e606Ae2232ed285Aff190E711b"
        assert [q["amount"] for q in data["quotes"]] == ["1", "10"]
        for quote in data["quotes"]:
            assert Decimal(quote["bidPrice"]) < Decimal(quote["askPrice"])

    @pytest.mark.parametrize(
        "body",
        [
            pair(amounts=[]),
            pair(amounts=["0"]),
            pair(amounts=["-5"]),
            {"tokenA": FUN, "amounts": ["1"]},
        ],
    )
    def test_invalid_request(self, client, body):
        """Schema violations return 422."""
        assert client.post("/quotes/bid-ask", json=body).status_code == 422

    def test_invalid_address(self, client):
        """Address validation errors return 400 with the error code."""
        response = client.post("/quotes/bid-ask", json={**pair(amounts=["1"]), "tokenA": "0x12"})

        assert response.status_code == 400
        assert response.json()["code"] == "token_a_address_not_valid"

    def test_network_failure(self, client):
        """Batch transport failures return 502."""
        app.dependency_overrides[get_engine_factory] = lambda: simulated_factory("timeout")

        response = client.post("/quotes/bid-ask", json=pair(amounts=["1"]))

        assert response.status_code == 502
        assert response.json()["code"] == "network_request_failed"


class TestBestRouteEndpoint:
    """Tests for POST /routes/best."""

    def test_best_route(self, client):
        """The best route and every tried route are returned."""
        response = client.post("/routes/best", json=pair(amount="1"))

        assert response.status_code == 200
        data = response.json()
        assert data["bestRouteQuote"]["routeText"] == "FUN > WETH > REP"
        assert data["bestRouteQuote"]["version"] == "v2"
        assert len(data["triedRoutesQuote"]) == 1
        assert "feeTier" not in data["bestRouteQuote"]

    def test_no_route(self, client):
        """A pair with no surviving route returns 404."""
        usdt = BASE_TOKENS[ChainId.MAINNET][0]
        response = client.post("/routes/best", json={**pair(amount="1"), "tokenB": usdt})

        assert response.status_code == 404
        assert response.json()["code"] == "no_routes_found"

    def test_request_too_large(self, client):
        """Bodies over the size limit are rejected up front."""
        response = client.post(
            "/routes/best",
            json=pair(amount="1"),
            headers={"Content-Length": str(1024 * 1024)},
        )
        assert response.status_code == 413
        assert response.json()["detail"] == "Request too large"
