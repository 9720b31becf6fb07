"""API endpoints for the quoter."""

import os
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from quoter.config import QuoterSettings
from quoter.engine import QuoterEngine
from quoter.models.quote import BestRouteQuotes, BidAskQuote
from quoter.providers import ChainIdContext, ProviderUrlContext
from quoter.quoter import Quoter

logger = structlog.get_logger()

router = APIRouter()

# Builds an engine for (token_a, token_b, ethereum_address)
EngineFactory = Callable[[str, str, str], Awaitable[QuoterEngine]]

PositiveAmount = Annotated[Decimal, Field(gt=0)]


class PairRequest(BaseModel):
    """Token pair plus the caller's address."""

    model_config = ConfigDict(populate_by_name=True)

    token_a: str = Field(alias="tokenA")
    token_b: str = Field(alias="tokenB")
    ethereum_address: str = Field(alias="ethereumAddress")


class BidAskRequest(PairRequest):
    amounts: list[PositiveAmount] = Field(min_length=1, max_length=50)


class BestRouteRequest(PairRequest):
    amount: PositiveAmount


class BidAskResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_a: str = Field(alias="tokenA")
    token_b: str = Field(alias="tokenB")
    quotes: list[BidAskQuote]


async def create_default_engine(
    token_a: str, token_b: str, ethereum_address: str
) -> QuoterEngine:
    """Build an engine from the QUOTER_* environment.

    - QUOTER_RPC_URL: RPC endpoint (default: the chain's public RPC)
    - QUOTER_CHAIN_ID: Chain id (default: 1)
    """
    chain_id = int(os.environ.get("QUOTER_CHAIN_ID", "1"))
    rpc_url = os.environ.get("QUOTER_RPC_URL")
    connection = (
        ProviderUrlContext(chain_id=chain_id, provider_url=rpc_url)
        if rpc_url
        else ChainIdContext(chain_id=chain_id)
    )
    quoter = Quoter(
        token_a, token_b, ethereum_address, connection, settings=QuoterSettings.from_env()
    )
    return await quoter.create_engine()


def get_engine_factory() -> EngineFactory:
    """Dependency provider for engine construction.

    Override this in tests to quote against simulated pools:
        app.dependency_overrides[get_engine_factory] = lambda: factory

    Returns:
        Coroutine function building a QuoterEngine for a pair.
    """
    return create_default_engine


@router.post("/quotes/bid-ask", response_model_exclude_none=True)
async def bid_ask_quotes(
    request: BidAskRequest,
    engine_factory: EngineFactory = Depends(get_engine_factory),
) -> BidAskResponse:
    """Best bid and ask for each requested amount of token A.

    Error Handling:
        - Invalid request schema: 422 (Pydantic)
        - Invalid pair or unsupported chain: 400
        - RPC failure: 502
    """
    logger.info(
        "received_bid_ask_request",
        token_a=request.token_a,
        token_b=request.token_b,
        amount_count=len(request.amounts),
    )
    engine = await engine_factory(request.token_a, request.token_b, request.ethereum_address)
    try:
        quotes = await engine.get_best_bid_ask_quotes(request.amounts)
    finally:
        # Request/response has no subscriber for block updates
        engine.unwatch()

    return BidAskResponse(
        token_a=engine.token_a.contract_address,
        token_b=engine.token_b.contract_address,
        quotes=quotes,
    )


@router.post("/routes/best", response_model_exclude_none=True)
async def best_route(
    request: BestRouteRequest,
    engine_factory: EngineFactory = Depends(get_engine_factory),
) -> BestRouteQuotes:
    """Best route for selling amount of token A, with every route tried.

    Error Handling:
        - No route survives: 404
        - Invalid pair or unsupported chain: 400
        - RPC failure: 502
    """
    logger.info(
        "received_best_route_request",
        token_a=request.token_a,
        token_b=request.token_b,
        amount=str(request.amount),
    )
    engine = await engine_factory(request.token_a, request.token_b, request.ethereum_address)
    try:
        result = await engine.find_best_route(request.amount)
    finally:
        engine.unwatch()

    logger.info(
        "returning_best_route",
        route=result.best_route_quote.route_text,
        version=result.best_route_quote.version.value,
        tried=len(result.tried_routes_quote),
    )
    return result
