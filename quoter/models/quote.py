"""Quote models returned by the engine.

These are produced fresh for every quoting call and never cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from quoter.models.route import ProtocolVersion


class QuoteSide(str, Enum):
    """Bid sells token A for token B; ask buys token A paying token B."""

    BID = "bid"
    ASK = "ask"


@dataclass(frozen=True)
class CallTag:
    """Key attached to each batch call to trace its result back to a route.

    Attributes:
        route_index: Index of the route within its version's route list
        trade_amount: Human trade amount (in token A) the call quotes
        side: Bid or ask
    """

    route_index: int
    trade_amount: Decimal
    side: QuoteSide


class BidAskQuote(BaseModel):
    """Best bid and ask for one trade amount, merged across routes and versions.

    Prices are expressed in token B per token A.
    """

    model_config = ConfigDict(populate_by_name=True)

    amount: Decimal
    bid_price: Decimal | None = Field(default=None, alias="bidPrice")
    ask_price: Decimal | None = Field(default=None, alias="askPrice")

    @model_validator(mode="after")
    def _has_a_price(self) -> BidAskQuote:
        if self.bid_price is None and self.ask_price is None:
            raise ValueError("A bid/ask quote needs a bid or an ask price")
        return self


class TriedRouteQuote(BaseModel):
    """Unmerged quote for a single candidate route."""

    model_config = ConfigDict(populate_by_name=True)

    route_path_array: list[str] = Field(alias="routePathArray")
    route_text: str = Field(alias="routeText")
    version: ProtocolVersion
    fee_tier: int | None = Field(default=None, alias="feeTier")
    amount: Decimal
    converted_amount: Decimal = Field(alias="convertedAmount")

    @property
    def price(self) -> Decimal:
        return self.converted_amount / self.amount


class BestRouteQuotes(BaseModel):
    """Result of best-route selection for one trade amount."""

    model_config = ConfigDict(populate_by_name=True)

    best_route_quote: TriedRouteQuote = Field(alias="bestRouteQuote")
    tried_routes_quote: list[TriedRouteQuote] = Field(alias="triedRoutesQuote")
