"""Data models for the quoter."""

from quoter.models.quote import (
    BestRouteQuotes,
    BidAskQuote,
    CallTag,
    QuoteSide,
    TriedRouteQuote,
)
from quoter.models.route import AllPossibleRoutes, Direction, ProtocolVersion, RouteContext
from quoter.models.token import Token
from quoter.models.types import normalize_address

__all__ = [
    "AllPossibleRoutes",
    "BestRouteQuotes",
    "BidAskQuote",
    "CallTag",
    "Direction",
    "ProtocolVersion",
    "QuoteSide",
    "RouteContext",
    "Token",
    "TriedRouteQuote",
    "normalize_address",
]
