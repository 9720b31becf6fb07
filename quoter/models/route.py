"""Route models produced by route enumeration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from quoter.constants import V3_FEE_TIERS
from quoter.models.token import Token


class ProtocolVersion(str, Enum):
    """Uniswap protocol variant."""

    V2 = "v2"
    V3 = "v3"


class Direction(str, Enum):
    """Which way a route set was enumerated for a token pair."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


@dataclass(frozen=True)
class RouteContext:
    """A candidate token path through one protocol version.

    Attributes:
        route: Tokens in trade order, at least two
        version: Protocol version the path will be quoted on
        fee_tier: V3 pool fee (e.g. 3000), applied to every hop; None for v2
    """

    route: tuple[Token, ...]
    version: ProtocolVersion
    fee_tier: int | None = None

    def __post_init__(self) -> None:
        if len(self.route) < 2:
            raise ValueError(f"A route needs at least 2 tokens, got {len(self.route)}")
        if self.version == ProtocolVersion.V3:
            if self.fee_tier not in V3_FEE_TIERS:
                raise ValueError(f"Unsupported v3 fee tier: {self.fee_tier}")
        elif self.fee_tier is not None:
            raise ValueError("Fee tiers only apply to v3 routes")

    @property
    def route_text(self) -> str:
        """Human readable path, e.g. "FUN > WETH > REP"."""
        return " > ".join(token.symbol for token in self.route)

    @property
    def route_path_array(self) -> list[str]:
        """Checksummed token addresses in path order."""
        return [token.contract_address for token in self.route]

    @property
    def is_direct(self) -> bool:
        return len(self.route) == 2


@dataclass(frozen=True)
class AllPossibleRoutes:
    """Candidate routes for one direction, partitioned by protocol version."""

    v2: tuple[RouteContext, ...] = field(default_factory=tuple)
    v3: tuple[RouteContext, ...] = field(default_factory=tuple)

    def for_version(self, version: ProtocolVersion) -> tuple[RouteContext, ...]:
        if version == ProtocolVersion.V2:
            return self.v2
        return self.v3

    def __len__(self) -> int:
        return len(self.v2) + len(self.v3)
