"""Quoter configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal

from quoter.constants import (
    MULTICALL3_ADDRESS,
    UNISWAP_V2_ROUTER_ADDRESS,
    UNISWAP_V3_QUOTER_ADDRESS,
)
from quoter.errors import ConfigurationError, ErrorCode
from quoter.models.route import ProtocolVersion
from quoter.models.types import is_valid_address

# Quotes stay valid for the same window a trade deadline would give them
DEFAULT_QUOTE_TTL_SECONDS = 20 * 60

MAX_INTERMEDIARIES_LIMIT = 2


@dataclass(frozen=True)
class CustomNetwork:
    """A network outside the built-in chain list (forks, L2s, local nodes).

    Attributes:
        name: Display name
        wrapped_native: Address of the wrapped native token (WETH equivalent)
        base_tokens: Intermediaries tried for multihop routes, in order
        multicall_address: Multicall3 deployment on this network
    """

    name: str
    wrapped_native: str
    base_tokens: tuple[str, ...] = ()
    multicall_address: str = MULTICALL3_ADDRESS

    def __post_init__(self) -> None:
        for address in (self.wrapped_native, self.multicall_address, *self.base_tokens):
            if not is_valid_address(address):
                raise ConfigurationError(
                    f"Custom network {self.name} has an invalid address: {address}",
                    ErrorCode.INVALID_SETTINGS,
                )


@dataclass(frozen=True)
class CloneContracts:
    """Contract overrides for Uniswap forks sharing the same ABIs."""

    v2_router: str = UNISWAP_V2_ROUTER_ADDRESS
    v3_quoter: str = UNISWAP_V3_QUOTER_ADDRESS


@dataclass(frozen=True)
class QuoterSettings:
    """Centralized configuration for route enumeration and quoting.

    Attributes:
        disable_multihop: Only quote the direct pair
        versions: Protocol versions to quote, in enumeration order
        max_intermediaries: Maximum base tokens between the pair (default 1)
        quote_ttl_seconds: How long a watched quote stays valid before the
            watcher re-emits it even if unchanged
        price_change_tolerance: Relative price move below which a watched
            quote is considered unchanged (0 = any move counts)
        block_poll_interval: Seconds between new-block polls for
            providers without push notifications
        custom_network: Network definition replacing the built-in chain list
        clone_contracts: Router/quoter overrides for forks
    """

    disable_multihop: bool = False
    versions: tuple[ProtocolVersion, ...] = (ProtocolVersion.V2, ProtocolVersion.V3)
    max_intermediaries: int = 1
    quote_ttl_seconds: float = DEFAULT_QUOTE_TTL_SECONDS
    price_change_tolerance: Decimal = Decimal(0)
    block_poll_interval: float = 2.0
    custom_network: CustomNetwork | None = None
    clone_contracts: CloneContracts = field(default_factory=CloneContracts)

    def __post_init__(self) -> None:
        if not self.versions:
            raise ConfigurationError(
                "At least one protocol version must be enabled", ErrorCode.INVALID_SETTINGS
            )
        if not 0 <= self.max_intermediaries <= MAX_INTERMEDIARIES_LIMIT:
            raise ConfigurationError(
                f"max_intermediaries must be between 0 and {MAX_INTERMEDIARIES_LIMIT}",
                ErrorCode.INVALID_SETTINGS,
            )
        if self.quote_ttl_seconds <= 0 or self.block_poll_interval <= 0:
            raise ConfigurationError(
                "quote_ttl_seconds and block_poll_interval must be positive",
                ErrorCode.INVALID_SETTINGS,
            )
        if self.price_change_tolerance < 0:
            raise ConfigurationError(
                "price_change_tolerance cannot be negative", ErrorCode.INVALID_SETTINGS
            )

    @classmethod
    def from_env(cls) -> QuoterSettings:
        """Build settings from QUOTER_* environment variables, defaulting the rest."""
        kwargs: dict[str, object] = {}

        if "QUOTER_DISABLE_MULTIHOP" in os.environ:
            kwargs["disable_multihop"] = os.environ["QUOTER_DISABLE_MULTIHOP"].lower() in (
                "true",
                "1",
                "yes",
            )
        if "QUOTER_VERSIONS" in os.environ:
            try:
                kwargs["versions"] = tuple(
                    ProtocolVersion(v.strip().lower())
                    for v in os.environ["QUOTER_VERSIONS"].split(",")
                    if v.strip()
                )
            except ValueError as err:
                raise ConfigurationError(str(err), ErrorCode.INVALID_SETTINGS) from err
        try:
            if "QUOTER_MAX_INTERMEDIARIES" in os.environ:
                kwargs["max_intermediaries"] = int(os.environ["QUOTER_MAX_INTERMEDIARIES"])
            if "QUOTER_QUOTE_TTL_SECONDS" in os.environ:
                kwargs["quote_ttl_seconds"] = float(os.environ["QUOTER_QUOTE_TTL_SECONDS"])
            if "QUOTER_BLOCK_POLL_INTERVAL" in os.environ:
                kwargs["block_poll_interval"] = float(os.environ["QUOTER_BLOCK_POLL_INTERVAL"])
        except ValueError as err:
            raise ConfigurationError(str(err), ErrorCode.INVALID_SETTINGS) from err

        return cls(**kwargs)  # type: ignore[arg-type]


# Default configuration instance
DEFAULT_SETTINGS = QuoterSettings()
