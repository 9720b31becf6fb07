"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses and metadata tables
- factories: Token, pool and engine factories plus chain/clock doubles
"""

from tests.helpers.constants import (
    AAVE,
    COMP,
    DAI,
    ETHEREUM_ADDRESS,
    FUN,
    NATIVE_ETH,
    REP,
    TOKEN_DECIMALS,
    TOKEN_SYMBOLS,
    UNI,
    USDC,
    USDT,
    WBTC,
    WETH,
)
from tests.helpers.factories import (
    FakeChainProvider,
    FakeClock,
    aave_uni_pools,
    fun_rep_pools,
    mainnet_base_tokens,
    make_engine,
    make_token,
    units,
)

__all__ = [
    # Constants
    "FUN",
    "REP",
    "AAVE",
    "UNI",
    "WETH",
    "USDC",
    "USDT",
    "DAI",
    "WBTC",
    "COMP",
    "NATIVE_ETH",
    "ETHEREUM_ADDRESS",
    "TOKEN_DECIMALS",
    "TOKEN_SYMBOLS",
    # Factories
    "FakeChainProvider",
    "FakeClock",
    "aave_uni_pools",
    "fun_rep_pools",
    "mainnet_base_tokens",
    "make_engine",
    "make_token",
    "units",
]
