"""Protocol constants for the quoter.

Centralizes chain ids, well-known addresses and protocol parameters.
"""

from enum import IntEnum

from eth_utils import is_hex_address


class ChainId(IntEnum):
    """Chains with deployed Uniswap v2 and v3 contracts."""

    MAINNET = 1
    ROPSTEN = 3
    RINKEBY = 4
    GORLI = 5
    KOVAN = 42


SUPPORTED_CHAIN_IDS = frozenset(ChainId)


def _validate_token_address(name: str, address: str) -> str:
    """Validate and return a token address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_hex_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Pseudo-address used for native ETH (never sent on-chain)
NATIVE_ETH = _validate_token_address("ETH", "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee")
NATIVE_ETH_SYMBOL = "ETH"
NATIVE_ETH_DECIMALS = 18

# Well-known token addresses on mainnet (lowercase for consistency)
WETH = _validate_token_address("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
USDC = _validate_token_address("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48")
USDT = _validate_token_address("USDT", "0xdac17f958d2ee523a2206206994597c13d831ec7")
DAI = _validate_token_address("DAI", "0x6b175474e89094c44da98b954eedeac495271d0f")
WBTC = _validate_token_address("WBTC", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599")
COMP = _validate_token_address("COMP", "0xc00e94cb662c3520282e6f5717214004a7f26888")

# Wrapped native token per chain
WRAPPED_NATIVE = {
    ChainId.MAINNET: WETH,
    ChainId.ROPSTEN: _validate_token_address("WETH", "0xc778417e063141139fce010982780140aa0cd5ab"),
    ChainId.RINKEBY: _validate_token_address("WETH", "0xc778417e063141139fce010982780140aa0cd5ab"),
    ChainId.GORLI: _validate_token_address("WETH", "0xb4fbf271143f4fbf7b91a5ded31805e42b2208d6"),
    ChainId.KOVAN: _validate_token_address("WETH", "0xd0a1e359811322d97991e03f863a0c30c2cf029c"),
}

# High-liquidity intermediaries tried for multihop routes, in iteration order.
# Testnets only route through their wrapped native token.
BASE_TOKENS = {
    ChainId.MAINNET: (USDT, COMP, USDC, DAI, WETH, WBTC),
    ChainId.ROPSTEN: (WRAPPED_NATIVE[ChainId.ROPSTEN],),
    ChainId.RINKEBY: (WRAPPED_NATIVE[ChainId.RINKEBY],),
    ChainId.GORLI: (WRAPPED_NATIVE[ChainId.GORLI],),
    ChainId.KOVAN: (WRAPPED_NATIVE[ChainId.KOVAN],),
}

# Public RPC used when a caller only supplies a chain id
DEFAULT_RPC_URLS = {
    ChainId.MAINNET: "https://eth.llamarpc.com",
    ChainId.ROPSTEN: "https://rpc.ankr.com/eth_ropsten",
    ChainId.RINKEBY: "https://rpc.ankr.com/eth_rinkeby",
    ChainId.GORLI: "https://rpc.ankr.com/eth_goerli",
    ChainId.KOVAN: "https://kovan.poa.network",
}

# Contract addresses (identical on all supported chains)
UNISWAP_V2_ROUTER_ADDRESS = "0x7a250d5630b4cf539739df2c5dacb4c659f2488d"
UNISWAP_V3_QUOTER_ADDRESS = "0xb27308f9f90d607463bb33ea1bebb41c27ce5ab6"
MULTICALL3_ADDRESS = "0xca11bde05977b3631167028862be2a173976ca11"

# V3 Fee tiers in Uniswap units (hundredths of a basis point)
# Fee = units / 1,000,000 (e.g., 3000 = 0.3%)
V3_FEE_LOWEST = 100  # 0.01% - stable pairs
V3_FEE_LOW = 500  # 0.05% - stable pairs
V3_FEE_MEDIUM = 3000  # 0.30% - most pairs
V3_FEE_HIGH = 10000  # 1.00% - exotic pairs

V3_FEE_TIERS = (V3_FEE_LOWEST, V3_FEE_LOW, V3_FEE_MEDIUM, V3_FEE_HIGH)

# Name of the provider notification fired on each new block
BLOCK_EVENT = "block"
