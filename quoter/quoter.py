"""Top-level entry: validates a token pair and builds its quoting engine."""

from __future__ import annotations

import time
from collections.abc import Callable

import structlog

from quoter.config import DEFAULT_SETTINGS, QuoterSettings
from quoter.constants import (
    BASE_TOKENS,
    MULTICALL3_ADDRESS,
    SUPPORTED_CHAIN_IDS,
    WRAPPED_NATIVE,
    ChainId,
)
from quoter.engine import QuoterEngine
from quoter.errors import ConfigurationError, ErrorCode
from quoter.models.types import checksum_address, is_valid_address, same_address
from quoter.multicall import BatchExecutor, Web3MulticallExecutor
from quoter.providers import ChainProvider, ProviderContext, resolve_provider
from quoter.tokens import TokenMetadataSource, Web3TokenMetadataSource

logger = structlog.get_logger()


def _validate_address(
    address: str | None,
    required_code: ErrorCode,
    invalid_code: ErrorCode,
    label: str,
) -> str:
    if not address:
        raise ConfigurationError(f"{label} is required", required_code)
    if not is_valid_address(address):
        raise ConfigurationError(f"{label} is not a valid address: {address}", invalid_code)
    return checksum_address(address)


class Quoter:
    """Quoting entry point for one token pair.

    Addresses are validated and the provider is resolved on construction;
    token metadata is loaded when the engine is created.

    Usage:
        quoter = Quoter(fun, rep, my_address, ChainIdContext(chain_id=1))
        engine = await quoter.create_engine()
        quotes = await engine.get_best_bid_ask_quotes(["1"])
    """

    def __init__(
        self,
        token_a_address: str,
        token_b_address: str,
        ethereum_address: str,
        connection: ProviderContext,
        settings: QuoterSettings | None = None,
        token_source: TokenMetadataSource | None = None,
        executor: BatchExecutor | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the quoter.

        Args:
            token_a_address: Token trade amounts are denominated in
            token_b_address: Token prices are expressed in
            ethereum_address: Address of the caller
            connection: How to reach the chain
            settings: Quoter settings (defaults to DEFAULT_SETTINGS)
            token_source: Token metadata lookup (defaults to on-chain reads)
            executor: Batch executor (defaults to Multicall3 over the provider)
            clock: Unix time source for quote expiry

        Raises:
            ConfigurationError: If an address is missing or invalid, or the
                connection context cannot be resolved
        """
        self.token_a_address = _validate_address(
            token_a_address,
            ErrorCode.TOKEN_A_ADDRESS_REQUIRED,
            ErrorCode.TOKEN_A_ADDRESS_NOT_VALID,
            "token_a_address",
        )
        self.token_b_address = _validate_address(
            token_b_address,
            ErrorCode.TOKEN_B_ADDRESS_REQUIRED,
            ErrorCode.TOKEN_B_ADDRESS_NOT_VALID,
            "token_b_address",
        )
        self.ethereum_address = _validate_address(
            ethereum_address,
            ErrorCode.ETHEREUM_ADDRESS_REQUIRED,
            ErrorCode.ETHEREUM_ADDRESS_NOT_VALID,
            "ethereum_address",
        )
        if same_address(self.token_a_address, self.token_b_address):
            raise ConfigurationError(
                "token_a_address and token_b_address must differ",
                ErrorCode.INVALID_PAIR_CONTEXT,
            )

        self.settings = settings or DEFAULT_SETTINGS
        self.provider: ChainProvider = resolve_provider(
            connection, poll_interval=self.settings.block_poll_interval
        )

        network = self.settings.custom_network
        self.executor = executor or Web3MulticallExecutor(
            self.provider, network.multicall_address if network else MULTICALL3_ADDRESS
        )
        self.token_source = token_source or Web3TokenMetadataSource(self.executor)
        self._clock = clock

    async def create_engine(self) -> QuoterEngine:
        """Load token metadata and build the engine for this pair.

        Raises:
            ConfigurationError: If the chain is unsupported or either token
                has no metadata
            NetworkFailure: If the metadata batch fails
        """
        wrapped_native, base_addresses = await self._network_tokens()

        requested = [self.token_a_address, self.token_b_address, *base_addresses]
        tokens = await self.token_source.get_tokens(requested)
        by_address = {t.contract_address.lower(): t for t in tokens}

        token_a = by_address.get(self.token_a_address.lower())
        if token_a is None:
            raise ConfigurationError(
                f"No token metadata for {self.token_a_address}", ErrorCode.TOKEN_NOT_FOUND
            )
        token_b = by_address.get(self.token_b_address.lower())
        if token_b is None:
            raise ConfigurationError(
                f"No token metadata for {self.token_b_address}", ErrorCode.TOKEN_NOT_FOUND
            )

        base_tokens = []
        for address in base_addresses:
            token = by_address.get(address.lower())
            if token is None:
                logger.warning("base_token_metadata_missing", address=address)
                continue
            base_tokens.append(token)

        logger.info(
            "quoter_engine_created",
            pair=f"{token_a.symbol}/{token_b.symbol}",
            base_tokens=[t.symbol for t in base_tokens],
            provider_url=self.provider.provider_url,
        )
        return QuoterEngine(
            token_a,
            token_b,
            self.provider,
            self.executor,
            settings=self.settings,
            base_tokens=base_tokens,
            wrapped_native=wrapped_native,
            clock=self._clock,
        )

    async def _network_tokens(self) -> tuple[str, tuple[str, ...]]:
        """Wrapped native token and base whitelist for the connected network."""
        network = self.settings.custom_network
        if network is not None:
            return network.wrapped_native, network.base_tokens

        chain_id = await self.provider.get_chain_id()
        if chain_id not in SUPPORTED_CHAIN_IDS:
            raise ConfigurationError(
                f"ChainId - {chain_id} is not supported. This lib only supports "
                f"mainnet(1), ropsten(3), kovan(42), rinkeby(4) and görli(5)",
                ErrorCode.CHAIN_ID_NOT_SUPPORTED,
            )
        chain = ChainId(chain_id)
        return WRAPPED_NATIVE[chain], BASE_TOKENS[chain]


__all__ = ["Quoter"]
