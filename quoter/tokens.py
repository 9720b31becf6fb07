"""Token metadata sources."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Protocol

import structlog

from quoter.abi import ERC20_BYTES32_SYMBOL_ABI, ERC20_METADATA_ABI
from quoter.constants import NATIVE_ETH, NATIVE_ETH_DECIMALS, NATIVE_ETH_SYMBOL
from quoter.models.token import Token
from quoter.models.types import checksum_address, normalize_address, same_address
from quoter.multicall import BatchExecutor, CallContext, ContractCallContext

logger = structlog.get_logger()


def native_eth_token() -> Token:
    return Token(
        contract_address=NATIVE_ETH,
        decimals=NATIVE_ETH_DECIMALS,
        symbol=NATIVE_ETH_SYMBOL,
        name="Ether",
    )


class TokenMetadataSource(Protocol):
    """Protocol for token metadata lookups.

    Unknown addresses are left out of the result rather than raising;
    callers decide which tokens are mandatory.
    """

    async def get_tokens(self, addresses: Sequence[str]) -> list[Token]: ...


class StaticTokenMetadataSource:
    """Metadata from a fixed token list (plus native ETH)."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens = {normalize_address(t.contract_address): t for t in tokens}

    async def get_tokens(self, addresses: Sequence[str]) -> list[Token]:
        found = []
        for address in addresses:
            if same_address(address, NATIVE_ETH):
                found.append(native_eth_token())
            elif normalize_address(address) in self._tokens:
                found.append(self._tokens[normalize_address(address)])
        return found


class Web3TokenMetadataSource:
    """Reads decimals() and symbol() for all requested tokens in one batch.

    Tokens whose symbol() does not decode as a string are retried in a
    second batch reading it as bytes32.
    """

    def __init__(self, executor: BatchExecutor) -> None:
        self._executor = executor

    async def get_tokens(self, addresses: Sequence[str]) -> list[Token]:
        erc20s = [a for a in addresses if not same_address(a, NATIVE_ETH)]
        contexts = [
            ContractCallContext(
                reference=normalize_address(address),
                contract_address=checksum_address(address),
                abi=ERC20_METADATA_ABI,
                calls=[
                    CallContext("decimals", "decimals", ()),
                    CallContext("symbol", "symbol", ()),
                ],
            )
            for address in erc20s
        ]
        results = await self._executor.execute(contexts) if contexts else []

        metadata: dict[str, dict[str, Any]] = {}
        for result in results:
            values = {r.tag: r.decoded_values[0] for r in result.call_returns if r.success}
            if "decimals" in values:
                metadata[result.context.reference] = values

        missing_symbol = [ref for ref, values in metadata.items() if "symbol" not in values]
        if missing_symbol:
            for reference, symbol in (await self._bytes32_symbols(missing_symbol)).items():
                metadata[reference]["symbol"] = symbol

        by_address: dict[str, Token] = {}
        for result in results:
            reference = result.context.reference
            values = metadata.get(reference, {})
            if "decimals" not in values or "symbol" not in values:
                logger.warning("token_metadata_missing", address=result.context.contract_address)
                continue
            by_address[reference] = Token(
                contract_address=result.context.contract_address,
                decimals=int(values["decimals"]),
                symbol=str(values["symbol"]),
            )

        tokens = []
        for address in addresses:
            if same_address(address, NATIVE_ETH):
                tokens.append(native_eth_token())
            elif normalize_address(address) in by_address:
                tokens.append(by_address[normalize_address(address)])
        return tokens

    async def _bytes32_symbols(self, references: Sequence[str]) -> dict[str, str]:
        contexts = [
            ContractCallContext(
                reference=reference,
                contract_address=checksum_address(reference),
                abi=ERC20_BYTES32_SYMBOL_ABI,
                calls=[CallContext("symbol", "symbol", ())],
            )
            for reference in references
        ]
        results = await self._executor.execute(contexts)

        symbols = {}
        for result in results:
            for call_return in result.call_returns:
                if not call_return.success:
                    continue
                symbol = decode_bytes32_symbol(call_return.decoded_values[0])
                if symbol:
                    symbols[result.context.reference] = symbol
        logger.debug("bytes32_symbols_read", requested=len(references), found=len(symbols))
        return symbols


def decode_bytes32_symbol(raw: bytes) -> str:
    """Right-padded bytes32 symbol to text, e.g. b"MKR\\x00..." -> "MKR"."""
    return raw.rstrip(b"\x00").decode("utf-8", errors="replace").strip()


__all__ = [
    "StaticTokenMetadataSource",
    "TokenMetadataSource",
    "Web3TokenMetadataSource",
    "decode_bytes32_symbol",
    "native_eth_token",
]
