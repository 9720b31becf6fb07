"""Network provider abstraction.

A caller connects the quoter in one of three ways:
- EthereumProviderContext: an existing handle (AsyncWeb3 or any ChainProvider)
- ChainIdContext: a chain id, resolved to a default public RPC
- ProviderUrlContext: a chain id plus an explicit RPC url

The context is resolved once into a ChainProvider, which the rest of the
quoter uses uniformly.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import structlog
from eth_utils import to_checksum_address
from web3 import AsyncHTTPProvider, AsyncWeb3

from quoter.constants import BLOCK_EVENT, DEFAULT_RPC_URLS, ChainId
from quoter.errors import ConfigurationError, ErrorCode

logger = structlog.get_logger()

BlockCallback = Callable[[int], None]


@runtime_checkable
class ChainProvider(Protocol):
    """Connection to a chain: identity, read calls and block notifications."""

    @property
    def provider_url(self) -> str | None: ...

    async def get_chain_id(self) -> int: ...

    async def eth_call(self, to: str, data: bytes) -> bytes: ...

    def subscribe(self, event: str, callback: BlockCallback) -> None: ...

    def unsubscribe(self, event: str, callback: BlockCallback | None = None) -> None: ...


@dataclass(frozen=True)
class EthereumProviderContext:
    """Connect through a caller-supplied handle."""

    ethereum_provider: Any


@dataclass(frozen=True)
class ChainIdContext:
    """Connect to the default public RPC of a supported chain."""

    chain_id: int


@dataclass(frozen=True)
class ProviderUrlContext:
    """Connect to an explicit RPC url for a chain."""

    chain_id: int
    provider_url: str


ProviderContext = EthereumProviderContext | ChainIdContext | ProviderUrlContext


class Web3ChainProvider:
    """ChainProvider backed by web3's AsyncWeb3.

    Block notifications are produced by polling eth_blockNumber in a
    background task that runs only while at least one listener is subscribed.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        provider_url: str | None = None,
        chain_id: int | None = None,
        poll_interval: float = 2.0,
    ) -> None:
        self._w3 = w3
        self._provider_url = provider_url
        self._chain_id = chain_id
        self._poll_interval = poll_interval
        self._listeners: list[BlockCallback] = []
        self._poll_task: asyncio.Task[None] | None = None

    @classmethod
    def from_url(
        cls,
        provider_url: str,
        chain_id: int | None = None,
        poll_interval: float = 2.0,
    ) -> Web3ChainProvider:
        w3 = AsyncWeb3(AsyncHTTPProvider(provider_url))
        return cls(w3, provider_url=provider_url, chain_id=chain_id, poll_interval=poll_interval)

    @property
    def provider_url(self) -> str | None:
        return self._provider_url

    async def get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = int(await self._w3.eth.chain_id)
        return self._chain_id

    async def eth_call(self, to: str, data: bytes) -> bytes:
        tx = {"to": to_checksum_address(to), "data": "0x" + data.hex()}
        result = await self._w3.eth.call(tx)  # type: ignore[arg-type]
        return bytes(result)

    def subscribe(self, event: str, callback: BlockCallback) -> None:
        if event != BLOCK_EVENT:
            raise ValueError(f"Unsupported provider event: {event}")
        self._listeners.append(callback)
        if self._poll_task is None:
            self._poll_task = asyncio.get_running_loop().create_task(
                self._poll_blocks(), name="quoter-block-poller"
            )

    def unsubscribe(self, event: str, callback: BlockCallback | None = None) -> None:
        if event != BLOCK_EVENT:
            return
        if callback is None:
            self._listeners.clear()
        elif callback in self._listeners:
            self._listeners.remove(callback)

        if not self._listeners and self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    async def _poll_blocks(self) -> None:
        last_block: int | None = None
        while True:
            try:
                block_number = int(await self._w3.eth.block_number)
            except Exception as e:
                # Transient RPC errors: try again on the next tick
                logger.warning("block_poll_failed", error=str(e))
            else:
                if last_block is not None and block_number != last_block:
                    for listener in list(self._listeners):
                        listener(block_number)
                last_block = block_number
            await asyncio.sleep(self._poll_interval)


def resolve_provider(context: ProviderContext, poll_interval: float = 2.0) -> ChainProvider:
    """Resolve a connection context into a ChainProvider.

    Args:
        context: One of the three provider contexts
        poll_interval: Block polling interval for web3-backed providers

    Returns:
        The provider used for the lifetime of the quoter

    Raises:
        ConfigurationError: If the context cannot be resolved
    """
    if isinstance(context, ProviderUrlContext):
        if not context.provider_url:
            raise ConfigurationError(
                "provider_url must not be empty", ErrorCode.INVALID_PAIR_CONTEXT
            )
        return Web3ChainProvider.from_url(
            context.provider_url, chain_id=context.chain_id, poll_interval=poll_interval
        )

    if isinstance(context, ChainIdContext):
        try:
            url = DEFAULT_RPC_URLS[ChainId(context.chain_id)]
        except ValueError as err:
            raise ConfigurationError(
                f"ChainId - {context.chain_id} has no default RPC; supply a provider url",
                ErrorCode.CHAIN_ID_NOT_SUPPORTED,
            ) from err
        return Web3ChainProvider.from_url(
            url, chain_id=context.chain_id, poll_interval=poll_interval
        )

    if isinstance(context, EthereumProviderContext):
        handle = context.ethereum_provider
        if isinstance(handle, AsyncWeb3):
            return Web3ChainProvider(handle, poll_interval=poll_interval)
        if isinstance(handle, ChainProvider):
            return handle
        raise ConfigurationError(
            f"Unsupported ethereum provider type: {type(handle).__name__}",
            ErrorCode.INVALID_PAIR_CONTEXT,
        )

    raise ConfigurationError(
        "You must supply a chain id, a provider url or an ethereum provider",
        ErrorCode.INVALID_PAIR_CONTEXT,
    )


__all__ = [
    "BlockCallback",
    "ChainIdContext",
    "ChainProvider",
    "EthereumProviderContext",
    "ProviderContext",
    "ProviderUrlContext",
    "Web3ChainProvider",
    "resolve_provider",
]
