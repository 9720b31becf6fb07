"""Calldata and V3 path encoding for quoter calls."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode  # type: ignore[attr-defined]
from eth_abi.packed import encode_packed
from eth_utils import to_checksum_address
from eth_utils.abi import (
    function_abi_to_4byte_selector,
    get_abi_input_types,
    get_abi_output_types,
    get_all_function_abis,
)

from quoter.models.types import normalize_address

# V3 path layout: address (20 bytes) | fee (3 bytes) | address | ...
ADDRESS_SIZE = 20
FEE_SIZE = 3


def find_function(abi: Sequence[dict[str, Any]], method_name: str) -> dict[str, Any]:
    """Look up a function entry in an ABI.

    Raises:
        KeyError: If the ABI has no function with that name
    """
    for fn_abi in get_all_function_abis(abi):  # type: ignore[arg-type]
        if fn_abi.get("name") == method_name:
            return dict(fn_abi)
    raise KeyError(f"Function {method_name} not in ABI")


def encode_call(
    abi: Sequence[dict[str, Any]],
    method_name: str,
    params: Sequence[Any],
) -> bytes:
    """Encode a call as selector + ABI-encoded arguments."""
    fn_abi = find_function(abi, method_name)
    selector = function_abi_to_4byte_selector(fn_abi)  # type: ignore[arg-type]
    return selector + encode(get_abi_input_types(fn_abi), list(params))  # type: ignore[arg-type]


def decode_result(
    abi: Sequence[dict[str, Any]],
    method_name: str,
    data: bytes,
) -> tuple[Any, ...]:
    """Decode a call's return data into its output values."""
    fn_abi = find_function(abi, method_name)
    return tuple(decode(get_abi_output_types(fn_abi), data))  # type: ignore[arg-type]


def encode_v3_path(tokens: Sequence[str], fees: Sequence[int]) -> bytes:
    """Encode a V3 multi-hop path.

    Args:
        tokens: Token addresses in swap order
        fees: One fee tier per hop (len(tokens) - 1 entries)

    Returns:
        Packed path bytes: token0 | fee0 | token1 | fee1 | ... | tokenN
    """
    if len(tokens) < 2 or len(fees) != len(tokens) - 1:
        raise ValueError(f"Path needs N tokens and N-1 fees, got {len(tokens)} and {len(fees)}")

    types: list[str] = []
    values: list[Any] = []
    for i, token in enumerate(tokens):
        types.append("address")
        values.append(to_checksum_address(normalize_address(token)))
        if i < len(fees):
            types.append("uint24")
            values.append(fees[i])
    return encode_packed(types, values)


def decode_v3_path(path: bytes) -> tuple[list[str], list[int]]:
    """Decode a packed V3 path into (lowercase token addresses, fees)."""
    step = ADDRESS_SIZE + FEE_SIZE
    if len(path) < 2 * ADDRESS_SIZE + FEE_SIZE or (len(path) - ADDRESS_SIZE) % step != 0:
        raise ValueError(f"Malformed v3 path of {len(path)} bytes")

    tokens: list[str] = []
    fees: list[int] = []
    offset = 0
    while True:
        tokens.append("0x" + path[offset : offset + ADDRESS_SIZE].hex())
        offset += ADDRESS_SIZE
        if offset == len(path):
            break
        fees.append(int.from_bytes(path[offset : offset + FEE_SIZE], "big"))
        offset += FEE_SIZE
    return tokens, fees


__all__ = [
    "decode_result",
    "decode_v3_path",
    "encode_call",
    "encode_v3_path",
    "find_function",
]
