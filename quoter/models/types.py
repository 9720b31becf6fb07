"""Shared address and amount helpers.

Addresses are compared case-insensitively (lowercase) and stored in
checksummed form on models.
"""

from decimal import ROUND_DOWN, Decimal, localcontext

from eth_utils import is_hex_address, to_checksum_address

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

# Enough digits to represent any uint256 exactly
_UINT256_PRECISION = 80


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: object) -> bool:
    """Check if a value is a well-formed Ethereum address (0x + 40 hex chars)."""
    if not isinstance(address, str) or not address.startswith("0x"):
        return False
    return is_hex_address(address)


def checksum_address(address: str) -> str:
    """Return the EIP-55 checksummed form of an address."""
    return to_checksum_address(normalize_address(address, validate=True))


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return normalize_address(a) == normalize_address(b)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a human amount to the token's smallest unit, truncating.

    Example: to_base_units(Decimal("1.5"), 6) == 1_500_000
    """
    with localcontext() as ctx:
        ctx.prec = _UINT256_PRECISION
        scaled = Decimal(amount).scaleb(decimals)
        value = int(scaled.to_integral_value(rounding=ROUND_DOWN))
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"Amount out of uint256 range: {amount}")
    return value


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Convert a raw integer amount to a decimal using the token's precision."""
    with localcontext() as ctx:
        ctx.prec = _UINT256_PRECISION
        return Decimal(raw).scaleb(-decimals)
