"""Token model."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quoter.constants import NATIVE_ETH
from quoter.models.types import checksum_address, normalize_address, same_address


class Token(BaseModel):
    """ERC-20 (or native ETH) token metadata.

    Identity is the contract address: two tokens are equal when their
    addresses match case-insensitively. The address is stored checksummed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    contract_address: str = Field(alias="contractAddress")
    # Some exotic tokens use more than 18 decimals; 77 is the max for uint256
    decimals: int = Field(ge=0, le=77)
    symbol: str
    name: str | None = None

    @field_validator("contract_address")
    @classmethod
    def _checksum(cls, value: str) -> str:
        return checksum_address(value)

    @property
    def is_native_eth(self) -> bool:
        return same_address(self.contract_address, NATIVE_ETH)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return False
        return same_address(self.contract_address, other.contract_address)

    def __hash__(self) -> int:
        return hash(normalize_address(self.contract_address))
