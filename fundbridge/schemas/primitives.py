from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from web3 import Web3

from fundbridge.core.amounts import CANONICAL_PLACES, AmountParseError, canonical_amount


# --- Boundary decoders (reject before any storage or chain access) ---
def _evm_address(v: str) -> str:
    s = v.strip()
    if not Web3.is_address(s):
        raise ValueError("not a valid EVM address")
    return Web3.to_checksum_address(s)


def _tx_hash(v: str) -> str:
    s = v.strip().lower()
    if len(s) != 66 or not s.startswith("0x"):
        raise ValueError("tx hash must be 0x followed by 64 hex characters")
    try:
        int(s[2:], 16)
    except ValueError:
        raise ValueError("tx hash must be hexadecimal")
    return s


def _human_amount(v: str) -> str:
    s = v.strip()
    try:
        # same parser the ledger uses; rejects signs, exponents and digit separators
        canonical_amount(s)
    except AmountParseError:
        raise ValueError(
            f"amount must be a plain non-negative decimal with at most {CANONICAL_PLACES} fractional digits"
        )
    return s


EvmAddress = Annotated[str, Field(min_length=40, max_length=42), AfterValidator(_evm_address)]
TxHash = Annotated[str, Field(min_length=66, max_length=66), AfterValidator(_tx_hash)]
HumanAmount = Annotated[str, Field(min_length=1, max_length=80), AfterValidator(_human_amount)]
ChainId = Annotated[int, Field(gt=0)]
PositiveInt = Annotated[int, Field(gt=0)]


class ApiModel(BaseModel):
    """Request bodies: unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


class OwnerRequest(ApiModel):
    """
    Mutating project actions carry the caller's wallet address; it must
    equal Project.owner_address.
    """

    address: EvmAddress
