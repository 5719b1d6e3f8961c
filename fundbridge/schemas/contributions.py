from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from fundbridge.models.enums import Currency
from fundbridge.schemas.primitives import ApiModel, ChainId, EvmAddress, HumanAmount, TxHash


class ContributionSubmitRequest(ApiModel):
    projectId: int = Field(..., gt=0)
    purposeId: Optional[int] = Field(default=None, gt=0)
    chainId: ChainId
    currency: Currency = Currency.JPYC
    txHash: TxHash
    fromAddress: EvmAddress
    toAddress: EvmAddress
    amount: HumanAmount


class ContributionReverifyRequest(ApiModel):
    txHash: TxHash


class ContributionOut(BaseModel):
    id: int
    projectId: int
    purposeId: Optional[int] = None
    chainId: int
    currency: str
    txHash: str
    fromAddress: str
    toAddress: str
    amountRaw: str
    decimals: int
    amountDecimal: str
    status: str
    blockNumber: Optional[int] = None
    confirmedAtIso: Optional[str] = None
    createdAtIso: Optional[str] = None


class ContributionResult(BaseModel):
    verified: bool
    reason: Optional[str] = None
    contribution: Optional[ContributionOut] = None


class ContributionListResponse(BaseModel):
    items: List[ContributionOut]
