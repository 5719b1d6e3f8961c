from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from fundbridge.models.enums import Currency
from fundbridge.schemas.primitives import ChainId, OwnerRequest, TxHash


class DistributionPlanRequest(OwnerRequest):
    # JSON object or array; scalars are rejected
    plan: Union[Dict[str, Any], List[Any]]


class DistributionPlanResponse(BaseModel):
    projectId: int
    status: str
    plan: Optional[Union[Dict[str, Any], List[Any]]] = None
    distributionRunId: Optional[str] = None
    savedAtIso: Optional[str] = None


class DistributionExecuteRequest(OwnerRequest):
    chainId: ChainId
    currency: Currency = Currency.JPYC
    txHashes: List[TxHash] = Field(..., min_length=1)
    dryRun: bool = False
    note: Optional[str] = Field(default=None, max_length=2000)


class DistributionExecuteResponse(BaseModel):
    distributionRunId: str
    dryRun: bool
    distributed: bool
    txHashes: List[str]
    loggedAtIso: Optional[str] = None
