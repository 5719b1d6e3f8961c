from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from fundbridge.models.enums import BridgeProvider, Currency
from fundbridge.schemas.primitives import OwnerRequest, TxHash


class BridgePrepareRequest(OwnerRequest):
    currency: Currency = Currency.JPYC
    provider: BridgeProvider = BridgeProvider.WORMHOLE_UI
    dryRun: bool = False
    force: bool = False
    note: Optional[str] = Field(default=None, max_length=2000)


class BridgeExecuteRequest(OwnerRequest):
    # ICTT flow: same as prepare with the provider fixed
    currency: Currency = Currency.JPYC
    dryRun: bool = False
    force: bool = False
    note: Optional[str] = Field(default=None, max_length=2000)


class BridgeAttachRequest(OwnerRequest):
    bridgeRunId: uuid.UUID
    destinationTxHash: TxHash


class BridgeReverifyRequest(OwnerRequest):
    bridgeRunId: Optional[uuid.UUID] = None


class ChainEndpointOut(BaseModel):
    chainId: int
    address: Optional[str] = None
    vaultAddress: Optional[str] = None


class BridgePrepareResponse(BaseModel):
    prepared: bool = True
    bridgeRunId: str
    provider: str
    currency: str
    dryRun: bool
    force: bool
    snapshotAmountDecimal: str
    source: ChainEndpointOut
    destination: ChainEndpointOut
    token: Dict[str, Any]
    providerInstructions: Dict[str, Any]
    createdAtIso: Optional[str] = None


class BridgeAttachResponse(BaseModel):
    saved: bool
    bridgeRunId: str
    destinationTxHash: str


class BridgeReverifyResponse(BaseModel):
    verified: bool
    confirmed: bool
    bridgeRunId: Optional[str] = None
    reason: Optional[str] = None
    confirmedAtIso: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
