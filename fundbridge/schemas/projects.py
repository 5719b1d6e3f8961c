#fundbridge/schemas/projects.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from fundbridge.models.enums import Currency
from fundbridge.schemas.primitives import ApiModel, ChainId, EvmAddress, OwnerRequest, PositiveInt


# -----------------------
# Project
# -----------------------


class ProjectCreateRequest(ApiModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    ownerAddress: EvmAddress

    fundingChainId: Optional[ChainId] = None
    fundingSourceAddress: Optional[EvmAddress] = None
    vaultAddress: Optional[EvmAddress] = None

    settlementChainId: Optional[ChainId] = None
    settlementRecipientAddress: Optional[EvmAddress] = None
    settlementTokenAddress: Optional[EvmAddress] = None


class ProjectResponse(BaseModel):
    projectId: int
    title: str
    description: Optional[str] = None
    ownerAddress: Optional[str] = None
    status: str
    fundingChainId: Optional[int] = None
    settlementChainId: Optional[int] = None
    settlementRecipientAddress: Optional[str] = None
    settlementTokenAddress: Optional[str] = None
    bridgedAtIso: Optional[str] = None
    createdAtIso: Optional[str] = None


# -----------------------
# Goal
# -----------------------


class GoalSetRequest(OwnerRequest):
    targetAmount: PositiveInt
    currency: Currency = Currency.JPYC
    deadline: Optional[datetime] = None


class GoalResponse(BaseModel):
    projectId: int
    targetAmount: int
    currency: str
    deadlineIso: Optional[str] = None
    achievedAtIso: Optional[str] = None


class GoalAchieveResponse(BaseModel):
    achieved: bool
    changed: bool
    reason: str
    confirmedTotal: int
    target: Optional[int] = None
    achievedAtIso: Optional[str] = None


# -----------------------
# Purposes
# -----------------------


class PurposeCreateRequest(OwnerRequest):
    code: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    targetAmount: Optional[PositiveInt] = None
    orderIndex: int = Field(default=0, ge=0)


class PurposeResponse(BaseModel):
    purposeId: int
    projectId: int
    code: str
    label: str
    description: Optional[str] = None
    targetAmount: Optional[int] = None
    orderIndex: int


class PurposeListResponse(BaseModel):
    items: List[PurposeResponse]


# -----------------------
# Read projections
# -----------------------


class ProgressResponse(BaseModel):
    projectId: int
    currency: str
    confirmedTotal: int
    target: Optional[int] = None
    progressPercent: float
    achievedAt: Optional[str] = None
    totals: Dict[str, str]
    byChain: List[Dict[str, Any]]
    byPurpose: List[Dict[str, Any]]
    noPurposeConfirmedAmount: int


class SummaryResponse(BaseModel):
    project: Dict[str, Any]
    goal: Optional[Dict[str, Any]] = None
    progress: ProgressResponse
    lastBridgeRuns: List[Dict[str, Any]]
    lastDistributionRuns: List[Dict[str, Any]]
