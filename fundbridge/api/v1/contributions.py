# fundbridge/api/v1/contributions.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fundbridge.core.deps import get_contribution_service
from fundbridge.core.errors import AppError, http_error
from fundbridge.db.session import get_db
from fundbridge.schemas.contributions import (
    ContributionOut,
    ContributionReverifyRequest,
    ContributionResult,
    ContributionSubmitRequest,
)
from fundbridge.services.contribution_service import ContributionOutcome, ContributionService

router = APIRouter(prefix="/contributions")


def _iso(dt):
    return dt.isoformat() if dt else None


def contribution_out(c) -> ContributionOut:
    return ContributionOut(
        id=c.id,
        projectId=c.project_id,
        purposeId=c.purpose_id,
        chainId=c.chain_id,
        currency=c.currency,
        txHash=c.tx_hash,
        fromAddress=c.from_address,
        toAddress=c.to_address,
        amountRaw=c.amount_raw,
        decimals=c.decimals,
        amountDecimal=c.amount_decimal,
        status=c.status,
        blockNumber=c.block_number,
        confirmedAtIso=_iso(c.confirmed_at),
        createdAtIso=_iso(c.created_at),
    )


def _result(out: ContributionOutcome) -> ContributionResult:
    return ContributionResult(
        verified=out.verified,
        reason=out.reason,
        contribution=contribution_out(out.contribution) if out.contribution else None,
    )


@router.post("", response_model=ContributionResult)
def submit_contribution(
    body: ContributionSubmitRequest,
    db: Session = Depends(get_db),
    svc: ContributionService = Depends(get_contribution_service),
):
    try:
        out = svc.submit(
            db,
            project_id=body.projectId,
            purpose_id=body.purposeId,
            chain_id=body.chainId,
            currency=body.currency,
            tx_hash=body.txHash,
            from_address=body.fromAddress,
            to_address=body.toAddress,
            amount=body.amount,
        )
    except AppError as e:
        raise http_error(e)
    return _result(out)


@router.post("/reverify", response_model=ContributionResult)
def reverify_contribution(
    body: ContributionReverifyRequest,
    db: Session = Depends(get_db),
    svc: ContributionService = Depends(get_contribution_service),
):
    try:
        out = svc.reverify(db, body.txHash)
    except AppError as e:
        raise http_error(e)
    return _result(out)
