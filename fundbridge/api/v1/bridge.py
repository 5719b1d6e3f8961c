# fundbridge/api/v1/bridge.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fundbridge.core.deps import get_bridge_service
from fundbridge.core.errors import AppError, http_error
from fundbridge.db.session import get_db
from fundbridge.models.enums import BridgeProvider
from fundbridge.schemas.bridge import (
    BridgeAttachRequest,
    BridgeAttachResponse,
    BridgeExecuteRequest,
    BridgePrepareRequest,
    BridgePrepareResponse,
    BridgeReverifyRequest,
    BridgeReverifyResponse,
    ChainEndpointOut,
)
from fundbridge.services.bridge_service import BridgeService

router = APIRouter(prefix="/projects/{project_id}/bridge")


def _iso(dt):
    return dt.isoformat() if dt else None


def _prepared(run, instructions) -> BridgePrepareResponse:
    return BridgePrepareResponse(
        bridgeRunId=str(run.id),
        provider=run.mode,
        currency=run.currency,
        dryRun=run.dry_run,
        force=run.force,
        snapshotAmountDecimal=run.snapshot_amount_decimal,
        source=ChainEndpointOut(
            chainId=run.source_chain_id,
            address=run.source_address,
            vaultAddress=run.vault_address,
        ),
        destination=ChainEndpointOut(
            chainId=run.destination_chain_id,
            address=run.recipient_address,
        ),
        token={"address": run.token_address, "chainId": run.destination_chain_id},
        providerInstructions=instructions,
        createdAtIso=_iso(run.created_at),
    )


@router.post("/prepare", response_model=BridgePrepareResponse)
def prepare_bridge(
    project_id: int,
    body: BridgePrepareRequest,
    db: Session = Depends(get_db),
    svc: BridgeService = Depends(get_bridge_service),
):
    try:
        run, instructions = svc.prepare(
            db,
            project_id=project_id,
            caller=body.address,
            currency=body.currency,
            provider=body.provider,
            dry_run=body.dryRun,
            force=body.force,
            note=body.note,
        )
    except AppError as e:
        raise http_error(e)
    return _prepared(run, instructions)


@router.post("/execute", response_model=BridgePrepareResponse)
def execute_bridge(
    project_id: int,
    body: BridgeExecuteRequest,
    db: Session = Depends(get_db),
    svc: BridgeService = Depends(get_bridge_service),
):
    """
    ICTT flow: prepares a run and returns the parameters the client signs
    and sends itself. Status does not move here.
    """
    try:
        run, instructions = svc.prepare(
            db,
            project_id=project_id,
            caller=body.address,
            currency=body.currency,
            provider=BridgeProvider.ICTT,
            dry_run=body.dryRun,
            force=body.force,
            note=body.note,
        )
    except AppError as e:
        raise http_error(e)
    return _prepared(run, instructions)


@router.post("/run", response_model=BridgeAttachResponse)
def attach_bridge_tx(
    project_id: int,
    body: BridgeAttachRequest,
    db: Session = Depends(get_db),
    svc: BridgeService = Depends(get_bridge_service),
):
    try:
        run = svc.attach(
            db,
            project_id=project_id,
            bridge_run_id=body.bridgeRunId,
            caller=body.address,
            destination_tx_hash=body.destinationTxHash,
        )
    except AppError as e:
        raise http_error(e)
    return BridgeAttachResponse(
        saved=True,
        bridgeRunId=str(run.id),
        destinationTxHash=run.destination_tx_hash,
    )


@router.post("/reverify", response_model=BridgeReverifyResponse)
def reverify_bridge(
    project_id: int,
    body: BridgeReverifyRequest,
    db: Session = Depends(get_db),
    svc: BridgeService = Depends(get_bridge_service),
):
    try:
        out = svc.reverify(
            db,
            project_id=project_id,
            caller=body.address,
            bridge_run_id=body.bridgeRunId,
        )
    except AppError as e:
        raise http_error(e)
    return BridgeReverifyResponse(
        verified=out.verified,
        confirmed=out.confirmed,
        bridgeRunId=str(out.run.id) if out.run else None,
        reason=out.reason,
        confirmedAtIso=_iso(out.run.confirmed_at) if out.run else None,
        details=out.details,
    )
