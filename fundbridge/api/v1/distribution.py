from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fundbridge.core.errors import AppError, http_error
from fundbridge.db.session import get_db
from fundbridge.schemas.distribution import (
    DistributionExecuteRequest,
    DistributionExecuteResponse,
    DistributionPlanRequest,
    DistributionPlanResponse,
)
from fundbridge.services.distribution_service import DistributionService
from fundbridge.services.projects_service import get_project_or_404

router = APIRouter(prefix="/projects/{project_id}/distribution")
svc = DistributionService()


def _iso(dt):
    return dt.isoformat() if dt else None


@router.get("/plan", response_model=DistributionPlanResponse)
def get_plan(project_id: int, db: Session = Depends(get_db)):
    try:
        project = get_project_or_404(db, project_id)
        plan = svc.latest_plan(db, project_id)
    except AppError as e:
        raise http_error(e)
    return DistributionPlanResponse(
        projectId=project.id,
        status=project.status,
        plan=plan.plan_json if plan else None,
        distributionRunId=str(plan.id) if plan else None,
        savedAtIso=_iso(plan.created_at) if plan else None,
    )


@router.put("/plan", response_model=DistributionPlanResponse)
def save_plan(project_id: int, body: DistributionPlanRequest, db: Session = Depends(get_db)):
    try:
        run = svc.save_plan(db, project_id=project_id, caller=body.address, plan=body.plan)
        project = get_project_or_404(db, project_id)
    except AppError as e:
        raise http_error(e)
    return DistributionPlanResponse(
        projectId=project.id,
        status=project.status,
        plan=run.plan_json,
        distributionRunId=str(run.id),
        savedAtIso=_iso(run.created_at),
    )


@router.post("/execute", response_model=DistributionExecuteResponse)
def execute_distribution(
    project_id: int,
    body: DistributionExecuteRequest,
    db: Session = Depends(get_db),
):
    try:
        run = svc.execute(
            db,
            project_id=project_id,
            caller=body.address,
            chain_id=body.chainId,
            currency=body.currency,
            tx_hashes=body.txHashes,
            dry_run=body.dryRun,
            note=body.note,
        )
    except AppError as e:
        raise http_error(e)
    return DistributionExecuteResponse(
        distributionRunId=str(run.id),
        dryRun=run.dry_run,
        distributed=not run.dry_run,
        txHashes=list(run.tx_hashes or []),
        loggedAtIso=_iso(run.created_at),
    )
