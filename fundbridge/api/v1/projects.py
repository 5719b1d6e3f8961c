# fundbridge/api/v1/projects.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fundbridge.api.v1.contributions import contribution_out
from fundbridge.core.deps import get_contribution_service
from fundbridge.core.errors import AppError, http_error
from fundbridge.db.session import get_db
from fundbridge.models.enums import ContributionStatus
from fundbridge.schemas.contributions import ContributionListResponse
from fundbridge.schemas.primitives import OwnerRequest
from fundbridge.schemas.projects import (
    GoalAchieveResponse,
    GoalResponse,
    GoalSetRequest,
    ProgressResponse,
    ProjectCreateRequest,
    ProjectResponse,
    PurposeCreateRequest,
    PurposeListResponse,
    PurposeResponse,
    SummaryResponse,
)
from fundbridge.services.contribution_service import ContributionService
from fundbridge.services.goal_service import GoalService
from fundbridge.services.progress_service import ProgressService
from fundbridge.services.projects_service import ProjectsService, get_project_or_404

router = APIRouter(prefix="/projects")

projects = ProjectsService()
goals = GoalService()
progress = ProgressService()


def _iso(dt):
    return dt.isoformat() if dt else None


def _resp(p) -> ProjectResponse:
    return ProjectResponse(
        projectId=p.id,
        title=p.title,
        description=p.description,
        ownerAddress=p.owner_address,
        status=p.status,
        fundingChainId=p.funding_chain_id,
        settlementChainId=p.settlement_chain_id,
        settlementRecipientAddress=p.settlement_recipient_address,
        settlementTokenAddress=p.settlement_token_address,
        bridgedAtIso=_iso(p.bridged_at),
        createdAtIso=_iso(p.created_at),
    )


def _purpose(p) -> PurposeResponse:
    return PurposeResponse(
        purposeId=p.id,
        projectId=p.project_id,
        code=p.code,
        label=p.label,
        description=p.description,
        targetAmount=p.target_amount,
        orderIndex=p.order_index,
    )


def _goal(g) -> GoalResponse:
    return GoalResponse(
        projectId=g.project_id,
        targetAmount=g.target_amount,
        currency=g.currency,
        deadlineIso=_iso(g.deadline),
        achievedAtIso=_iso(g.achieved_at),
    )


@router.post("", response_model=ProjectResponse)
def create_project(body: ProjectCreateRequest, db: Session = Depends(get_db)):
    p = projects.create(
        db,
        title=body.title,
        description=body.description,
        owner_address=body.ownerAddress,
        funding_chain_id=body.fundingChainId,
        funding_source_address=body.fundingSourceAddress,
        vault_address=body.vaultAddress,
        settlement_chain_id=body.settlementChainId,
        settlement_recipient_address=body.settlementRecipientAddress,
        settlement_token_address=body.settlementTokenAddress,
    )
    return _resp(p)


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(project_id: int, db: Session = Depends(get_db)):
    try:
        p = get_project_or_404(db, project_id)
    except AppError as e:
        raise http_error(e)
    return _resp(p)


# -----------------------
# Goal
# -----------------------


@router.put("/{project_id}/goal", response_model=GoalResponse)
def set_goal(project_id: int, body: GoalSetRequest, db: Session = Depends(get_db)):
    try:
        project = get_project_or_404(db, project_id)
        g = goals.set_goal(
            db,
            project,
            caller=body.address,
            target_amount=body.targetAmount,
            currency=body.currency,
            deadline=body.deadline,
        )
    except AppError as e:
        raise http_error(e)
    return _goal(g)


@router.post("/{project_id}/goal/achieve", response_model=GoalAchieveResponse)
def achieve_goal(project_id: int, body: OwnerRequest, db: Session = Depends(get_db)):
    try:
        project = get_project_or_404(db, project_id)
        out = goals.achieve_manually(db, project, caller=body.address)
    except AppError as e:
        raise http_error(e)
    return GoalAchieveResponse(
        achieved=out.achieved,
        changed=out.changed,
        reason=out.reason,
        confirmedTotal=out.confirmed_total,
        target=out.target,
        achievedAtIso=_iso(out.achieved_at),
    )


# -----------------------
# Purposes
# -----------------------


@router.get("/{project_id}/purposes", response_model=PurposeListResponse)
def list_purposes(project_id: int, db: Session = Depends(get_db)):
    try:
        get_project_or_404(db, project_id)
    except AppError as e:
        raise http_error(e)
    return PurposeListResponse(items=[_purpose(p) for p in projects.list_purposes(db, project_id)])


@router.post("/{project_id}/purposes", response_model=PurposeResponse)
def add_purpose(project_id: int, body: PurposeCreateRequest, db: Session = Depends(get_db)):
    try:
        project = get_project_or_404(db, project_id)
        p = projects.add_purpose(
            db,
            project,
            caller=body.address,
            code=body.code,
            label=body.label,
            description=body.description,
            target_amount=body.targetAmount,
            order_index=body.orderIndex,
        )
    except AppError as e:
        raise http_error(e)
    return _purpose(p)


# -----------------------
# Read projections
# -----------------------


@router.get("/{project_id}/contributions", response_model=ContributionListResponse)
def list_contributions(
    project_id: int,
    status: Optional[ContributionStatus] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    db: Session = Depends(get_db),
    svc: ContributionService = Depends(get_contribution_service),
):
    try:
        rows = svc.list_for_project(db, project_id, status=status, limit=limit)
    except AppError as e:
        raise http_error(e)
    return ContributionListResponse(items=[contribution_out(c) for c in rows])


@router.get("/{project_id}/progress", response_model=ProgressResponse)
def get_progress(project_id: int, db: Session = Depends(get_db)):
    try:
        return progress.progress(db, project_id)
    except AppError as e:
        raise http_error(e)


@router.get("/{project_id}/summary", response_model=SummaryResponse)
def get_summary(project_id: int, db: Session = Depends(get_db)):
    try:
        return progress.summary(db, project_id)
    except AppError as e:
        raise http_error(e)
