# fundbridge/services/distribution_service.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fundbridge.core.errors import StateConflict, ValidationFailed
from fundbridge.core.status_graph import can_transition
from fundbridge.models.distribution_run import DistributionRun
from fundbridge.models.enums import Currency, DistributionMode, ProjectStatus
from fundbridge.models.project import Project
from fundbridge.policies.ownership import require_owner
from fundbridge.services.projects_service import get_project_or_404

logger = logging.getLogger(__name__)


class DistributionService:
    """
    Append-only payout log. Funds are moved by the owner elsewhere; this
    only records the plan and the tx hashes that executed it.
    """

    def latest_plan(self, db: Session, project_id: int) -> Optional[DistributionRun]:
        get_project_or_404(db, project_id)
        return db.execute(
            select(DistributionRun)
            .where(
                DistributionRun.project_id == project_id,
                DistributionRun.mode == DistributionMode.PLAN_ONLY.value,
            )
            .order_by(DistributionRun.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def save_plan(self, db: Session, *, project_id: int, caller: str, plan: Any) -> DistributionRun:
        project = get_project_or_404(db, project_id)
        require_owner(project, caller)

        if not isinstance(plan, (dict, list)):
            raise ValidationFailed("PLAN_INVALID")

        run = DistributionRun(
            id=uuid.uuid4(),
            project_id=project.id,
            mode=DistributionMode.PLAN_ONLY.value,
            chain_id=None,
            currency=None,
            plan_json=plan,
            tx_hashes=[],
            dry_run=True,
            note="plan saved",
            created_at=datetime.now(timezone.utc),
        )
        db.add(run)
        db.commit()
        db.refresh(run)
        return run

    def execute(
        self,
        db: Session,
        *,
        project_id: int,
        caller: str,
        chain_id: int,
        currency: Currency,
        tx_hashes: List[str],
        dry_run: bool = False,
        note: Optional[str] = None,
    ) -> DistributionRun:
        project = get_project_or_404(db, project_id)
        require_owner(project, caller)

        if project.status == ProjectStatus.DISTRIBUTED.value and not dry_run:
            raise StateConflict("ALREADY_DISTRIBUTED")
        if project.bridged_at is None or not can_transition(project.status, ProjectStatus.DISTRIBUTED):
            raise ValidationFailed("DISTRIBUTE_REQUIRES_BRIDGED")

        plan = self.latest_plan(db, project.id)
        if plan is None:
            raise ValidationFailed("DISTRIBUTION_PLAN_NOT_SET")

        now = datetime.now(timezone.utc)
        run = DistributionRun(
            id=uuid.uuid4(),
            project_id=project.id,
            mode=DistributionMode.LOG_ONLY.value,
            chain_id=chain_id,
            currency=Currency(currency).value,
            plan_json=plan.plan_json,
            tx_hashes=[h.lower() for h in tx_hashes],
            dry_run=dry_run,
            note=note,
            created_at=now,
        )
        db.add(run)

        if not dry_run:
            res = db.execute(
                update(Project)
                .where(Project.id == project.id, Project.status == ProjectStatus.BRIDGED.value)
                .values(status=ProjectStatus.DISTRIBUTED.value, updated_at=now)
            )
            if res.rowcount == 0:
                db.rollback()
                raise StateConflict("ALREADY_DISTRIBUTED")

        db.commit()
        db.refresh(run)

        logger.info(
            "[distribution] logged run=%s project_id=%s txs=%d dry_run=%s",
            run.id,
            project.id,
            len(run.tx_hashes),
            dry_run,
        )
        return run
