# fundbridge/services/goal_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from fundbridge.core.amounts import floor_whole_units, sum_amounts
from fundbridge.core.errors import StateConflict, ValidationFailed
from fundbridge.core.status_graph import sources_for
from fundbridge.models.contribution import Contribution
from fundbridge.models.enums import ContributionStatus, Currency, ProjectStatus
from fundbridge.models.goal import Goal
from fundbridge.models.project import Project
from fundbridge.policies.ownership import require_owner

logger = logging.getLogger(__name__)

# Statuses a project may be in when its goal is stamped. Anything later
# (BRIDGED, DISTRIBUTED) is never pulled back to GOAL_ACHIEVED.
PRE_ACHIEVEMENT_STATUSES = tuple(sources_for(ProjectStatus.GOAL_ACHIEVED))

GOAL_NOT_SET = "GOAL_NOT_SET"
TARGET_INVALID = "TARGET_INVALID"
ALREADY_ACHIEVED = "ALREADY_ACHIEVED"
NOT_REACHED = "NOT_REACHED"
ACHIEVED = "ACHIEVED"


@dataclass(frozen=True)
class AchieveOutcome:
    achieved: bool
    changed: bool
    reason: str
    confirmed_total: int = 0
    target: Optional[int] = None
    achieved_at: Optional[datetime] = None


def confirmed_total_decimal(db: Session, project_id: int, currency: str):
    rows = db.execute(
        select(Contribution.amount_decimal).where(
            Contribution.project_id == project_id,
            Contribution.status == ContributionStatus.CONFIRMED.value,
            Contribution.currency == currency,
        )
    ).scalars()
    return sum_amounts(rows)


class GoalService:
    def get(self, db: Session, project_id: int) -> Optional[Goal]:
        return db.execute(select(Goal).where(Goal.project_id == project_id)).scalar_one_or_none()

    def try_achieve(
        self,
        db: Session,
        project_id: int,
        *,
        now: Optional[datetime] = None,
        commit: bool = True,
    ) -> AchieveOutcome:
        """
        Stamp Goal.achieved_at once the floored CONFIRMED total reaches the target.

        Idempotent and race-safe: the stamp is a conditional UPDATE
        (achieved_at IS NULL), so of N concurrent callers exactly one sees
        changed=True. With commit=False the caller owns the transaction.
        """
        goal = self.get(db, project_id)
        if goal is None:
            return AchieveOutcome(achieved=False, changed=False, reason=GOAL_NOT_SET)

        if goal.achieved_at is not None:
            return AchieveOutcome(
                achieved=True,
                changed=False,
                reason=ALREADY_ACHIEVED,
                target=goal.target_amount,
                achieved_at=goal.achieved_at,
            )

        target = int(goal.target_amount or 0)
        if target <= 0:
            return AchieveOutcome(achieved=False, changed=False, reason=TARGET_INVALID, target=target)

        total = floor_whole_units(
            confirmed_total_decimal(db, project_id, goal.currency or Currency.JPYC.value)
        )
        if total < target:
            logger.info("[goal] not reached project_id=%s total=%s target=%s", project_id, total, target)
            return AchieveOutcome(
                achieved=False, changed=False, reason=NOT_REACHED, confirmed_total=total, target=target
            )

        stamp = now or datetime.now(timezone.utc)
        res = db.execute(
            update(Goal)
            .where(Goal.id == goal.id, Goal.achieved_at.is_(None))
            .values(achieved_at=stamp, updated_at=stamp)
        )
        changed = res.rowcount > 0

        if changed:
            db.execute(
                update(Project)
                .where(Project.id == project_id, Project.status.in_(PRE_ACHIEVEMENT_STATUSES))
                .values(status=ProjectStatus.GOAL_ACHIEVED.value, updated_at=stamp)
            )

        if commit:
            db.commit()
        else:
            db.flush()

        # another caller may have stamped first; report the stored value
        db.refresh(goal)
        if changed:
            logger.info("[goal] achieved project_id=%s total=%s target=%s", project_id, total, target)

        return AchieveOutcome(
            achieved=True,
            changed=changed,
            reason=ACHIEVED if changed else ALREADY_ACHIEVED,
            confirmed_total=total,
            target=target,
            achieved_at=goal.achieved_at,
        )

    def achieve_manually(self, db: Session, project: Project, *, caller: str) -> AchieveOutcome:
        require_owner(project, caller)
        out = self.try_achieve(db, project.id)
        if out.reason == GOAL_NOT_SET:
            raise ValidationFailed(GOAL_NOT_SET)
        if out.reason == TARGET_INVALID:
            raise ValidationFailed("GOAL_TARGET_INVALID")
        if out.reason == NOT_REACHED:
            raise ValidationFailed(
                "GOAL_NOT_REACHED",
                f"Confirmed total {out.confirmed_total} is below target {out.target}.",
            )
        return out

    def set_goal(
        self,
        db: Session,
        project: Project,
        *,
        caller: str,
        target_amount: int,
        currency: Currency = Currency.JPYC,
        deadline: Optional[datetime] = None,
    ) -> Goal:
        require_owner(project, caller)

        now = datetime.now(timezone.utc)
        goal = self.get(db, project.id)
        if goal is None:
            goal = Goal(
                project_id=project.id,
                target_amount=target_amount,
                currency=Currency(currency).value,
                deadline=deadline,
                created_at=now,
                updated_at=now,
            )
            db.add(goal)
        else:
            if goal.achieved_at is not None:
                raise StateConflict("GOAL_ALREADY_ACHIEVED", "Goal is read-only once achieved.")
            goal.target_amount = target_amount
            goal.currency = Currency(currency).value
            goal.deadline = deadline
            goal.updated_at = now

        db.commit()
        db.refresh(goal)
        return goal

