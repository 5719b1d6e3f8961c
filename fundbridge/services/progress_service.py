# fundbridge/services/progress_service.py
from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from fundbridge.core.amounts import floor_whole_units
from fundbridge.models.contribution import Contribution
from fundbridge.models.distribution_run import DistributionRun
from fundbridge.models.enums import ContributionStatus, Currency
from fundbridge.models.bridge_run import BridgeRun
from fundbridge.services.goal_service import GoalService
from fundbridge.services.projects_service import ProjectsService, get_project_or_404


def _iso(dt):
    return dt.isoformat() if dt else None


def _dec(v: Decimal) -> str:
    return format(v, "f")


class ProgressService:
    """Read-only projections over the CONFIRMED ledger."""

    def __init__(self):
        self.goals = GoalService()
        self.projects = ProjectsService()

    def _confirmed_rows(self, db: Session, project_id: int) -> List[Tuple[int, str, Optional[int], str]]:
        return list(
            db.execute(
                select(
                    Contribution.chain_id,
                    Contribution.currency,
                    Contribution.purpose_id,
                    Contribution.amount_decimal,
                ).where(
                    Contribution.project_id == project_id,
                    Contribution.status == ContributionStatus.CONFIRMED.value,
                )
            ).all()
        )

    def progress(self, db: Session, project_id: int) -> Dict[str, Any]:
        get_project_or_404(db, project_id)
        goal = self.goals.get(db, project_id)
        goal_currency = goal.currency if goal else Currency.JPYC.value

        totals: Dict[str, Decimal] = {c.value: Decimal(0) for c in Currency}
        by_chain: Dict[Tuple[int, str], List[Decimal]] = defaultdict(list)
        by_purpose: Dict[int, List[Decimal]] = defaultdict(list)
        no_purpose: List[Decimal] = []

        for chain_id, currency, purpose_id, amount in self._confirmed_rows(db, project_id):
            value = Decimal(amount)
            totals[currency] = totals.get(currency, Decimal(0)) + value
            by_chain[(chain_id, currency)].append(value)
            if currency != goal_currency:
                continue
            if purpose_id is None:
                no_purpose.append(value)
            else:
                by_purpose[purpose_id].append(value)

        confirmed = floor_whole_units(totals.get(goal_currency, Decimal(0)))
        target = goal.target_amount if goal else None
        pct = min(100.0, confirmed / target * 100) if target and target > 0 else 0.0

        purposes = {p.id: p for p in self.projects.list_purposes(db, project_id)}

        return {
            "projectId": project_id,
            "currency": goal_currency,
            "confirmedTotal": confirmed,
            "target": target,
            "progressPercent": pct,
            "achievedAt": _iso(goal.achieved_at) if goal else None,
            "totals": {k: _dec(v) for k, v in totals.items()},
            "byChain": [
                {
                    "chainId": chain_id,
                    "currency": currency,
                    "confirmedAmountDecimal": _dec(sum(values, Decimal(0))),
                    "count": len(values),
                }
                for (chain_id, currency), values in sorted(by_chain.items())
            ],
            "byPurpose": [
                {
                    "purposeId": pid,
                    "code": purposes[pid].code if pid in purposes else None,
                    "label": purposes[pid].label if pid in purposes else None,
                    "confirmedAmountDecimal": _dec(sum(values, Decimal(0))),
                    "confirmedAmount": floor_whole_units(sum(values, Decimal(0))),
                }
                for pid, values in sorted(by_purpose.items())
            ],
            "noPurposeConfirmedAmount": floor_whole_units(sum(no_purpose, Decimal(0))),
        }

    def summary(self, db: Session, project_id: int) -> Dict[str, Any]:
        project = get_project_or_404(db, project_id)
        goal = self.goals.get(db, project_id)

        bridge_runs = list(
            db.execute(
                select(BridgeRun)
                .where(BridgeRun.project_id == project_id)
                .order_by(BridgeRun.created_at.desc())
                .limit(5)
            ).scalars()
        )
        distribution_runs = list(
            db.execute(
                select(DistributionRun)
                .where(DistributionRun.project_id == project_id)
                .order_by(DistributionRun.created_at.desc())
                .limit(5)
            ).scalars()
        )

        return {
            "project": {
                "id": project.id,
                "title": project.title,
                "status": project.status,
                "ownerAddress": project.owner_address,
                "bridgedAt": _iso(project.bridged_at),
            },
            "goal": (
                {
                    "targetAmount": goal.target_amount,
                    "currency": goal.currency,
                    "deadline": _iso(goal.deadline),
                    "achievedAt": _iso(goal.achieved_at),
                }
                if goal
                else None
            ),
            "progress": self.progress(db, project_id),
            "lastBridgeRuns": [
                {
                    "id": str(r.id),
                    "mode": r.mode,
                    "currency": r.currency,
                    "snapshotAmountDecimal": r.snapshot_amount_decimal,
                    "destinationTxHash": r.destination_tx_hash,
                    "confirmedAt": _iso(r.confirmed_at),
                    "dryRun": r.dry_run,
                    "createdAt": _iso(r.created_at),
                }
                for r in bridge_runs
            ],
            "lastDistributionRuns": [
                {
                    "id": str(r.id),
                    "mode": r.mode,
                    "txHashes": r.tx_hashes or [],
                    "dryRun": r.dry_run,
                    "createdAt": _iso(r.created_at),
                }
                for r in distribution_runs
            ],
        }
