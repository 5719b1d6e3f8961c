# fundbridge/services/contribution_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from fundbridge.core.amounts import AmountParseError, canonical_amount
from fundbridge.core.errors import ConfigurationError, NotFound, ValidationFailed
from fundbridge.models.contribution import Contribution
from fundbridge.models.enums import ContributionStatus, Currency
from fundbridge.services.goal_service import GoalService
from fundbridge.services.projects_service import ProjectsService, get_project_or_404
from fundbridge.services.transfer_matcher import MatchResult, TransferMatcher

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class ContributionOutcome:
    verified: bool
    contribution: Optional[Contribution]
    reason: Optional[str] = None


def _dialect_insert(db: Session):
    name = db.get_bind().dialect.name
    fn = _INSERTS.get(name)
    if fn is None:
        raise ConfigurationError("UNSUPPORTED_DATABASE", f"No upsert support for dialect {name}.")
    return fn


class ContributionService:
    """
    The contribution ledger.

    A row per transaction hash. Duplicate or concurrent submissions are
    collapsed by the UNIQUE(tx_hash) constraint via INSERT ... ON CONFLICT,
    and a CONFIRMED row is never written again.
    """

    def __init__(self, matcher: TransferMatcher, goals: Optional[GoalService] = None):
        self.matcher = matcher
        self.goals = goals or GoalService()
        self.projects = ProjectsService()

    def get_by_tx_hash(self, db: Session, tx_hash: str) -> Optional[Contribution]:
        return db.execute(
            select(Contribution)
            .where(Contribution.tx_hash == tx_hash.lower())
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_for_project(
        self,
        db: Session,
        project_id: int,
        *,
        status: Optional[ContributionStatus] = None,
        limit: int = 200,
    ) -> List[Contribution]:
        get_project_or_404(db, project_id)
        stmt = select(Contribution).where(Contribution.project_id == project_id)
        if status is not None:
            stmt = stmt.where(Contribution.status == ContributionStatus(status).value)
        stmt = stmt.order_by(Contribution.created_at.desc(), Contribution.id.desc()).limit(limit)
        return list(db.execute(stmt).scalars())

    # ---------------------------------------------------------------
    # submit
    # ---------------------------------------------------------------
    def submit(
        self,
        db: Session,
        *,
        project_id: int,
        purpose_id: Optional[int],
        chain_id: int,
        currency: Currency,
        tx_hash: str,
        from_address: str,
        to_address: str,
        amount: str,
    ) -> ContributionOutcome:
        tx_hash = tx_hash.lower()

        existing = self.get_by_tx_hash(db, tx_hash)
        if existing is not None and existing.status == ContributionStatus.CONFIRMED.value:
            return ContributionOutcome(verified=True, contribution=existing)

        get_project_or_404(db, project_id)
        if purpose_id is not None:
            self.projects.get_purpose(db, project_id, purpose_id)

        try:
            amount_decimal = canonical_amount(amount)
        except AmountParseError:
            raise ValidationFailed("AMOUNT_INVALID")

        result = self.matcher.verify(
            chain_id=chain_id,
            currency=currency,
            tx_hash=tx_hash,
            expected_to=to_address,
            expected_amount=amount,
            expected_from=from_address,
        )

        now = datetime.now(timezone.utc)
        values = dict(
            project_id=project_id,
            purpose_id=purpose_id,
            chain_id=chain_id,
            currency=Currency(currency).value,
            tx_hash=tx_hash,
            from_address=from_address,
            to_address=to_address,
            amount_decimal=amount_decimal,
            updated_at=now,
            **self._verdict_values(result, now),
        )

        insert = _dialect_insert(db)
        stmt = insert(Contribution).values(created_at=now, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["tx_hash"],
            set_={k: stmt.excluded[k] for k in values if k != "tx_hash"},
            where=Contribution.status == ContributionStatus.PENDING.value,
        )
        db.execute(stmt)
        db.commit()

        row = self.get_by_tx_hash(db, tx_hash)
        verified = row is not None and row.status == ContributionStatus.CONFIRMED.value

        if verified:
            logger.info(
                "[contribution] confirmed tx=%s project_id=%s raw=%s decimals=%s",
                tx_hash,
                project_id,
                row.amount_raw,
                row.decimals,
            )
            self._after_confirm(db, row.project_id)
        else:
            logger.info("[contribution] pending tx=%s project_id=%s reason=%s", tx_hash, project_id, result.reason)

        return ContributionOutcome(
            verified=verified,
            contribution=row,
            reason=None if verified else result.reason,
        )

    # ---------------------------------------------------------------
    # reverify
    # ---------------------------------------------------------------
    def reverify(self, db: Session, tx_hash: str) -> ContributionOutcome:
        tx_hash = tx_hash.lower()
        row = self.get_by_tx_hash(db, tx_hash)
        if row is None:
            raise NotFound("CONTRIBUTION_NOT_FOUND")

        if row.status == ContributionStatus.CONFIRMED.value:
            return ContributionOutcome(verified=True, contribution=row)

        result = self.matcher.verify(
            chain_id=row.chain_id,
            currency=row.currency,
            tx_hash=tx_hash,
            expected_to=row.to_address,
            expected_amount=row.amount_decimal,
            expected_from=row.from_address,
        )
        if not result.ok:
            logger.info("[contribution] still pending tx=%s reason=%s", tx_hash, result.reason)
            return ContributionOutcome(verified=False, contribution=row, reason=result.reason)

        now = datetime.now(timezone.utc)
        res = db.execute(
            update(Contribution)
            .where(
                Contribution.tx_hash == tx_hash,
                Contribution.status == ContributionStatus.PENDING.value,
            )
            .values(updated_at=now, **self._verdict_values(result, now))
        )
        db.commit()

        row = self.get_by_tx_hash(db, tx_hash)
        if res.rowcount > 0:
            logger.info("[contribution] confirmed on reverify tx=%s project_id=%s", tx_hash, row.project_id)
            self._after_confirm(db, row.project_id)

        return ContributionOutcome(verified=True, contribution=row)

    # ---------------------------------------------------------------
    # helpers
    # ---------------------------------------------------------------
    @staticmethod
    def _verdict_values(result: MatchResult, now: datetime) -> dict:
        if result.ok:
            return dict(
                status=ContributionStatus.CONFIRMED.value,
                amount_raw=str(result.raw_value),
                decimals=int(result.decimals),
                block_number=result.block_number,
                confirmed_at=now,
            )
        return dict(
            status=ContributionStatus.PENDING.value,
            amount_raw="0",
            decimals=0,
            block_number=None,
            confirmed_at=None,
        )

    def _after_confirm(self, db: Session, project_id: int) -> None:
        # runs after the ledger commit; a failure here must not undo it
        try:
            self.goals.try_achieve(db, project_id)
        except Exception:
            db.rollback()
            logger.exception("[goal] auto-achieve failed project_id=%s", project_id)
