# fundbridge/services/bridge_service.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from fundbridge.core.amounts import AmountParseError, MAX_TOKEN_DECIMALS, raw_from_human
from fundbridge.core.chains import get_chain_spec
from fundbridge.core.config import Settings
from fundbridge.core.errors import NotFound, RpcTimeout, StateConflict, ValidationFailed
from fundbridge.core.status_graph import sources_for
from fundbridge.models.bridge_run import BridgeRun
from fundbridge.models.enums import BridgeProvider, Currency, ProjectStatus
from fundbridge.models.project import Project
from fundbridge.policies.ownership import require_owner
from fundbridge.services.goal_service import GoalService, confirmed_total_decimal
from fundbridge.services.projects_service import get_project_or_404
from fundbridge.services.transfer_matcher import (
    DECIMALS_READ_FAILED,
    INVALID_DECIMALS,
    RPC_TIMEOUT,
    TransferMatcher,
)

logger = logging.getLogger(__name__)

WORMHOLE_PORTAL_URL = "https://portalbridge.com/"

DEST_TRANSFER_CONFIRMED = "DEST_TRANSFER_CONFIRMED"
NOT_RECEIVED_YET = "NOT_RECEIVED_YET"
EXPECTED_AMOUNT_INVALID = "EXPECTED_AMOUNT_INVALID"

# BRIDGED -> BRIDGED re-stamps bridged_at for a forced second run.
BRIDGE_SOURCE_STATUSES = tuple(sources_for(ProjectStatus.BRIDGED)) + (ProjectStatus.BRIDGED.value,)


@dataclass
class ReverifyOutcome:
    verified: bool
    confirmed: bool
    run: Optional[BridgeRun] = None
    reason: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def _checksum_or_none(v: Optional[str]) -> Optional[str]:
    if not v or not Web3.is_address(v):
        return None
    return Web3.to_checksum_address(v)


def _instructions(provider: BridgeProvider, run: BridgeRun) -> Dict[str, Any]:
    src = get_chain_spec(run.source_chain_id).name
    dst = get_chain_spec(run.destination_chain_id).name

    if provider == BridgeProvider.ICTT:
        return {
            "kind": "ICTT",
            "message": f"Sign and send the ICTT transfer {src} -> {dst}, then attach the destination tx hash.",
            "bridgeParams": {
                "currency": run.currency,
                "fromChainId": run.source_chain_id,
                "toChainId": run.destination_chain_id,
                "sourceAddress": run.source_address,
                "vaultAddress": run.vault_address,
                "recipientAddress": run.recipient_address,
                "tokenAddress": run.token_address,
                "amountDecimal": run.snapshot_amount_decimal,
            },
        }

    if provider == BridgeProvider.WORMHOLE_UI:
        return {
            "kind": "WORMHOLE_UI",
            "url": WORMHOLE_PORTAL_URL,
            "message": (
                f"Bridge {src} -> {dst} in the Wormhole portal, then paste the "
                f"{dst} transaction hash that credited the recipient."
            ),
        }

    return {
        "kind": "MANUAL",
        "message": (
            f"Move the funds {src} -> {dst} by any means, then paste the "
            f"{dst} transaction hash that credited the recipient."
        ),
    }


class BridgeService:
    """
    Bridge run orchestration.

      prepare  -> BridgeRun row with a frozen snapshot of the CONFIRMED total
      attach   -> destination tx hash recorded, no chain access
      reverify -> destination chain evidence; on success the run and the
                  project advance together in one commit

    The service never moves funds; the transfer itself happens elsewhere.
    """

    def __init__(self, chain, settings: Settings, goals: Optional[GoalService] = None):
        self.chain = chain
        self.matcher = TransferMatcher(chain)
        self.settings = settings
        self.goals = goals or GoalService()

    # ---------------------------------------------------------------
    # prepare
    # ---------------------------------------------------------------
    def prepare(
        self,
        db: Session,
        *,
        project_id: int,
        caller: str,
        currency: Currency = Currency.JPYC,
        provider: BridgeProvider = BridgeProvider.WORMHOLE_UI,
        dry_run: bool = False,
        force: bool = False,
        note: Optional[str] = None,
    ) -> tuple[BridgeRun, Dict[str, Any]]:
        project = get_project_or_404(db, project_id)
        require_owner(project, caller)

        goal = self.goals.get(db, project_id)
        if goal is None or goal.achieved_at is None:
            raise ValidationFailed("BRIDGE_REQUIRES_GOAL_ACHIEVED")

        if not force:
            if project.status == ProjectStatus.BRIDGED.value:
                raise StateConflict("ALREADY_BRIDGED")
            if project.status == ProjectStatus.DISTRIBUTED.value:
                raise StateConflict("ALREADY_DISTRIBUTED")

        source_chain_id = project.funding_chain_id or self.settings.default_funding_chain_id
        dest_chain_id = project.settlement_chain_id or self.settings.default_settlement_chain_id
        get_chain_spec(source_chain_id)
        get_chain_spec(dest_chain_id)

        token = _checksum_or_none(project.settlement_token_address)
        if token is None:
            raise ValidationFailed("DEST_TOKEN_ADDRESS_REQUIRED")

        recipient = _checksum_or_none(project.settlement_recipient_address or caller)
        if recipient is None:
            raise ValidationFailed("RECIPIENT_ADDRESS_INVALID")

        currency = Currency(currency)
        total = confirmed_total_decimal(db, project_id, currency.value)
        if total <= 0 and not force:
            raise ValidationFailed("NO_CONFIRMED_AMOUNT_TO_BRIDGE")

        baseline = None
        if self.settings.bridge_strict_amount_check:
            baseline = str(self.chain.balance_of(dest_chain_id, token, recipient))

        now = datetime.now(timezone.utc)
        run = BridgeRun(
            id=uuid.uuid4(),
            project_id=project_id,
            mode=BridgeProvider(provider).value,
            currency=currency.value,
            source_chain_id=source_chain_id,
            source_address=project.funding_source_address or caller,
            vault_address=project.vault_address,
            destination_chain_id=dest_chain_id,
            recipient_address=recipient,
            token_address=token,
            snapshot_amount_decimal=format(total, "f"),
            recipient_baseline_balance_raw=baseline,
            dry_run=dry_run,
            force=force,
            note=note,
            created_at=now,
        )
        db.add(run)
        db.commit()
        db.refresh(run)

        logger.info(
            "[bridge] prepared run=%s project_id=%s provider=%s snapshot=%s",
            run.id,
            project_id,
            run.mode,
            run.snapshot_amount_decimal,
        )
        return run, _instructions(BridgeProvider(provider), run)

    # ---------------------------------------------------------------
    # attach destination tx hash
    # ---------------------------------------------------------------
    def attach(
        self,
        db: Session,
        *,
        project_id: int,
        bridge_run_id: uuid.UUID,
        caller: str,
        destination_tx_hash: str,
    ) -> BridgeRun:
        project = get_project_or_404(db, project_id)
        require_owner(project, caller)

        run = db.get(BridgeRun, bridge_run_id)
        if run is None:
            raise NotFound("BRIDGE_RUN_NOT_FOUND")
        if run.project_id != project.id:
            raise ValidationFailed("BRIDGE_RUN_MISMATCH")
        if run.confirmed_at is not None:
            raise StateConflict("BRIDGE_RUN_ALREADY_CONFIRMED")

        res = db.execute(
            update(BridgeRun)
            .where(BridgeRun.id == run.id, BridgeRun.confirmed_at.is_(None))
            .values(destination_tx_hash=destination_tx_hash.lower())
        )
        if res.rowcount == 0:
            db.rollback()
            raise StateConflict("BRIDGE_RUN_ALREADY_CONFIRMED")
        db.commit()
        db.refresh(run)

        logger.info("[bridge] attached run=%s tx=%s", run.id, run.destination_tx_hash)
        return run

    # ---------------------------------------------------------------
    # reverify
    # ---------------------------------------------------------------
    def _pick_run(self, db: Session, project_id: int, bridge_run_id: Optional[uuid.UUID]) -> BridgeRun:
        if bridge_run_id is not None:
            run = db.get(BridgeRun, bridge_run_id)
            if run is None:
                raise NotFound("BRIDGE_RUN_NOT_FOUND")
            if run.project_id != project_id:
                raise ValidationFailed("BRIDGE_RUN_MISMATCH")
            return run

        run = db.execute(
            select(BridgeRun)
            .where(
                BridgeRun.project_id == project_id,
                BridgeRun.destination_tx_hash.is_not(None),
                BridgeRun.confirmed_at.is_(None),
            )
            .order_by(BridgeRun.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        if run is None:
            raise NotFound("BRIDGE_RUN_NOT_FOUND")
        return run

    def _expected_increase(self, run: BridgeRun) -> tuple[Optional[int], Optional[str]]:
        try:
            decimals = self.chain.token_decimals(run.destination_chain_id, run.token_address)
        except (ContractLogicError, BadFunctionCallOutput):
            return None, DECIMALS_READ_FAILED
        except RpcTimeout:
            return None, RPC_TIMEOUT
        if decimals < 0 or decimals > MAX_TOKEN_DECIMALS:
            return None, INVALID_DECIMALS
        try:
            return raw_from_human(run.snapshot_amount_decimal, decimals, truncate=True), None
        except AmountParseError:
            return None, EXPECTED_AMOUNT_INVALID

    def _strict_check(self, run: BridgeRun) -> tuple[bool, Optional[str], Dict[str, Any]]:
        expected, reason = self._expected_increase(run)
        if reason:
            return False, reason, {}

        baseline = int(run.recipient_baseline_balance_raw or 0)
        try:
            current = self.chain.balance_of(run.destination_chain_id, run.token_address, run.recipient_address)
        except RpcTimeout:
            return False, RPC_TIMEOUT, {}
        details = {
            "baselineRaw": str(baseline),
            "currentRaw": str(current),
            "expectedIncreaseRaw": str(expected),
        }
        if current < baseline + expected:
            return False, NOT_RECEIVED_YET, details
        return True, None, details

    def reverify(
        self,
        db: Session,
        *,
        project_id: int,
        caller: str,
        bridge_run_id: Optional[uuid.UUID] = None,
    ) -> ReverifyOutcome:
        project = get_project_or_404(db, project_id)
        require_owner(project, caller)

        run = self._pick_run(db, project.id, bridge_run_id)
        if run.confirmed_at is not None:
            return ReverifyOutcome(verified=True, confirmed=True, run=run, reason=run.confirm_reason)

        if not run.destination_tx_hash:
            raise ValidationFailed("BRIDGE_TX_HASH_NOT_SET")

        found = self.matcher.find_inbound_transfer(
            chain_id=run.destination_chain_id,
            token_address=run.token_address,
            tx_hash=run.destination_tx_hash,
            recipient=run.recipient_address,
        )
        if not found.ok:
            logger.info("[bridge] not confirmed run=%s reason=%s", run.id, found.reason)
            return ReverifyOutcome(verified=False, confirmed=False, run=run, reason=found.reason)

        details: Dict[str, Any] = {"receivedRaw": str(found.raw_value)}
        if run.recipient_baseline_balance_raw is not None and self.settings.bridge_strict_amount_check:
            ok, reason, extra = self._strict_check(run)
            details.update(extra)
            if not ok:
                logger.info("[bridge] amount not reached run=%s reason=%s %s", run.id, reason, extra)
                return ReverifyOutcome(verified=False, confirmed=False, run=run, reason=reason, details=details)

        now = datetime.now(timezone.utc)
        res = db.execute(
            update(BridgeRun)
            .where(BridgeRun.id == run.id, BridgeRun.confirmed_at.is_(None))
            .values(
                confirmed_at=now,
                confirm_reason=DEST_TRANSFER_CONFIRMED,
                destination_block_number=found.block_number,
            )
        )
        changed = res.rowcount > 0

        if changed and not run.dry_run:
            stmt = update(Project).where(Project.id == project.id)
            if not run.force:
                stmt = stmt.where(Project.status.in_(BRIDGE_SOURCE_STATUSES))
            db.execute(stmt.values(status=ProjectStatus.BRIDGED.value, bridged_at=now, updated_at=now))

        db.commit()
        db.refresh(run)

        if changed:
            logger.info("[bridge] confirmed run=%s project_id=%s dry_run=%s", run.id, project.id, run.dry_run)

        return ReverifyOutcome(
            verified=True,
            confirmed=True,
            run=run,
            reason=run.confirm_reason,
            details=details,
        )

