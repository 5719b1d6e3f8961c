from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from conftest import PAYER, POLYGON, RECIPIENT, TOKEN, add_contribution, create_goal, create_project, transfer_log, tx
from fundbridge.models.contribution import Contribution
from fundbridge.models.enums import ContributionStatus, Currency, ProjectStatus
from fundbridge.models.goal import Goal
from fundbridge.models.project import Project
from fundbridge.services import goal_service
from fundbridge.services.contribution_service import ContributionService
from fundbridge.services.goal_service import ACHIEVED, ALREADY_ACHIEVED, GoalService
from fundbridge.services.transfer_matcher import TransferMatcher


@pytest.fixture
def sessions(file_engine):
    SessionLocal = sessionmaker(bind=file_engine, autoflush=False, autocommit=False)
    opened = []

    def open_session():
        s = SessionLocal()
        opened.append(s)
        return s

    yield open_session
    for s in opened:
        s.close()


def _submit(svc, db, project_id, h):
    return svc.submit(
        db,
        project_id=project_id,
        purpose_id=None,
        chain_id=POLYGON,
        currency=Currency.JPYC,
        tx_hash=h,
        from_address=PAYER,
        to_address=RECIPIENT,
        amount="100",
    )


def test_goal_stamped_once_when_second_caller_lands_between_read_and_write(sessions, monkeypatch):
    setup = sessions()
    project = create_project(setup, status=ProjectStatus.FUNDING)
    create_goal(setup, project, target=10)
    add_contribution(setup, project, "25")
    pid = project.id

    first_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
    second_at = first_at + timedelta(hours=1)
    original = goal_service.confirmed_total_decimal
    other = {}

    # B reads and stamps while A is between its goal read and its UPDATE.
    def interleaved(db, project_id, currency):
        if not other:
            other["out"] = None
            other["out"] = GoalService().try_achieve(sessions(), project_id, now=second_at)
        return original(db, project_id, currency)

    monkeypatch.setattr(goal_service, "confirmed_total_decimal", interleaved)
    first = GoalService().try_achieve(sessions(), pid, now=first_at)
    second = other["out"]

    assert second.changed and second.reason == ACHIEVED
    assert first.achieved and not first.changed
    assert first.reason == ALREADY_ACHIEVED
    assert [o.changed for o in (first, second)].count(True) == 1
    assert first.achieved_at == second.achieved_at

    check = sessions()
    goal = check.query(Goal).filter_by(project_id=pid).one()
    assert goal.achieved_at == second.achieved_at
    assert check.get(Project, pid).status == ProjectStatus.GOAL_ACHIEVED.value


def test_same_tx_submitted_twice_concurrently_keeps_one_row(sessions, chain, monkeypatch):
    setup = sessions()
    project = create_project(setup, status=ProjectStatus.FUNDING)
    pid = project.id
    h = tx(1)
    chain.add_receipt(h, [transfer_log(TOKEN, PAYER, RECIPIENT, 100 * 10**18)])

    svc = ContributionService(TransferMatcher(chain))
    original = chain.get_transaction
    other = {}

    # B verifies and writes the row while A is still talking to the chain.
    def interleaved(chain_id, tx_hash):
        if not other:
            other["out"] = None
            other["out"] = _submit(svc, sessions(), pid, h)
        return original(chain_id, tx_hash)

    monkeypatch.setattr(chain, "get_transaction", interleaved)
    first = _submit(svc, sessions(), pid, h)
    second = other["out"]

    assert first.verified and second.verified
    assert first.contribution.id == second.contribution.id

    check = sessions()
    rows = check.query(Contribution).filter_by(tx_hash=h).all()
    assert len(rows) == 1
    assert rows[0].status == ContributionStatus.CONFIRMED.value
    assert rows[0].amount_decimal == "100.000000000000000000"


def test_stale_pending_verdict_does_not_downgrade_confirmed_row(sessions, chain, monkeypatch):
    setup = sessions()
    project = create_project(setup, status=ProjectStatus.FUNDING)
    pid = project.id
    h = tx(2)

    svc = ContributionService(TransferMatcher(chain))
    original = chain.get_transaction
    other = {}

    # A sees no receipt yet; B lands the receipt and confirms before A writes PENDING.
    def interleaved(chain_id, tx_hash):
        if not other:
            other["out"] = None
            chain.add_receipt(h, [transfer_log(TOKEN, PAYER, RECIPIENT, 100 * 10**18)])
            other["out"] = _submit(svc, sessions(), pid, h)
            chain.receipts.pop(h.lower(), None)
        return original(chain_id, tx_hash)

    monkeypatch.setattr(chain, "get_transaction", interleaved)
    first = _submit(svc, sessions(), pid, h)
    second = other["out"]

    assert second.verified
    # A's stale PENDING verdict never overwrites the confirmed row
    assert first.verified
    assert first.contribution.status == ContributionStatus.CONFIRMED.value

    check = sessions()
    assert check.query(Contribution).filter_by(tx_hash=h).count() == 1
