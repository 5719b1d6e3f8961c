from decimal import Decimal

import pytest

from conftest import (
    PAYER,
    POLYGON,
    RECIPIENT,
    TOKEN,
    add_contribution,
    create_goal,
    create_project,
    transfer_log,
    tx,
)
from fundbridge.core.errors import ConfigurationError, NotFound, ValidationFailed
from fundbridge.models.contribution import Contribution
from fundbridge.models.enums import ContributionStatus, Currency, ProjectStatus
from fundbridge.services.contribution_service import ContributionService
from fundbridge.services.goal_service import GoalService
from fundbridge.services.projects_service import ProjectsService
from fundbridge.services.transfer_matcher import RECEIPT_NOT_FOUND_YET, TransferMatcher


def units(n):
    return n * 10**18


@pytest.fixture
def svc(chain):
    return ContributionService(TransferMatcher(chain))


def _submit(svc, db, project, h, amount="100", purpose_id=None):
    return svc.submit(
        db,
        project_id=project.id,
        purpose_id=purpose_id,
        chain_id=POLYGON,
        currency=Currency.JPYC,
        tx_hash=h,
        from_address=PAYER,
        to_address=RECIPIENT,
        amount=amount,
    )


def test_submit_confirms_matching_transfer(db, chain, svc):
    project = create_project(db, status=ProjectStatus.FUNDING)
    chain.add_receipt(tx(1), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))], block_number=55)

    out = _submit(svc, db, project, tx(1))

    assert out.verified
    c = out.contribution
    assert c.status == ContributionStatus.CONFIRMED.value
    assert c.amount_raw == str(units(100))
    assert c.decimals == 18
    assert c.amount_decimal == "100.000000000000000000"
    assert c.block_number == 55
    assert c.confirmed_at is not None


def test_submit_normalizes_hash_case(db, chain, svc):
    project = create_project(db)
    chain.add_receipt(tx(1), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])

    upper = "0x" + tx(1)[2:].upper()
    out = _submit(svc, db, project, upper)
    assert out.contribution.tx_hash == tx(1)


def test_resubmit_confirmed_is_a_noop(db, chain, svc):
    project = create_project(db)
    chain.add_receipt(tx(1), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])
    first = _submit(svc, db, project, tx(1))
    calls = len(chain.calls)

    second = _submit(svc, db, project, tx(1), amount="5")

    assert second.verified
    assert second.contribution.id == first.contribution.id
    assert Decimal(second.contribution.amount_decimal) == 100
    assert len(chain.calls) == calls
    assert db.query(Contribution).count() == 1


def test_unknown_tx_stays_pending(db, chain, svc):
    project = create_project(db)

    out = _submit(svc, db, project, tx(2))

    assert not out.verified
    assert out.reason == RECEIPT_NOT_FOUND_YET
    c = out.contribution
    assert c.status == ContributionStatus.PENDING.value
    assert c.amount_raw == "0"
    assert c.confirmed_at is None


def test_mismatch_never_confirms(db, chain, svc):
    project = create_project(db)
    chain.add_receipt(tx(3), [transfer_log(TOKEN, PAYER, RECIPIENT, units(99))])

    out = _submit(svc, db, project, tx(3), amount="100")

    assert not out.verified
    assert out.contribution.status == ContributionStatus.PENDING.value


def test_pending_resubmit_reuses_row(db, chain, svc):
    project = create_project(db)
    _submit(svc, db, project, tx(4))
    chain.add_receipt(tx(4), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])

    out = _submit(svc, db, project, tx(4))

    assert out.verified
    assert db.query(Contribution).count() == 1


def test_reverify_confirms_once_receipt_lands(db, chain, svc):
    project = create_project(db)
    _submit(svc, db, project, tx(5))

    pending = svc.reverify(db, tx(5))
    assert not pending.verified
    assert pending.reason == RECEIPT_NOT_FOUND_YET

    chain.add_receipt(tx(5), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])
    out = svc.reverify(db, tx(5))

    assert out.verified
    assert out.contribution.status == ContributionStatus.CONFIRMED.value
    assert out.contribution.amount_raw == str(units(100))


def test_reverify_confirmed_skips_chain(db, chain, svc):
    project = create_project(db)
    chain.add_receipt(tx(6), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])
    _submit(svc, db, project, tx(6))
    calls = len(chain.calls)

    assert svc.reverify(db, tx(6)).verified
    assert len(chain.calls) == calls


def test_reverify_unknown_hash(db, svc):
    with pytest.raises(NotFound) as ei:
        svc.reverify(db, tx(7))
    assert ei.value.code == "CONTRIBUTION_NOT_FOUND"


def test_unknown_project(db, svc):
    class Missing:
        id = 999

    with pytest.raises(NotFound) as ei:
        _submit(svc, db, Missing, tx(8))
    assert ei.value.code == "PROJECT_NOT_FOUND"


def test_purpose_must_belong_to_project(db, chain, svc):
    project = create_project(db)
    other = create_project(db)
    purpose = ProjectsService().add_purpose(db, other, caller=other.owner_address, code="roof", label="Roof")

    with pytest.raises(NotFound) as ei:
        _submit(svc, db, project, tx(9), purpose_id=purpose.id)
    assert ei.value.code == "PURPOSE_NOT_FOUND"


def test_unconfigured_token_writes_nothing(db, chain, svc):
    project = create_project(db)
    chain.tokens.clear()

    with pytest.raises(ConfigurationError):
        _submit(svc, db, project, tx(10))
    assert db.query(Contribution).count() == 0


def test_unparseable_amount_is_rejected_before_chain(db, chain, svc):
    project = create_project(db)
    chain.add_receipt(tx(11), [transfer_log(TOKEN, PAYER, RECIPIENT, units(1000))])

    for bad in ("1_000", "1e3", "-1", "."):
        with pytest.raises(ValidationFailed) as ei:
            _submit(svc, db, project, tx(11), amount=bad)
        assert ei.value.code == "AMOUNT_INVALID"

    assert chain.calls == []
    assert db.query(Contribution).count() == 0


def test_confirmation_reaching_target_achieves_goal(db, chain, svc):
    project = create_project(db, status=ProjectStatus.FUNDING)
    create_goal(db, project, target=1000)
    add_contribution(db, project, "999")

    chain.add_receipt(tx(11), [transfer_log(TOKEN, PAYER, RECIPIENT, units(1))])
    out = _submit(svc, db, project, tx(11), amount="1")

    assert out.verified
    goal = GoalService().get(db, project.id)
    db.refresh(goal)
    db.refresh(project)
    assert goal.achieved_at is not None
    assert project.status == ProjectStatus.GOAL_ACHIEVED.value


def test_below_target_does_not_achieve(db, chain, svc):
    project = create_project(db, status=ProjectStatus.FUNDING)
    create_goal(db, project, target=1000)
    add_contribution(db, project, "998")

    chain.add_receipt(tx(12), [transfer_log(TOKEN, PAYER, RECIPIENT, units(1))])
    _submit(svc, db, project, tx(12), amount="1")

    goal = GoalService().get(db, project.id)
    db.refresh(goal)
    assert goal.achieved_at is None


def test_goal_failure_does_not_undo_confirmation(db, chain):
    class BrokenGoals(GoalService):
        def try_achieve(self, db, project_id, **kw):
            raise RuntimeError("boom")

    svc = ContributionService(TransferMatcher(chain), goals=BrokenGoals())
    project = create_project(db)
    chain.add_receipt(tx(13), [transfer_log(TOKEN, PAYER, RECIPIENT, units(100))])

    out = _submit(svc, db, project, tx(13))

    assert out.verified
    assert svc.get_by_tx_hash(db, tx(13)).status == ContributionStatus.CONFIRMED.value


def test_list_for_project_filters_status(db, svc):
    project = create_project(db)
    add_contribution(db, project, "1")
    add_contribution(db, project, "2", status=ContributionStatus.PENDING)

    assert len(svc.list_for_project(db, project.id)) == 2
    pending = svc.list_for_project(db, project.id, status=ContributionStatus.PENDING)
    assert [c.amount_decimal for c in pending] == ["2"]
