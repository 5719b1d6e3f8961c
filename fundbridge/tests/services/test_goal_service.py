import pytest

from conftest import OWNER, STRANGER, add_contribution, create_goal, create_project
from fundbridge.core.errors import Forbidden, StateConflict, ValidationFailed
from fundbridge.models.enums import ContributionStatus, Currency, ProjectStatus
from fundbridge.services.goal_service import (
    ACHIEVED,
    ALREADY_ACHIEVED,
    GOAL_NOT_SET,
    NOT_REACHED,
    TARGET_INVALID,
    GoalService,
)


@pytest.fixture
def goals():
    return GoalService()


def test_no_goal(db, goals):
    project = create_project(db)
    out = goals.try_achieve(db, project.id)
    assert not out.achieved
    assert out.reason == GOAL_NOT_SET


def test_zero_target_never_achieves(db, goals):
    project = create_project(db)
    create_goal(db, project, target=0)
    add_contribution(db, project, "10")
    assert goals.try_achieve(db, project.id).reason == TARGET_INVALID


def test_not_reached(db, goals):
    project = create_project(db)
    create_goal(db, project, target=1000)
    add_contribution(db, project, "999.999999")

    out = goals.try_achieve(db, project.id)

    assert out.reason == NOT_REACHED
    assert out.confirmed_total == 999
    assert out.target == 1000


def test_pending_and_other_currency_ignored(db, goals):
    project = create_project(db)
    create_goal(db, project, target=100)
    add_contribution(db, project, "60")
    add_contribution(db, project, "60", status=ContributionStatus.PENDING)
    add_contribution(db, project, "60", currency=Currency.USDC)

    assert goals.try_achieve(db, project.id).reason == NOT_REACHED


def test_achieved_exactly_once(db, goals):
    project = create_project(db, status=ProjectStatus.FUNDING)
    create_goal(db, project, target=1000)
    add_contribution(db, project, "600")
    add_contribution(db, project, "400")

    first = goals.try_achieve(db, project.id)
    second = goals.try_achieve(db, project.id)

    assert first.achieved and first.changed
    assert first.reason == ACHIEVED
    assert second.achieved and not second.changed
    assert second.reason == ALREADY_ACHIEVED
    assert second.achieved_at == first.achieved_at

    db.refresh(project)
    assert project.status == ProjectStatus.GOAL_ACHIEVED.value


def test_draft_project_moves_to_goal_achieved(db, goals):
    project = create_project(db, status=ProjectStatus.DRAFT)
    create_goal(db, project, target=10)
    add_contribution(db, project, "10")

    goals.try_achieve(db, project.id)

    db.refresh(project)
    assert project.status == ProjectStatus.GOAL_ACHIEVED.value


def test_later_statuses_are_not_pulled_back(db, goals):
    project = create_project(db, status=ProjectStatus.BRIDGED)
    create_goal(db, project, target=10)
    add_contribution(db, project, "10")

    out = goals.try_achieve(db, project.id)

    assert out.changed
    db.refresh(project)
    assert project.status == ProjectStatus.BRIDGED.value


def test_manual_achieve_requires_owner(db, goals):
    project = create_project(db)
    create_goal(db, project, target=10)
    add_contribution(db, project, "10")

    with pytest.raises(Forbidden):
        goals.achieve_manually(db, project, caller=STRANGER)


def test_manual_achieve_below_target(db, goals):
    project = create_project(db)
    create_goal(db, project, target=10)
    add_contribution(db, project, "9")

    with pytest.raises(ValidationFailed) as ei:
        goals.achieve_manually(db, project, caller=OWNER)
    assert ei.value.code == "GOAL_NOT_REACHED"


def test_manual_achieve_without_goal(db, goals):
    project = create_project(db)
    with pytest.raises(ValidationFailed) as ei:
        goals.achieve_manually(db, project, caller=OWNER)
    assert ei.value.code == GOAL_NOT_SET


def test_manual_achieve_owner_case_insensitive(db, goals):
    project = create_project(db)
    create_goal(db, project, target=10)
    add_contribution(db, project, "10")

    out = goals.achieve_manually(db, project, caller=OWNER.upper().replace("0X", "0x"))
    assert out.achieved


def test_set_goal_creates_and_updates(db, goals):
    project = create_project(db)
    g = goals.set_goal(db, project, caller=OWNER, target_amount=500)
    assert g.target_amount == 500
    assert g.currency == Currency.JPYC.value

    g = goals.set_goal(db, project, caller=OWNER, target_amount=700, currency=Currency.USDC)
    assert g.target_amount == 700
    assert g.currency == Currency.USDC.value

    db.refresh(project)
    assert project.status == ProjectStatus.DRAFT.value


def test_set_goal_read_only_after_achievement(db, goals):
    project = create_project(db)
    create_goal(db, project, target=10, achieved=True)

    with pytest.raises(StateConflict) as ei:
        goals.set_goal(db, project, caller=OWNER, target_amount=20)
    assert ei.value.code == "GOAL_ALREADY_ACHIEVED"
