"""
Stage Lifecycle Manager tests

- create: groups named by letter, g x s empty slots, reserve auto-fill
- create: config validation, category set semantics
- delete: child-before-parent order, counts, rollback on failure
- delete impact check
"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from groupstage.models.group import Group
from groupstage.models.group_slot import GroupSlot
from groupstage.models.group_stage import GroupStage, GroupStageCategory
from groupstage.models.tournament import Tournament
from groupstage.services.errors import (
    GroupStageInternalError,
    GroupStageNotFoundError,
    GroupStageValidationError,
)
from groupstage.services.group_stage_lifecycle import can_delete_group_stage, create_group_stage, delete_group_stage
from groupstage.services.slot_assignment import assign_team_to_group_slot


def _groups(session: Session, stage_id: int):
    return session.exec(select(Group).where(Group.group_stage_id == stage_id).order_by(Group.order)).all()


def _slots(session: Session, stage_id: int):
    return session.exec(select(GroupSlot).where(GroupSlot.group_stage_id == stage_id)).all()


def test_create_group_stage_example(session: Session, tournament: Tournament):
    """2 groups x 3 slots in category JO8 -> Group A, Group B and 6 empty slots"""
    stage_id = create_group_stage(session, tournament.id, "Poule fase", ["JO8"], config_groups=2, config_slots=3)

    stage = session.get(GroupStage, stage_id)
    assert stage is not None
    assert stage.tournament_id == tournament.id
    assert stage.categories == ["JO8"]

    groups = _groups(session, stage_id)
    assert [g.name for g in groups] == ["Group A", "Group B"]
    assert [g.order for g in groups] == [0, 1]

    slots = [s for s in _slots(session, stage_id) if not s.is_reserve]
    assert len(slots) == 6
    assert all(s.team_id is None for s in slots)
    for group in groups:
        assert sorted(s.slot_index for s in slots if s.group_id == group.id) == [0, 1, 2]


@pytest.mark.parametrize("config_groups,config_slots", [(1, 1), (4, 5), (26, 2)])
def test_create_group_stage_counts(session: Session, tournament: Tournament, config_groups: int, config_slots: int):
    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO8"], config_groups, config_slots)

    groups = _groups(session, stage_id)
    assert len(groups) == config_groups
    assert groups[0].name == "Group A"
    assert groups[-1].name == "Group " + chr(64 + config_groups)

    slots = _slots(session, stage_id)
    assert len([s for s in slots if not s.is_reserve]) == config_groups * config_slots


def test_auto_fill_reserves_each_eligible_team_once(session: Session, tournament: Tournament, make_team):
    jo8_a = make_team(tournament, "JO8-1", "JO8")
    jo8_b = make_team(tournament, "JO8-2", "JO8")
    make_team(tournament, "JO9-1", "JO9")

    other = Tournament(name="Other Cup")
    session.add(other)
    session.commit()
    make_team(other, "Foreign JO8", "JO8")

    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO8"], 2, 2)

    reserve = [s for s in _slots(session, stage_id) if s.is_reserve]
    assert sorted(s.team_id for s in reserve) == sorted([jo8_a.id, jo8_b.id])
    assert all(s.slot_index == 0 for s in reserve)


def test_auto_fill_skips_teams_already_in_a_stage(session: Session, tournament: Tournament, make_team):
    make_team(tournament, "JO8-1", "JO8")
    jo9 = make_team(tournament, "JO9-1", "JO9")

    create_group_stage(session, tournament.id, "First", ["JO8"], 1, 2)
    second_id = create_group_stage(session, tournament.id, "Second", ["JO8", "JO9"], 1, 2)

    reserve = [s for s in _slots(session, second_id) if s.is_reserve]
    assert [s.team_id for s in reserve] == [jo9.id]


def test_auto_fill_disabled(session: Session, tournament: Tournament, make_team):
    make_team(tournament, "JO8-1", "JO8")

    stage_id = create_group_stage(session, tournament.id, "Manual", ["JO8"], 1, 2, auto_fill=False)

    assert not session.get(GroupStage, stage_id).auto_fill
    assert [s for s in _slots(session, stage_id) if s.is_reserve] == []


def test_categories_are_a_set(session: Session, tournament: Tournament):
    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO9", "JO8", "JO8", " JO9 "], 1, 1)

    rows = session.exec(select(GroupStageCategory).where(GroupStageCategory.group_stage_id == stage_id)).all()
    assert len(rows) == 2
    assert session.get(GroupStage, stage_id).categories == ["JO8", "JO9"]


@pytest.mark.parametrize(
    "name,categories,config_groups,config_slots",
    [
        ("Stage", ["JO8"], 0, 4),
        ("Stage", ["JO8"], 27, 4),
        ("Stage", ["JO8"], 2, 0),
        ("Stage", [], 2, 4),
        ("   ", ["JO8"], 2, 4),
    ],
)
def test_create_rejects_invalid_config(
    session: Session, tournament: Tournament, name, categories, config_groups, config_slots
):
    with pytest.raises(GroupStageValidationError):
        create_group_stage(session, tournament.id, name, categories, config_groups, config_slots)

    assert session.exec(select(GroupStage)).all() == []


def test_create_rejects_unknown_tournament(session: Session):
    with pytest.raises(GroupStageValidationError, match="Tournament 999 not found"):
        create_group_stage(session, 999, "Stage", ["JO8"], 2, 2)

    assert session.exec(select(GroupStage)).all() == []
    assert session.exec(select(Group)).all() == []


def test_delete_group_stage_removes_everything(session: Session, tournament: Tournament, make_team):
    make_team(tournament, "JO8-1", "JO8")
    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO8", "JO9"], 2, 4)
    keep_id = create_group_stage(session, tournament.id, "Keep", ["JO8"], 1, 1)

    result = delete_group_stage(session, stage_id)

    # 8 group slots + 1 reserve slot
    assert result == {"groups_deleted": 2, "slots_deleted": 9}
    assert session.get(GroupStage, stage_id) is None
    assert _groups(session, stage_id) == []
    assert _slots(session, stage_id) == []
    assert (
        session.exec(select(GroupStageCategory).where(GroupStageCategory.group_stage_id == stage_id)).all() == []
    )

    # Other stages untouched
    assert session.get(GroupStage, keep_id) is not None
    assert len(_slots(session, keep_id)) == 1


def test_delete_missing_stage(session: Session):
    with pytest.raises(GroupStageNotFoundError):
        delete_group_stage(session, 12345)


def test_delete_rolls_back_when_slot_deletion_fails(
    session: Session, tournament: Tournament, make_team, monkeypatch
):
    make_team(tournament, "JO8-1", "JO8")
    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO8"], 2, 2)

    real_flush = session.flush
    seen_levels = []

    def failing_flush(*args, **kwargs):
        if session.deleted:
            seen_levels.append({type(obj).__name__ for obj in session.deleted})
            raise OperationalError("DELETE FROM groupslot", {}, Exception("disk I/O error"))
        return real_flush(*args, **kwargs)

    monkeypatch.setattr(session, "flush", failing_flush)

    with pytest.raises(GroupStageInternalError):
        delete_group_stage(session, stage_id)

    # The first level flushed is the slots, and only the slots
    assert seen_levels == [{"GroupSlot"}]

    monkeypatch.undo()
    assert session.get(GroupStage, stage_id) is not None
    assert len(_groups(session, stage_id)) == 2
    assert len(_slots(session, stage_id)) == 5


def test_can_delete_group_stage_reports_impact(session: Session, tournament: Tournament, make_team):
    team = make_team(tournament, "JO8-1", "JO8")
    stage_id = create_group_stage(session, tournament.id, "Stage", ["JO8"], 3, 2)

    group_a = _groups(session, stage_id)[0]
    assign_team_to_group_slot(session, stage_id, group_a.id, 0, team.id)

    check = can_delete_group_stage(session, stage_id)
    assert check.can_delete
    assert check.reason is None
    assert check.impact == {"groups": 3, "assigned_teams": 1}


def test_can_delete_missing_stage(session: Session):
    check = can_delete_group_stage(session, 404)
    assert not check.can_delete
    assert check.reason == "Group stage not found"
