"""
Slot Store: the shared queries over GroupSlot and its owners.

Every engine write path reads and mutates slots through these helpers so
that lookups, error messages and write ordering stay consistent. None of
them commit; callers run them inside atomic().
"""

from typing import Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlmodel import Session, col, select

from groupstage.models.group_slot import GroupSlot
from groupstage.models.group_stage import GroupStage
from groupstage.models.team import Team
from groupstage.services.errors import GroupStageConflictError, GroupStageNotFoundError, GroupStageValidationError


def require_group_stage(session: Session, group_stage_id: int) -> GroupStage:
    stage = session.get(GroupStage, group_stage_id)
    if not stage:
        raise GroupStageNotFoundError(f"Group stage {group_stage_id} not found")
    return stage


def require_slot(session: Session, slot_id: int) -> GroupSlot:
    slot = session.get(GroupSlot, slot_id)
    if not slot:
        raise GroupStageNotFoundError(f"Group slot {slot_id} not found")
    return slot


def require_team_for_stage(session: Session, group_stage_id: int, team_id: int) -> Tuple[GroupStage, Team]:
    """
    Load a stage and a team and verify they belong to the same tournament.

    Raises:
        GroupStageValidationError if either is missing or the tournaments differ
    """
    stage = session.get(GroupStage, group_stage_id)
    if not stage:
        raise GroupStageValidationError(f"Group stage {group_stage_id} not found")

    team = session.get(Team, team_id)
    if not team:
        raise GroupStageValidationError(f"Team {team_id} not found")

    if team.tournament_id != stage.tournament_id:
        raise GroupStageValidationError(
            f"Team {team_id} belongs to tournament {team.tournament_id}, "
            f"but group stage {group_stage_id} belongs to tournament {stage.tournament_id}"
        )

    return stage, team


def find_group_slot(session: Session, group_stage_id: int, group_id: int, slot_index: int) -> Optional[GroupSlot]:
    return session.exec(
        select(GroupSlot).where(
            GroupSlot.group_stage_id == group_stage_id,
            GroupSlot.group_id == group_id,
            GroupSlot.slot_index == slot_index,
        )
    ).first()


def get_group_slots(session: Session, group_stage_id: int) -> List[GroupSlot]:
    """Non-reserve slots of a stage."""
    return list(
        session.exec(
            select(GroupSlot)
            .where(GroupSlot.group_stage_id == group_stage_id, col(GroupSlot.group_id).is_not(None))
            .order_by(GroupSlot.group_id, GroupSlot.slot_index)
        ).all()
    )


def get_reserve_slots(session: Session, group_stage_id: int) -> List[GroupSlot]:
    return list(
        session.exec(
            select(GroupSlot)
            .where(GroupSlot.group_stage_id == group_stage_id, col(GroupSlot.group_id).is_(None))
            .order_by(GroupSlot.id)
        ).all()
    )


def get_slots_holding_team(session: Session, group_stage_id: int, team_id: int) -> List[GroupSlot]:
    return list(
        session.exec(
            select(GroupSlot).where(GroupSlot.group_stage_id == group_stage_id, GroupSlot.team_id == team_id)
        ).all()
    )


def set_slot_team(session: Session, slot: GroupSlot, expected_team_id: Optional[int], team_id: Optional[int]) -> None:
    """
    Compare-and-set write of a slot's occupant.

    The UPDATE only matches while the row still holds expected_team_id, so a
    concurrent writer that changed the slot after we read it makes the write
    miss instead of being overwritten.

    Raises:
        GroupStageConflictError if the row no longer holds expected_team_id
    """
    session.flush()

    if expected_team_id is None:
        still_expected = col(GroupSlot.team_id).is_(None)
    else:
        still_expected = GroupSlot.team_id == expected_team_id

    result = session.execute(
        update(GroupSlot)
        .where(GroupSlot.id == slot.id, still_expected)
        .values(team_id=team_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise GroupStageConflictError(f"Group slot {slot.id} was changed by a concurrent request, please retry")

    session.refresh(slot)


def clear_team_placements(session: Session, group_stage_id: int, team_id: int) -> int:
    """
    Empty every slot (group or reserve) in the stage that holds the team.

    Each row is cleared with set_slot_team, so the cleared rows reach the
    database before any later write places the team again.

    Returns:
        Number of slots cleared
    """
    slots = get_slots_holding_team(session, group_stage_id, team_id)
    for slot in slots:
        set_slot_team(session, slot, team_id, None)
    return len(slots)


def get_unslotted_teams(session: Session, tournament_id: int, categories: Iterable[str]) -> List[Team]:
    """
    Teams of the tournament in the given categories that occupy no slot in any stage.

    Ordered by category, club name, team name.
    """
    category_list = sorted(set(categories))
    if not category_list:
        return []

    slotted_team_ids = select(GroupSlot.team_id).where(col(GroupSlot.team_id).is_not(None))

    return list(
        session.exec(
            select(Team)
            .where(
                Team.tournament_id == tournament_id,
                col(Team.category).in_(category_list),
                col(Team.id).not_in(slotted_team_ids),
            )
            .order_by(Team.category, Team.club_name, Team.name)
        ).all()
    )
