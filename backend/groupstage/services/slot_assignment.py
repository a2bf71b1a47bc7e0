"""
Slot Assignment Operations

Single-placement primitives over a stage's slots: assign, clear,
move-to-reserve, swap, and removing a team from a stage entirely.

Each operation validates and writes inside one transaction. Writes are
flushed in the order that keeps a team in at most one slot per stage at
every statement boundary, so the (stage, team) unique constraint only ever
fires on a genuine race with another writer.
"""

import logging
from typing import Dict

from sqlmodel import Session

from groupstage.models.group_slot import RESERVE_SLOT_INDEX, GroupSlot
from groupstage.models.group_stage import GroupStage
from groupstage.services.errors import GroupStageConflictError, GroupStageNotFoundError, GroupStageValidationError
from groupstage.services.slot_store import (
    clear_team_placements,
    find_group_slot,
    get_reserve_slots,
    get_slots_holding_team,
    require_group_stage,
    require_slot,
    require_team_for_stage,
    set_slot_team,
)
from groupstage.services.transactions import atomic

logger = logging.getLogger(__name__)


def _touch_stage(session: Session, group_stage_id: int) -> None:
    stage = session.get(GroupStage, group_stage_id)
    if stage:
        stage.touch()
        session.add(stage)


def assign_team_to_group_slot(
    session: Session,
    group_stage_id: int,
    group_id: int,
    slot_index: int,
    team_id: int,
) -> int:
    """
    Place a team into an empty group slot.

    If the team already sits elsewhere in the stage (another group slot or
    the reserve), that slot is emptied first, so a single call moves a team.

    Returns:
        Id of the slot now holding the team

    Raises:
        GroupStageNotFoundError: no slot at (group_id, slot_index) in the stage
        GroupStageConflictError: the slot is already occupied
        GroupStageValidationError: stage/team missing or from different tournaments
    """
    with atomic(session, "assign_team_to_group_slot"):
        slot = find_group_slot(session, group_stage_id, group_id, slot_index)
        if not slot:
            raise GroupStageNotFoundError(f"Slot not found: group {group_id}, index {slot_index}")

        if slot.team_id is not None:
            raise GroupStageConflictError(
                f"Slot {slot_index} of group {group_id} is already occupied by team {slot.team_id}"
            )

        stage, _team = require_team_for_stage(session, group_stage_id, team_id)

        cleared = clear_team_placements(session, group_stage_id, team_id)

        set_slot_team(session, slot, None, team_id)

        stage.touch()
        session.add(stage)
        slot_id = slot.id

    logger.info(
        "Assigned team %d to group %d slot %d in stage %d (%d previous placement(s) cleared)",
        team_id,
        group_id,
        slot_index,
        group_stage_id,
        cleared,
    )
    return slot_id


def clear_group_slot(session: Session, slot_id: int) -> None:
    """Empty a slot. Idempotent; touches nothing else."""
    with atomic(session, "clear_group_slot"):
        slot = require_slot(session, slot_id)
        if slot.team_id is None:
            return

        slot.team_id = None
        session.add(slot)
        _touch_stage(session, slot.group_stage_id)


def move_team_to_reserve(session: Session, group_stage_id: int, team_id: int) -> int:
    """
    Take a team out of its group (if any) and put it in the stage's reserve.

    A reserve slot already holding the team is kept; otherwise an empty
    reserve slot is reused before a new one is created.

    Returns:
        Id of the reserve slot holding the team

    Raises:
        GroupStageValidationError: stage/team missing or from different tournaments
    """
    with atomic(session, "move_team_to_reserve"):
        stage, _team = require_team_for_stage(session, group_stage_id, team_id)

        reserve_slot = None
        for slot in get_slots_holding_team(session, group_stage_id, team_id):
            if slot.is_reserve:
                reserve_slot = slot
            else:
                set_slot_team(session, slot, team_id, None)

        if reserve_slot is None:
            empty = [s for s in get_reserve_slots(session, group_stage_id) if s.team_id is None]
            if empty:
                reserve_slot = empty[0]
                set_slot_team(session, reserve_slot, None, team_id)
            else:
                reserve_slot = GroupSlot(
                    group_stage_id=group_stage_id,
                    group_id=None,
                    slot_index=RESERVE_SLOT_INDEX,
                    team_id=team_id,
                )
                session.add(reserve_slot)
                session.flush()

        stage.touch()
        session.add(stage)
        reserve_slot_id = reserve_slot.id

    logger.info("Moved team %d to reserve of stage %d", team_id, group_stage_id)
    return reserve_slot_id


def swap_group_slots(session: Session, source_slot_id: int, target_slot_id: int) -> None:
    """
    Exchange the occupants of two slots of the same stage.

    An empty side turns the swap into a plain move. Swapping a slot with
    itself is a no-op.

    Write order: empty source, empty target, then source <- old target team,
    then target <- old source team, one compare-and-set per step so the team
    never appears in two slots at once.

    Raises:
        GroupStageNotFoundError: either slot is missing
        GroupStageConflictError: either slot changed after it was read
        GroupStageValidationError: the slots belong to different stages
    """
    if source_slot_id == target_slot_id:
        return

    with atomic(session, "swap_group_slots"):
        source = require_slot(session, source_slot_id)
        target = require_slot(session, target_slot_id)

        if source.group_stage_id != target.group_stage_id:
            raise GroupStageValidationError(
                f"Cannot swap slots of different group stages ({source.group_stage_id} and {target.group_stage_id})"
            )

        source_team_id = source.team_id
        target_team_id = target.team_id

        # Each step only matches while the row still holds what we read
        if source_team_id is not None:
            set_slot_team(session, source, source_team_id, None)
        if target_team_id is not None:
            set_slot_team(session, target, target_team_id, None)
        if target_team_id is not None:
            set_slot_team(session, source, None, target_team_id)
        if source_team_id is not None:
            set_slot_team(session, target, None, source_team_id)

        _touch_stage(session, source.group_stage_id)

    logger.info("Swapped slots %d and %d", source_slot_id, target_slot_id)


def delete_team_from_group_stage(session: Session, group_stage_id: int, team_id: int) -> Dict[str, int]:
    """
    Remove a team from a stage entirely: empty its group slot, drop its reserve slot.

    Used when the team is withdrawn from the tournament, so the team row
    itself is not required to exist any more.

    Returns:
        {"slots_cleared": int, "reserve_slots_deleted": int}

    Raises:
        GroupStageNotFoundError: stage does not exist
    """
    with atomic(session, "delete_team_from_group_stage"):
        stage = require_group_stage(session, group_stage_id)

        slots_cleared = 0
        reserve_slots_deleted = 0
        for slot in get_slots_holding_team(session, group_stage_id, team_id):
            if slot.is_reserve:
                session.delete(slot)
                reserve_slots_deleted += 1
            else:
                slot.team_id = None
                session.add(slot)
                slots_cleared += 1
        session.flush()

        stage.touch()
        session.add(stage)

    logger.info(
        "Removed team %d from stage %d (%d group slot(s) cleared, %d reserve slot(s) deleted)",
        team_id,
        group_stage_id,
        slots_cleared,
        reserve_slots_deleted,
    )
    return {"slots_cleared": slots_cleared, "reserve_slots_deleted": reserve_slots_deleted}
