"""
Stage Lifecycle Manager

Creates a group stage together with its groups, its empty group slots and
(optionally) reserve slots for every eligible team, and tears a stage down
again. Both directions are single transactions: a failure at any step leaves
no partial stage behind and removes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, col, select

from groupstage.models.group import Group, group_name_for_order
from groupstage.models.group_slot import RESERVE_SLOT_INDEX, GroupSlot
from groupstage.models.group_stage import GroupStage, GroupStageCategory
from groupstage.models.tournament import Tournament
from groupstage.services.errors import GroupStageValidationError
from groupstage.services.slot_store import get_unslotted_teams, require_group_stage
from groupstage.services.transactions import atomic
from groupstage.utils.sql import count_rows

logger = logging.getLogger(__name__)

# One letter per group: "Group A" .. "Group Z"
MAX_GROUPS = 26


@dataclass
class DeleteCheck:
    can_delete: bool
    reason: Optional[str] = None
    impact: Dict[str, int] = field(default_factory=lambda: {"groups": 0, "assigned_teams": 0})


def _normalize_categories(categories: Iterable[str]) -> List[str]:
    """Strip, drop blanks, collapse duplicates; order is irrelevant so return sorted."""
    return sorted({c.strip() for c in categories if c and c.strip()})


def _validate_config(name: str, categories: List[str], config_groups: int, config_slots: int) -> None:
    if not name or not name.strip():
        raise GroupStageValidationError("Group stage name is required")
    if not categories:
        raise GroupStageValidationError("At least one category is required")
    if config_groups < 1 or config_groups > MAX_GROUPS:
        raise GroupStageValidationError(f"config_groups must be between 1 and {MAX_GROUPS}, got {config_groups}")
    if config_slots < 1:
        raise GroupStageValidationError(f"config_slots must be at least 1, got {config_slots}")


def create_group_stage(
    session: Session,
    tournament_id: int,
    name: str,
    categories: Iterable[str],
    config_groups: int,
    config_slots: int,
    auto_fill: bool = True,
) -> int:
    """
    Create a group stage with its groups and slots.

    Steps (one transaction):
    1. Insert the GroupStage row and its category rows
    2. Insert config_groups groups named "Group A", "Group B", ...
    3. Insert config_groups x config_slots empty group slots
    4. If auto_fill: one reserve slot per tournament team in the stage's
       categories that occupies no slot in any stage

    Returns:
        The new group stage id

    Raises:
        GroupStageValidationError: bad config or unknown tournament
    """
    category_list = _normalize_categories(categories)

    with atomic(session, "create_group_stage"):
        _validate_config(name, category_list, config_groups, config_slots)

        if not session.get(Tournament, tournament_id):
            raise GroupStageValidationError(f"Tournament {tournament_id} not found")

        stage = GroupStage(
            tournament_id=tournament_id,
            name=name.strip(),
            config_groups=config_groups,
            config_slots=config_slots,
            auto_fill=auto_fill,
            category_rows=[GroupStageCategory(category=c) for c in category_list],
        )
        session.add(stage)
        session.flush()
        stage_id = stage.id

        groups = [Group(group_stage_id=stage_id, name=group_name_for_order(i), order=i) for i in range(config_groups)]
        session.add_all(groups)
        session.flush()

        session.add_all(
            [
                GroupSlot(group_stage_id=stage_id, group_id=group.id, slot_index=slot_index)
                for group in groups
                for slot_index in range(config_slots)
            ]
        )
        session.flush()

        reserved = 0
        if auto_fill:
            for team in get_unslotted_teams(session, tournament_id, category_list):
                session.add(
                    GroupSlot(
                        group_stage_id=stage_id,
                        group_id=None,
                        slot_index=RESERVE_SLOT_INDEX,
                        team_id=team.id,
                    )
                )
                reserved += 1
            session.flush()

    logger.info(
        "Created group stage %d for tournament %d: %d groups x %d slots, %d teams in reserve",
        stage_id,
        tournament_id,
        config_groups,
        config_slots,
        reserved,
    )
    return stage_id


def can_delete_group_stage(session: Session, group_stage_id: int) -> DeleteCheck:
    """
    Report what deleting a stage would remove.

    Read-only; a missing stage is reported rather than raised.
    """
    stage = session.get(GroupStage, group_stage_id)
    if not stage:
        return DeleteCheck(can_delete=False, reason="Group stage not found")

    groups = count_rows(session, Group.id, Group.group_stage_id == group_stage_id)
    assigned_teams = count_rows(
        session,
        GroupSlot.id,
        GroupSlot.group_stage_id == group_stage_id,
        col(GroupSlot.group_id).is_not(None),
        col(GroupSlot.team_id).is_not(None),
    )
    return DeleteCheck(can_delete=True, impact={"groups": groups, "assigned_teams": assigned_teams})


def delete_group_stage(session: Session, group_stage_id: int) -> Dict[str, int]:
    """
    Delete a stage with all of its groups and slots.

    Deletes children before parents, flushing after each level:
    slots, then groups, then the stage row (its category rows cascade).

    Returns:
        {"groups_deleted": int, "slots_deleted": int}

    Raises:
        GroupStageNotFoundError: stage does not exist
    """
    with atomic(session, "delete_group_stage"):
        stage = require_group_stage(session, group_stage_id)

        slots = session.exec(select(GroupSlot).where(GroupSlot.group_stage_id == group_stage_id)).all()
        for slot in slots:
            session.delete(slot)
        session.flush()

        groups = session.exec(select(Group).where(Group.group_stage_id == group_stage_id)).all()
        for group in groups:
            session.delete(group)
        session.flush()

        session.delete(stage)
        session.flush()

        result = {"groups_deleted": len(groups), "slots_deleted": len(slots)}

    logger.info(
        "Deleted group stage %d (%d groups, %d slots)",
        group_stage_id,
        result["groups_deleted"],
        result["slots_deleted"],
    )
    return result
