"""
Batch Reconciliation: replace all placements of a stage in one go.

The incoming assignment list is the complete desired state for the stage's
groups. Every group slot is emptied, every reserve slot is dropped, and the
list is applied. Teams left out of the list are no longer part of the stage;
callers that want to keep them must put them back in reserve separately.

All or nothing: any invalid team, unknown slot or stale edit aborts the
whole call with no change to the stage.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlmodel import Session, col, select

from groupstage.models.group_stage import GroupStage
from groupstage.models.team import Team
from groupstage.services.errors import (
    GroupStageConflictError,
    GroupStageNotFoundError,
    GroupStageValidationError,
)
from groupstage.services.slot_store import get_group_slots, get_reserve_slots
from groupstage.services.transactions import atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotAssignment:
    group_id: int
    slot_index: int
    team_id: int


def validate_assignment_list(assignments: List[SlotAssignment]) -> None:
    """
    Reject malformed lists before touching the database.

    A list is malformed when a slot index is negative, the same
    (group, slot index) appears twice, or the same team appears twice.

    Raises:
        GroupStageValidationError listing every problem found
    """
    problems: List[str] = []
    used_slots: Set[Tuple[int, int]] = set()
    used_teams: Set[int] = set()

    for position, assignment in enumerate(assignments):
        if assignment.slot_index < 0:
            problems.append(f"[{position}] negative slot index {assignment.slot_index}")

        slot_key = (assignment.group_id, assignment.slot_index)
        if slot_key in used_slots:
            problems.append(
                f"[{position}] duplicate group slot assignment: group {assignment.group_id}, "
                f"index {assignment.slot_index}"
            )
        used_slots.add(slot_key)

        if assignment.team_id in used_teams:
            problems.append(f"[{position}] duplicate team assignment: team {assignment.team_id}")
        used_teams.add(assignment.team_id)

    if problems:
        raise GroupStageValidationError("Invalid assignments: " + "; ".join(problems))


def _to_naive_utc_millis(value: datetime) -> datetime:
    # Stored timestamps are naive UTC; clients echo them back at millisecond precision
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def batch_save_group_assignments(
    session: Session,
    group_stage_id: int,
    tournament_id: int,
    assignments: Iterable[SlotAssignment],
    expected_updated_at: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Replace every placement of a stage with the given assignments.

    Steps (one transaction):
    1. Validate the list shape (see validate_assignment_list)
    2. Validate the stage exists and belongs to tournament_id
    3. If expected_updated_at is given, reject edits made since then
    4. Validate every team exists and belongs to tournament_id
    5. Empty every group slot and delete every reserve slot
    6. Place each assignment at its (group_id, slot_index)
    7. Touch the stage's updated_at

    Returns:
        {"assigned": int, "reserve_slots_deleted": int}

    Raises:
        GroupStageValidationError: malformed list, wrong tournament, bad team ids
        GroupStageConflictError: the stage changed after expected_updated_at
        GroupStageNotFoundError: an assignment targets a slot that does not exist
    """
    assignment_list = list(assignments)

    with atomic(session, "batch_save_group_assignments"):
        validate_assignment_list(assignment_list)

        stage = session.get(GroupStage, group_stage_id)
        if not stage:
            raise GroupStageValidationError(f"Group stage {group_stage_id} not found")
        if stage.tournament_id != tournament_id:
            raise GroupStageValidationError(
                f"Group stage {group_stage_id} does not belong to tournament {tournament_id}"
            )

        if expected_updated_at is not None and (
            _to_naive_utc_millis(stage.updated_at) > _to_naive_utc_millis(expected_updated_at)
        ):
            raise GroupStageConflictError(
                f"Group stage {group_stage_id} was modified at {stage.updated_at.isoformat()}, "
                "reload and try again"
            )

        team_ids = sorted({a.team_id for a in assignment_list})
        if team_ids:
            valid_ids = set(
                session.exec(
                    select(Team.id).where(col(Team.id).in_(team_ids), Team.tournament_id == tournament_id)
                ).all()
            )
            invalid_ids = [team_id for team_id in team_ids if team_id not in valid_ids]
            if invalid_ids:
                raise GroupStageValidationError(
                    f"Teams not found in tournament {tournament_id}: {', '.join(str(i) for i in invalid_ids)}"
                )

        group_slots = get_group_slots(session, group_stage_id)
        for slot in group_slots:
            slot.team_id = None
            session.add(slot)

        reserve_slots = get_reserve_slots(session, group_stage_id)
        for slot in reserve_slots:
            session.delete(slot)
        session.flush()

        slots_by_position = {(slot.group_id, slot.slot_index): slot for slot in group_slots}
        for assignment in assignment_list:
            slot = slots_by_position.get((assignment.group_id, assignment.slot_index))
            if not slot:
                raise GroupStageNotFoundError(
                    f"Slot not found: group {assignment.group_id}, index {assignment.slot_index}"
                )
            slot.team_id = assignment.team_id
            session.add(slot)
        session.flush()

        stage.touch()
        session.add(stage)

    logger.info(
        "Saved %d assignments for group stage %d (%d reserve slots dropped)",
        len(assignment_list),
        group_stage_id,
        len(reserve_slots),
    )
    return {"assigned": len(assignment_list), "reserve_slots_deleted": len(reserve_slots)}
