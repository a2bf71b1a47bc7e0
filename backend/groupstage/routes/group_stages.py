"""
Group Stage API Routes
Application layer over the group stage engine: parses requests, calls one
engine operation per request and maps engine errors to HTTP status codes.
"""

from datetime import datetime
from typing import Dict, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from groupstage.database import get_session
from groupstage.services.batch_reconciliation import SlotAssignment, batch_save_group_assignments
from groupstage.services.errors import (
    GroupStageConflictError,
    GroupStageError,
    GroupStageNotFoundError,
    GroupStageValidationError,
)
from groupstage.services.group_stage_lifecycle import can_delete_group_stage, create_group_stage, delete_group_stage
from groupstage.services.group_stage_readers import (
    GroupStageDetails,
    GroupStageListItem,
    TeamSummary,
    get_group_stage_with_details,
    get_tournament_group_stages,
    get_unassigned_teams_by_categories,
)
from groupstage.services.slot_assignment import (
    assign_team_to_group_slot,
    clear_group_slot,
    delete_team_from_group_stage,
    move_team_to_reserve,
    swap_group_slots,
)

router = APIRouter()


def _raise_http(e: GroupStageError) -> NoReturn:
    if isinstance(e, GroupStageNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, GroupStageConflictError):
        raise HTTPException(status_code=409, detail=str(e))
    if isinstance(e, GroupStageValidationError):
        raise HTTPException(status_code=400, detail=str(e))
    raise HTTPException(status_code=500, detail=str(e))


# ============================================================================
# Request/Response Models
# ============================================================================


class GroupStageCreateRequest(BaseModel):
    name: str
    categories: List[str]
    config_groups: int
    config_slots: int
    auto_fill: bool = True


class GroupStageCreateResponse(BaseModel):
    id: int


class AssignRequest(BaseModel):
    group_id: int
    slot_index: int
    team_id: int


class ReserveRequest(BaseModel):
    team_id: int


class SwapRequest(BaseModel):
    source_slot_id: int
    target_slot_id: int


class SlotAssignmentItem(BaseModel):
    group_id: int
    slot_index: int
    team_id: int


class BatchSaveRequest(BaseModel):
    tournament_id: int
    updated_at: Optional[datetime] = None  # Stage updated_at the client last loaded
    assignments: List[SlotAssignmentItem]


class SlotResponse(BaseModel):
    slot_id: int


# ============================================================================
# Stage Endpoints
# ============================================================================


@router.post(
    "/tournaments/{tournament_id}/group-stages", response_model=GroupStageCreateResponse, status_code=201
)
def create_stage(tournament_id: int, request: GroupStageCreateRequest, session: Session = Depends(get_session)):
    """
    Create a group stage with its groups and empty slots.

    With auto_fill (default), every team of the tournament in the given
    categories that is not in any stage yet lands in the reserve.
    """
    try:
        stage_id = create_group_stage(
            session,
            tournament_id=tournament_id,
            name=request.name,
            categories=request.categories,
            config_groups=request.config_groups,
            config_slots=request.config_slots,
            auto_fill=request.auto_fill,
        )
    except GroupStageError as e:
        _raise_http(e)
    return GroupStageCreateResponse(id=stage_id)


@router.get("/tournaments/{tournament_id}/group-stages", response_model=List[GroupStageListItem])
def list_stages(tournament_id: int, session: Session = Depends(get_session)):
    """List a tournament's group stages, newest first."""
    return get_tournament_group_stages(session, tournament_id)


@router.get("/tournaments/{tournament_id}/unassigned-teams", response_model=List[TeamSummary])
def list_unassigned_teams(
    tournament_id: int,
    categories: List[str] = Query(..., description="Category codes, e.g. ?categories=JO8&categories=JO9"),
    session: Session = Depends(get_session),
):
    return get_unassigned_teams_by_categories(session, tournament_id, categories)


@router.get("/group-stages/{group_stage_id}", response_model=GroupStageDetails)
def get_stage(group_stage_id: int, session: Session = Depends(get_session)):
    """Stage with groups, slots and reserve; also serves as the snapshot for cancelling an edit."""
    details = get_group_stage_with_details(session, group_stage_id)
    if not details:
        raise HTTPException(status_code=404, detail="Group stage not found")
    return details


@router.get("/group-stages/{group_stage_id}/delete-check")
def get_delete_check(group_stage_id: int, session: Session = Depends(get_session)):
    check = can_delete_group_stage(session, group_stage_id)
    return {"can_delete": check.can_delete, "reason": check.reason, "impact": check.impact}


@router.delete("/group-stages/{group_stage_id}", response_model=Dict[str, int])
def delete_stage(group_stage_id: int, session: Session = Depends(get_session)):
    check = can_delete_group_stage(session, group_stage_id)
    if not check.can_delete:
        status_code = 404 if check.reason == "Group stage not found" else 409
        raise HTTPException(status_code=status_code, detail=check.reason)
    try:
        return delete_group_stage(session, group_stage_id)
    except GroupStageError as e:
        _raise_http(e)


# ============================================================================
# Assignment Endpoints
# ============================================================================


@router.post("/group-stages/{group_stage_id}/assign", response_model=SlotResponse)
def assign_team(group_stage_id: int, request: AssignRequest, session: Session = Depends(get_session)):
    try:
        slot_id = assign_team_to_group_slot(
            session, group_stage_id, request.group_id, request.slot_index, request.team_id
        )
    except GroupStageError as e:
        _raise_http(e)
    return SlotResponse(slot_id=slot_id)


@router.post("/group-slots/{slot_id}/clear", status_code=204)
def clear_slot(slot_id: int, session: Session = Depends(get_session)):
    try:
        clear_group_slot(session, slot_id)
    except GroupStageError as e:
        _raise_http(e)
    return None


@router.post("/group-stages/{group_stage_id}/reserve", response_model=SlotResponse)
def reserve_team(group_stage_id: int, request: ReserveRequest, session: Session = Depends(get_session)):
    try:
        slot_id = move_team_to_reserve(session, group_stage_id, request.team_id)
    except GroupStageError as e:
        _raise_http(e)
    return SlotResponse(slot_id=slot_id)


@router.post("/group-slots/swap", status_code=204)
def swap_slots(request: SwapRequest, session: Session = Depends(get_session)):
    try:
        swap_group_slots(session, request.source_slot_id, request.target_slot_id)
    except GroupStageError as e:
        _raise_http(e)
    return None


@router.put("/group-stages/{group_stage_id}/assignments", response_model=Dict[str, int])
def save_assignments(group_stage_id: int, request: BatchSaveRequest, session: Session = Depends(get_session)):
    """
    Replace all placements of the stage (drag-and-drop save).

    If updated_at is sent and the stage changed after it, responds 409 so the
    client can reload instead of overwriting someone else's edit.
    """
    try:
        return batch_save_group_assignments(
            session,
            group_stage_id,
            request.tournament_id,
            [
                SlotAssignment(group_id=a.group_id, slot_index=a.slot_index, team_id=a.team_id)
                for a in request.assignments
            ],
            expected_updated_at=request.updated_at,
        )
    except GroupStageError as e:
        _raise_http(e)


@router.delete("/group-stages/{group_stage_id}/teams/{team_id}", response_model=Dict[str, int])
def remove_team(group_stage_id: int, team_id: int, session: Session = Depends(get_session)):
    try:
        return delete_team_from_group_stage(session, group_stage_id, team_id)
    except GroupStageError as e:
        _raise_http(e)
