"""
Stage/Team Readers

Query-only projections of a stage for display. Nothing here writes, so
nothing here opens a transaction of its own.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, col, select

from groupstage.models.group import Group
from groupstage.models.group_slot import GroupSlot
from groupstage.models.group_stage import GroupStage
from groupstage.models.team import Team
from groupstage.services.slot_store import get_unslotted_teams


@dataclass
class TeamSummary:
    id: int
    name: str
    club_name: str
    category: str

    @classmethod
    def from_team(cls, team: Team) -> "TeamSummary":
        return cls(id=team.id, name=team.name, club_name=team.club_name, category=team.category)


@dataclass
class GroupSlotWithTeam:
    id: int
    slot_index: int
    team: Optional[TeamSummary] = None


@dataclass
class ReserveSlotWithTeam:
    id: int
    team: TeamSummary


@dataclass
class GroupWithSlots:
    id: int
    name: str
    order: int
    slots: List[GroupSlotWithTeam] = field(default_factory=list)


@dataclass
class GroupStageListItem:
    id: int
    tournament_id: int
    name: str
    categories: List[str]
    config_groups: int
    config_slots: int
    auto_fill: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_stage(cls, stage: GroupStage) -> "GroupStageListItem":
        return cls(
            id=stage.id,
            tournament_id=stage.tournament_id,
            name=stage.name,
            categories=stage.categories,
            config_groups=stage.config_groups,
            config_slots=stage.config_slots,
            auto_fill=stage.auto_fill,
            created_at=stage.created_at,
            updated_at=stage.updated_at,
        )


@dataclass
class GroupStageDetails(GroupStageListItem):
    groups: List[GroupWithSlots] = field(default_factory=list)
    reserve_slots: List[ReserveSlotWithTeam] = field(default_factory=list)


def get_group_stage_with_details(session: Session, group_stage_id: int) -> Optional[GroupStageDetails]:
    """
    Stage with its groups (by order), each group's slots (by slot index) and
    the reserve list. Empty reserve rows are left out.
    """
    stage = session.get(GroupStage, group_stage_id)
    if not stage:
        return None

    groups = session.exec(select(Group).where(Group.group_stage_id == group_stage_id).order_by(Group.order)).all()
    slots = session.exec(
        select(GroupSlot).where(GroupSlot.group_stage_id == group_stage_id).order_by(GroupSlot.slot_index, GroupSlot.id)
    ).all()

    team_ids = {slot.team_id for slot in slots if slot.team_id is not None}
    teams: Dict[int, TeamSummary] = {}
    if team_ids:
        for team in session.exec(select(Team).where(col(Team.id).in_(team_ids))).all():
            teams[team.id] = TeamSummary.from_team(team)

    slots_by_group: Dict[int, List[GroupSlotWithTeam]] = {group.id: [] for group in groups}
    reserve_slots: List[ReserveSlotWithTeam] = []
    for slot in slots:
        team = teams.get(slot.team_id) if slot.team_id is not None else None
        if slot.group_id is None:
            if team is not None:
                reserve_slots.append(ReserveSlotWithTeam(id=slot.id, team=team))
        elif slot.group_id in slots_by_group:
            slots_by_group[slot.group_id].append(GroupSlotWithTeam(id=slot.id, slot_index=slot.slot_index, team=team))

    item = GroupStageListItem.from_stage(stage)
    return GroupStageDetails(
        **item.__dict__,
        groups=[
            GroupWithSlots(id=group.id, name=group.name, order=group.order, slots=slots_by_group[group.id])
            for group in groups
        ],
        reserve_slots=reserve_slots,
    )


def get_tournament_group_stages(session: Session, tournament_id: int) -> List[GroupStageListItem]:
    """All stages of a tournament, newest first."""
    stages = session.exec(
        select(GroupStage)
        .where(GroupStage.tournament_id == tournament_id)
        .order_by(col(GroupStage.created_at).desc(), col(GroupStage.id).desc())
    ).all()
    return [GroupStageListItem.from_stage(stage) for stage in stages]


def get_unassigned_teams_by_categories(
    session: Session, tournament_id: int, categories: Iterable[str]
) -> List[TeamSummary]:
    """Teams eligible for a reserve: right tournament and category, in no slot of any stage."""
    return [TeamSummary.from_team(team) for team in get_unslotted_teams(session, tournament_id, categories)]
