from groupstage.models.group import Group
from groupstage.models.group_slot import GroupSlot
from groupstage.models.group_stage import GroupStage, GroupStageCategory
from groupstage.models.team import Team
from groupstage.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Team",
    "GroupStage",
    "GroupStageCategory",
    "Group",
    "GroupSlot",
]
