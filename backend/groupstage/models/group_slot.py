from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

RESERVE_SLOT_INDEX = 0


class GroupSlot(SQLModel, table=True):
    """
    A placement position within a group stage.

    group_id NULL marks a reserve slot; team_id NULL marks an empty slot.
    NULLs never collide in either unique constraint, so any number of reserve
    rows and empty rows may coexist.
    """

    __table_args__ = (
        # Each (group, position) exists once per stage
        SAUniqueConstraint("group_stage_id", "group_id", "slot_index", name="uq_groupslot_stage_group_index"),
        # A team is placed (or reserved) at most once per stage
        SAUniqueConstraint("group_stage_id", "team_id", name="uq_groupslot_stage_team"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    group_stage_id: int = Field(foreign_key="groupstage.id", index=True)
    group_id: Optional[int] = Field(default=None, foreign_key="group.id", index=True)
    slot_index: int = Field(default=RESERVE_SLOT_INDEX)
    team_id: Optional[int] = Field(default=None, foreign_key="team.id", index=True)

    @property
    def is_reserve(self) -> bool:
        return self.group_id is None
