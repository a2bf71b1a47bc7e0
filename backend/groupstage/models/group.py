from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Group(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("group_stage_id", "order", name="uq_group_stage_order"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_stage_id: int = Field(foreign_key="groupstage.id", index=True)
    name: str  # "Group A", "Group B", ... derived from order
    order: int  # 0-based creation index, defines display order


def group_name_for_order(order: int) -> str:
    """0 -> "Group A", 1 -> "Group B", ..."""
    return "Group " + chr(65 + order)
