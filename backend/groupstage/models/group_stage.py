from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from groupstage.models.tournament import Tournament


class GroupStageCategory(SQLModel, table=True):
    """One row per (stage, category); the composite key collapses duplicates."""

    group_stage_id: int = Field(foreign_key="groupstage.id", primary_key=True)
    category: str = Field(primary_key=True)

    group_stage: "GroupStage" = Relationship(back_populates="category_rows")


class GroupStage(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    config_groups: int  # Number of groups created with the stage
    config_slots: int  # Slots per group
    auto_fill: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="group_stages")
    category_rows: List[GroupStageCategory] = Relationship(
        back_populates="group_stage",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "lazy": "selectin"},
    )

    @property
    def categories(self) -> List[str]:
        return sorted(row.category for row in self.category_rows)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
