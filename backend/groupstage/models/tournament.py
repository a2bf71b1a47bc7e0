from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from groupstage.models.group_stage import GroupStage
    from groupstage.models.team import Team


class Tournament(SQLModel, table=True):
    """Owned by the tournament module; the engine only reads its id."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    teams: List["Team"] = Relationship(back_populates="tournament")
    group_stages: List["GroupStage"] = Relationship(back_populates="tournament")
