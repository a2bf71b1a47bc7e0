# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from groupstage.models.group import Group  # noqa: F401
from groupstage.models.group_slot import GroupSlot  # noqa: F401
from groupstage.models.group_stage import GroupStage, GroupStageCategory  # noqa: F401
from groupstage.models.team import Team  # noqa: F401
from groupstage.models.tournament import Tournament  # noqa: F401
