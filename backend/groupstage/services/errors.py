"""
Group Stage Engine errors

Every engine operation either returns its result or raises one of these.
The application layer translates them to user-facing responses; the engine
itself never retries.
"""


class GroupStageError(Exception):
    """Base exception for group stage engine errors"""

    pass


class GroupStageNotFoundError(GroupStageError):
    """Referenced stage, group or slot does not exist"""

    pass


class GroupStageConflictError(GroupStageError):
    """Slot already occupied, stale edit, or a uniqueness race lost at commit (retryable)"""

    pass


class GroupStageValidationError(GroupStageError):
    """Tournament mismatch, unknown team, or malformed input"""

    pass


class GroupStageInternalError(GroupStageError):
    """Storage failure unrelated to the above (connection loss, timeout)"""

    pass
