"""
Scheduler error taxonomy.

Every error carries a stable `code` for callers plus a small context dict.
Validation errors are raised before any new schedule is built, so a caller
never sees a partially updated schedule.
"""

from typing import Any, Dict, Optional


class SchedulerError(Exception):
    """Base exception for scheduler errors"""

    code = "SCHEDULER_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": self.context}


class InvalidSessionWindow(SchedulerError):
    code = "INVALID_SESSION_WINDOW"


class InsufficientPlayers(SchedulerError):
    code = "INSUFFICIENT_PLAYERS"


class NoCourtsAvailable(SchedulerError):
    code = "NO_COURTS_AVAILABLE"


class ManualEditError(SchedulerError):
    """Manual match / swap / delete validation failed"""

    code = "MANUAL_EDIT_ERROR"


class InvalidRoster(ManualEditError):
    code = "INVALID_ROSTER"


class PlayerConflict(ManualEditError):
    code = "PLAYER_CONFLICT"


class CourtConflict(ManualEditError):
    code = "COURT_CONFLICT"


class PlayerNotInAssignment(ManualEditError):
    code = "PLAYER_NOT_IN_ASSIGNMENT"


class PlayerUnavailable(ManualEditError):
    code = "PLAYER_UNAVAILABLE"


class RoundNotFound(ManualEditError):
    code = "ROUND_NOT_FOUND"


class AssignmentNotFound(ManualEditError):
    code = "ASSIGNMENT_NOT_FOUND"


class AssignmentAlreadyScored(ManualEditError):
    code = "ASSIGNMENT_SCORED"


class InvalidScore(SchedulerError):
    code = "INVALID_SCORE"


class ConcurrentModification(SchedulerError):
    code = "CONCURRENT_MODIFICATION"


class SessionNotFound(SchedulerError):
    code = "SESSION_NOT_FOUND"


class SessionFinished(SchedulerError):
    code = "SESSION_FINISHED"


class ScheduleInvariantError(SchedulerError):
    """A mutation produced a schedule that fails the invariant checks"""

    code = "SCHEDULE_INVARIANT_VIOLATION"

    def __init__(self, message: str, report=None):
        super().__init__(message, context=report.to_dict() if report is not None else None)
        self.report = report
