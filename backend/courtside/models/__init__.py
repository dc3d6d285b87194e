from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import (
    SHORTFALL_INSUFFICIENT_PLAYERS,
    SHORTFALL_NO_COURTS_AVAILABLE,
    Assignment,
    Round,
    RoundPlan,
    RoundStatus,
    Score,
    SessionSchedule,
    SessionWindow,
    assignment_id_for,
)

__all__ = [
    "Player",
    "Attendance",
    "Court",
    "SessionWindow",
    "Round",
    "Score",
    "Assignment",
    "RoundPlan",
    "RoundStatus",
    "SessionSchedule",
    "SHORTFALL_INSUFFICIENT_PLAYERS",
    "SHORTFALL_NO_COURTS_AVAILABLE",
    "assignment_id_for",
]
