"""
Attendance and court updates made while a session is running.

These return new lists and never touch the schedule by themselves, except
remove_player, which regenerates the remaining rounds without the player.
Callers apply late arrivals by updating attendance and then regenerating.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from courtside.config import SchedulerSettings
from courtside.models.court import Court
from courtside.models.player import Attendance, Player
from courtside.models.schedule import SessionSchedule
from courtside.services.errors import CourtConflict, InvalidSessionWindow, PlayerUnavailable
from courtside.services.schedule_engine import regenerate_remaining

logger = logging.getLogger(__name__)


def record_late_arrival(
    attendance: Sequence[Attendance],
    player_id: str,
    arrive_at: datetime,
    leave_at: datetime,
) -> List[Attendance]:
    """Add a player's attendance window, or replace it if they are already listed."""
    if leave_at <= arrive_at:
        raise InvalidSessionWindow(
            "leave_at must be after arrive_at",
            {"player_id": player_id, "arrive_at": arrive_at.isoformat(), "leave_at": leave_at.isoformat()},
        )
    entry = Attendance(player_id=player_id, arrive_at=arrive_at, leave_at=leave_at)
    updated = [a for a in attendance if a.player_id != player_id]
    updated.append(entry)
    logger.info("Player %s arrives %s", player_id, arrive_at.isoformat())
    return updated


def record_departure(
    attendance: Sequence[Attendance],
    player_id: str,
    leave_at: datetime,
) -> List[Attendance]:
    """Move a player's leave time; rounds they no longer cover become ineligible."""
    current = next((a for a in attendance if a.player_id == player_id), None)
    if current is None:
        raise PlayerUnavailable(f"Player {player_id} is not attending this session", {"player_id": player_id})
    if leave_at <= current.arrive_at:
        raise InvalidSessionWindow(
            "leave_at must be after arrive_at",
            {"player_id": player_id, "leave_at": leave_at.isoformat()},
        )
    return [
        Attendance(player_id=a.player_id, arrive_at=a.arrive_at, leave_at=leave_at)
        if a.player_id == player_id
        else a
        for a in attendance
    ]


def remove_player(
    schedule: SessionSchedule,
    attendance: Sequence[Attendance],
    courts: Sequence[Court],
    player_id: str,
    players: Optional[Iterable[Player]] = None,
    settings: Optional[SchedulerSettings] = None,
) -> Tuple[SessionSchedule, List[Attendance]]:
    """
    Drop a player from the session and rebuild the open rounds without them.

    Locked rounds keep the player: scored and manual matches are history.
    """
    if not any(a.player_id == player_id for a in attendance):
        raise PlayerUnavailable(f"Player {player_id} is not attending this session", {"player_id": player_id})
    remaining = [a for a in attendance if a.player_id != player_id]
    regenerated = regenerate_remaining(schedule, remaining, courts, players, settings)
    logger.info("Removed player %s from session %s", player_id, schedule.session_id)
    return regenerated, remaining


def add_court(courts: Sequence[Court], court: Court) -> List[Court]:
    """Append a court (creation order is kept); picked up by the next regeneration."""
    if any(c.id == court.id for c in courts):
        raise CourtConflict(f"Court {court.id} already exists", {"court_id": court.id})
    if court.end_time <= court.start_time:
        raise InvalidSessionWindow(
            "Court end_time must be after start_time",
            {"court_id": court.id},
        )
    return list(courts) + [court]
