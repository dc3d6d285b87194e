"""
Builders for test sessions, players, attendance and courts.

Player ids are zero-padded (p01, p02, ...) so id order matches creation order.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from courtside.models import Attendance, Court, Player, SessionSchedule, SessionWindow

SESSION_DAY = datetime(2026, 3, 5)


def at(hour: int, minute: int = 0) -> datetime:
    return SESSION_DAY.replace(hour=hour, minute=minute)


def make_session(start=None, end=None, round_minutes: int = 15, session_id: str = "s1") -> SessionWindow:
    return SessionWindow(
        session_id=session_id,
        start=start or at(18),
        end=end or at(20),
        round_minutes=round_minutes,
    )


def player_ids(count: int) -> List[str]:
    return [f"p{i:02d}" for i in range(1, count + 1)]


def make_players(count: int, ratings: Optional[Sequence[float]] = None) -> List[Player]:
    players = []
    for i, pid in enumerate(player_ids(count)):
        rating = ratings[i] if ratings is not None else 0.5
        players.append(Player(id=pid, display_name=f"Player {i + 1}", rating=rating))
    return players


def make_attendance(players: Iterable, arrive=None, leave=None) -> List[Attendance]:
    """Attendance for players (or bare ids), all sharing one window."""
    entries = []
    for p in players:
        pid = p.id if isinstance(p, Player) else p
        entries.append(Attendance(player_id=pid, arrive_at=arrive or at(18), leave_at=leave or at(20)))
    return entries


def make_courts(count: int, start=None, end=None) -> List[Court]:
    return [
        Court(id=f"c{i}", court_name=f"Court {i}", start_time=start or at(18), end_time=end or at(20))
        for i in range(1, count + 1)
    ]


def games_by_player(schedule: SessionSchedule) -> dict:
    counts: dict = {}
    for plan in schedule.rounds:
        for a in plan.assignments:
            for pid in a.player_ids:
                counts[pid] = counts.get(pid, 0) + 1
    return counts


def assert_rounds_well_formed(schedule: SessionSchedule) -> None:
    """No player twice in a round, no court twice, resting disjoint from playing."""
    for plan in schedule.rounds:
        playing = [pid for a in plan.assignments for pid in a.player_ids]
        assert len(playing) == len(set(playing)), f"round {plan.round_index} double-books a player"
        courts = [a.court_id for a in plan.assignments]
        assert len(courts) == len(set(courts)), f"round {plan.round_index} double-books a court"
        assert not set(playing) & set(plan.resting)
        for a in plan.assignments:
            assert len(a.team_a) == 2 and len(a.team_b) == 2
            assert len(set(a.player_ids)) == 4
